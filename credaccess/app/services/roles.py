"""Role context: which actor is operating, and what that viewpoint exposes."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, Iterable, List, Union

from ..domain.models import AccessRequest, Notification, Role
from ..domain.policy import PolicyContext
from .notifications import project_notifications

ROLE_OPERATIONS: Dict[Role, FrozenSet[str]] = {
    Role.STUDENT: frozenset(
        {"approve", "reject", "narrow_grant", "list_for_student", "view_request", "notifications", "disclosure"}
    ),
    Role.EMPLOYER: frozenset(
        {"send_request", "list_for_employer", "view_request", "notifications", "disclosure"}
    ),
    Role.UNIVERSITY: frozenset(
        {"list_all", "view_request", "view_audit_log", "disclosure"}
    ),
}


@dataclass(frozen=True)
class RoleContext:
    """The current viewpoint.

    Switching returns a new context and never touches stored requests.
    """

    role: Role
    subject_id: str

    @classmethod
    def of(cls, role: Union[Role, str], subject_id: str) -> "RoleContext":
        return cls(role=Role(role), subject_id=subject_id.strip())

    def switch(self, role: Union[Role, str], subject_id: str | None = None) -> "RoleContext":
        return replace(
            self,
            role=Role(role),
            subject_id=self.subject_id if subject_id is None else subject_id.strip(),
        )

    def permits(self, operation: str) -> bool:
        return operation in ROLE_OPERATIONS[self.role]

    def operations(self) -> List[str]:
        return sorted(ROLE_OPERATIONS[self.role])

    def policy(self) -> PolicyContext:
        return PolicyContext(subject_id=self.subject_id, role=self.role.value)

    def notifications(self, requests: Iterable[AccessRequest]) -> List[Notification]:
        return project_notifications(requests, self.policy())
