"""ABAC policy helpers."""
from dataclasses import dataclass
from typing import Optional

from .models import AccessRequest, Role, enrollment_key

STUDENT_ACTIONS = {"approve", "reject", "narrow_grant"}


@dataclass(frozen=True)
class PolicyContext:
    subject_id: str
    role: str  # "student", "employer" or "university"


def same_enrollment(left: str, right: str) -> bool:
    return enrollment_key(left) == enrollment_key(right)


def is_allowed(
    context: PolicyContext,
    action: str,
    request: Optional[AccessRequest] = None,
    resource_owner: Optional[str] = None,
) -> bool:
    """Decide whether `context` may perform `action`.

    `request` is the record being acted on, when there is one.
    `resource_owner` is the identity a listing or creation is scoped to.
    """
    if context.role == Role.UNIVERSITY.value:
        return action in {"list_all", "list_for_employer", "list_for_student", "view_request", "view_audit_log"}

    if context.role == Role.EMPLOYER.value:
        if action in {"send_request", "list_for_employer"}:
            return resource_owner is not None and resource_owner == context.subject_id
        if action == "view_request":
            return request is not None and request.employer_id == context.subject_id
        return False

    if context.role == Role.STUDENT.value:
        if action in STUDENT_ACTIONS or action == "view_request":
            return request is not None and same_enrollment(
                request.student_enrollment_id, context.subject_id
            )
        if action == "list_for_student":
            return resource_owner is not None and same_enrollment(resource_owner, context.subject_id)
        return False

    return False
