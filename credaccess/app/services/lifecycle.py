"""Request lifecycle: pending -> approved | rejected, with field-scoped grants."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

from ..domain.errors import AuthorizationError, InvalidTransitionError, ValidationError
from ..domain.models import (
    DEFAULT_PURPOSE,
    DEFAULT_REQUESTED_FIELDS,
    AccessRequest,
    AccessRequestDraft,
    RequestStatus,
    normalize_fields,
    utcnow,
)
from ..domain.policy import PolicyContext, is_allowed
from ..infra.store import RequestStore

logger = logging.getLogger(__name__)


class RequestLifecycle:
    """Validates actor actions and applies them through the store.

    Holds no request state of its own. With ``strict`` set, acting on a
    request that is already approved or rejected raises
    ``InvalidTransitionError``; otherwise the call is logged and ignored.

    Every operation accepts an optional ``actor``. When given, the actor must
    be entitled to the identity it acts for; ``None`` is a trusted host call.
    """

    def __init__(self, store: RequestStore, strict: bool = True) -> None:
        self.store = store
        self.strict = strict

    def _authorize(
        self,
        actor: Optional[PolicyContext],
        action: str,
        request: Optional[AccessRequest] = None,
        resource_owner: Optional[str] = None,
    ) -> None:
        if actor is None:
            return
        if not is_allowed(actor, action, request=request, resource_owner=resource_owner):
            logger.warning("denied %s for %s %s", action, actor.role, actor.subject_id)
            raise AuthorizationError(actor.subject_id, actor.role, action)

    def send_request(
        self,
        employer_id: str,
        employer_name: str,
        student_enrollment_id: str,
        student_name: str,
        purpose: Optional[str] = None,
        requested_fields: Optional[Iterable[str]] = None,
        employer_email: Optional[str] = None,
        actor: Optional[PolicyContext] = None,
    ) -> AccessRequest:
        employer_id = (employer_id or "").strip()
        student_enrollment_id = (student_enrollment_id or "").strip()
        if not employer_id:
            raise ValidationError("employer_id is required")
        if not student_enrollment_id:
            raise ValidationError("student_enrollment_id is required")
        self._authorize(actor, "send_request", resource_owner=employer_id)

        draft = AccessRequestDraft(
            employer_id=employer_id,
            employer_name=(employer_name or "").strip() or employer_id,
            employer_email=employer_email or None,
            student_enrollment_id=student_enrollment_id,
            student_name=(student_name or "").strip() or student_enrollment_id,
            purpose=(purpose or "").strip() or DEFAULT_PURPOSE,
            requested_fields=normalize_fields(requested_fields) or DEFAULT_REQUESTED_FIELDS,
        )
        created = self.store.insert(draft)
        logger.info(
            "employer %s requested %d field(s) from student %s (%s)",
            created.employer_id,
            len(created.requested_fields),
            created.student_enrollment_id,
            created.id,
        )
        return created

    def approve(
        self,
        request_id: str,
        approved_fields: Optional[Iterable[str]] = None,
        actor: Optional[PolicyContext] = None,
    ) -> Optional[AccessRequest]:
        """Release ``approved_fields`` (default: everything requested).

        Fields the employer never asked for are dropped, never granted.
        """
        wanted = None if approved_fields is None else set(normalize_fields(approved_fields))

        def changes(current: AccessRequest) -> Dict[str, object]:
            if wanted is None:
                granted = current.requested_fields
            else:
                granted = tuple(f for f in current.requested_fields if f in wanted)
                dropped = wanted.difference(current.requested_fields)
                if dropped:
                    logger.warning(
                        "dropping unrequested field(s) %s from approval of %s",
                        sorted(dropped),
                        current.id,
                    )
            return {
                "status": RequestStatus.APPROVED,
                "approved_fields": granted,
                "resolved_at": utcnow(),
            }

        return self._transition(request_id, "approve", actor, changes)

    def reject(self, request_id: str, actor: Optional[PolicyContext] = None) -> Optional[AccessRequest]:
        def changes(current: AccessRequest) -> Dict[str, object]:
            return {
                "status": RequestStatus.REJECTED,
                "approved_fields": (),
                "resolved_at": utcnow(),
            }

        return self._transition(request_id, "reject", actor, changes)

    def narrow_grant(
        self,
        request_id: str,
        approved_fields: Iterable[str],
        actor: Optional[PolicyContext] = None,
    ) -> Optional[AccessRequest]:
        """Withdraw some released fields from an approved request.

        Only removes: fields not currently released are ignored.
        """
        keep = set(normalize_fields(approved_fields))

        def mutation(current: AccessRequest) -> Dict[str, object]:
            self._authorize(actor, "narrow_grant", request=current)
            if current.status is not RequestStatus.APPROVED:
                return self._refuse(current, "narrow_grant")
            narrowed = tuple(f for f in current.approved_fields if f in keep)
            if narrowed == current.approved_fields:
                return {}
            logger.info(
                "student %s withdrew %s from %s",
                current.student_enrollment_id,
                sorted(set(current.approved_fields).difference(narrowed)),
                current.id,
            )
            return {"approved_fields": narrowed}

        return self.store.update(request_id, mutation)

    def _transition(
        self,
        request_id: str,
        action: str,
        actor: Optional[PolicyContext],
        changes: Callable[[AccessRequest], Dict[str, object]],
    ) -> Optional[AccessRequest]:
        before: List[RequestStatus] = []

        def mutation(current: AccessRequest) -> Dict[str, object]:
            self._authorize(actor, action, request=current)
            before.append(current.status)
            if current.status.is_terminal:
                return self._refuse(current, action)
            return changes(current)

        updated = self.store.update(request_id, mutation)
        if updated is None:
            logger.info("%s ignored: no request %s", action, request_id)
        elif updated.status is not before[-1]:
            logger.info("%s applied to request %s (status %s)", action, updated.id, updated.status.value)
        return updated

    def _refuse(self, current: AccessRequest, action: str) -> Dict[str, object]:
        if self.strict:
            raise InvalidTransitionError(current.id, current.status.value, action)
        logger.warning("ignoring %s on %s request %s", action, current.status.value, current.id)
        return {}

    def get(self, request_id: str, actor: Optional[PolicyContext] = None) -> Optional[AccessRequest]:
        found = self.store.get(request_id)
        if found is not None:
            self._authorize(actor, "view_request", request=found)
        return found

    def list_all(self, actor: Optional[PolicyContext] = None) -> List[AccessRequest]:
        self._authorize(actor, "list_all")
        return self.store.get_all()

    def list_for_employer(self, employer_id: str, actor: Optional[PolicyContext] = None) -> List[AccessRequest]:
        self._authorize(actor, "list_for_employer", resource_owner=employer_id)
        return self.store.get_by_employer(employer_id)

    def list_for_student(
        self, student_enrollment_id: str, actor: Optional[PolicyContext] = None
    ) -> List[AccessRequest]:
        self._authorize(actor, "list_for_student", resource_owner=student_enrollment_id)
        return self.store.get_by_student(student_enrollment_id)
