"""Per-role notification feeds derived from the request collection.

Nothing here is stored: feeds are recomputed from whatever the store returns,
so they are safe to build on every render.
"""
from __future__ import annotations

from typing import Iterable, List

from ..domain.models import AccessRequest, Notification, RequestStatus, Role
from ..domain.policy import PolicyContext, same_enrollment


def _student_entry(request: AccessRequest) -> Notification:
    return Notification(
        request_id=request.id,
        kind="access_requested",
        message=(
            f"{request.employer_name} requested access to your "
            f"{', '.join(request.requested_fields)}."
        ),
        status=request.status,
        fields=request.requested_fields,
        created_at=request.created_at,
    )


def _employer_entry(request: AccessRequest) -> Notification:
    if request.status is RequestStatus.APPROVED:
        kind = "access_granted"
        message = (
            f"{request.student_name} granted access to "
            f"{len(request.approved_fields)} of {len(request.requested_fields)} field(s)."
        )
    else:
        kind = "access_denied"
        message = f"{request.student_name} declined your access request."
    return Notification(
        request_id=request.id,
        kind=kind,
        message=message,
        status=request.status,
        fields=request.approved_fields,
        created_at=request.created_at,
    )


def project_notifications(requests: Iterable[AccessRequest], context: PolicyContext) -> List[Notification]:
    """Return the viewer's feed, newest first.

    Students see pending requests addressed to them; employers see their own
    requests once resolved; the university has no feed.
    """
    if context.role == Role.STUDENT.value:
        feed = [
            _student_entry(r)
            for r in requests
            if r.status is RequestStatus.PENDING
            and same_enrollment(r.student_enrollment_id, context.subject_id)
        ]
    elif context.role == Role.EMPLOYER.value:
        feed = [
            _employer_entry(r)
            for r in requests
            if r.status is not RequestStatus.PENDING and r.employer_id == context.subject_id
        ]
    else:
        feed = []
    # sorted() is stable with reverse=True, so ties keep insertion order.
    return sorted(feed, key=lambda n: n.created_at, reverse=True)
