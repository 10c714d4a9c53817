"""Which credential fields a viewer may currently see for one student."""
from __future__ import annotations

from typing import Iterable, List

from ..domain.models import DEFAULT_REQUESTED_FIELDS, AccessRequest, Disclosure, RequestStatus, Role
from ..domain.policy import same_enrollment
from .roles import RoleContext


def resolve_disclosure(
    requests: Iterable[AccessRequest],
    viewer: RoleContext,
    student_enrollment_id: str,
) -> Disclosure:
    """Merge every approved grant the viewer holds for the student.

    Students viewing themselves and the university see everything. An
    employer with no approved request gets the status of its latest one.
    """
    enrollment = student_enrollment_id.strip()
    if viewer.role is Role.UNIVERSITY or (
        viewer.role is Role.STUDENT and same_enrollment(viewer.subject_id, enrollment)
    ):
        return Disclosure(
            student_enrollment_id=enrollment,
            status=RequestStatus.APPROVED.value,
            fields=DEFAULT_REQUESTED_FIELDS,
        )
    if viewer.role is not Role.EMPLOYER:
        return Disclosure(student_enrollment_id=enrollment, status="none")

    mine: List[AccessRequest] = [
        r
        for r in requests
        if r.employer_id == viewer.subject_id and same_enrollment(r.student_enrollment_id, enrollment)
    ]
    approved = [r for r in mine if r.status is RequestStatus.APPROVED]
    if approved:
        merged: List[str] = []
        for request in approved:
            merged.extend(f for f in request.approved_fields if f not in merged)
        return Disclosure(
            student_enrollment_id=enrollment,
            status=RequestStatus.APPROVED.value,
            fields=tuple(merged),
        )
    if mine:
        latest = max(reversed(mine), key=lambda r: r.created_at)
        return Disclosure(student_enrollment_id=enrollment, status=latest.status.value)
    return Disclosure(student_enrollment_id=enrollment, status="none")
