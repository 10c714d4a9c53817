"""Read-only helpers behind the university access-log views."""
from typing import Iterable, List

from ..domain.models import AccessRequest


def search_requests(requests: Iterable[AccessRequest], term: str | None) -> List[AccessRequest]:
    needle = (term or "").strip().casefold()
    if not needle:
        return list(requests)
    return [
        r
        for r in requests
        if needle in r.student_name.casefold()
        or needle in r.employer_name.casefold()
        or needle in r.student_enrollment_id.casefold()
    ]


def newest_first(requests: Iterable[AccessRequest]) -> List[AccessRequest]:
    return sorted(requests, key=lambda r: r.created_at, reverse=True)
