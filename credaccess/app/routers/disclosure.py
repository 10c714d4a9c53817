"""Disclosure lookup: which fields the viewer may see for a student."""
from fastapi import APIRouter, Depends

from ..deps import lifecycle, role_context
from ..domain.models import Disclosure, Role
from ..services.disclosure import resolve_disclosure
from ..services.lifecycle import RequestLifecycle
from ..services.roles import RoleContext

router = APIRouter()


@router.get("/{student_enrollment_id}", response_model=Disclosure)
def get_disclosure(
    student_enrollment_id: str,
    ctx: RoleContext = Depends(role_context),
    engine: RequestLifecycle = Depends(lifecycle),
) -> Disclosure:
    requests = (
        engine.list_for_employer(ctx.subject_id, actor=ctx.policy())
        if ctx.role is Role.EMPLOYER
        else []
    )
    return resolve_disclosure(requests, ctx, student_enrollment_id)
