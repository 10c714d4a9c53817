"""Notification feed routes."""
from typing import List

from fastapi import APIRouter, Depends

from ..deps import lifecycle, role_context
from ..domain.models import Notification, Role
from ..services.lifecycle import RequestLifecycle
from ..services.roles import RoleContext

router = APIRouter()


@router.get("/", response_model=List[Notification])
def list_notifications(
    ctx: RoleContext = Depends(role_context),
    engine: RequestLifecycle = Depends(lifecycle),
) -> List[Notification]:
    if ctx.role is Role.STUDENT:
        requests = engine.list_for_student(ctx.subject_id, actor=ctx.policy())
    elif ctx.role is Role.EMPLOYER:
        requests = engine.list_for_employer(ctx.subject_id, actor=ctx.policy())
    else:
        requests = []
    return ctx.notifications(requests)
