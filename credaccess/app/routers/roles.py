"""Role context introspection."""
from typing import Dict, List

from fastapi import APIRouter, Depends

from ..deps import role_context
from ..domain.schemas import RoleContextOut
from ..services.roles import ROLE_OPERATIONS, RoleContext

router = APIRouter()


@router.get("/me", response_model=RoleContextOut)
def whoami(ctx: RoleContext = Depends(role_context)) -> RoleContextOut:
    return RoleContextOut(role=ctx.role, subject_id=ctx.subject_id, operations=ctx.operations())


@router.get("/operations")
def role_operations() -> Dict[str, List[str]]:
    return {role.value: sorted(ops) for role, ops in ROLE_OPERATIONS.items()}
