"""Dependency injection utilities."""
from collections.abc import Generator
from typing import Optional

from fastapi import Header, HTTPException, Request, status
from sqlmodel import Session

from .domain.models import Role
from .infra.db import session_scope
from .services.lifecycle import RequestLifecycle
from .services.roles import RoleContext


def db_session(request: Request) -> Generator[Session, None, None]:
    """Provide a scoped DB session to FastAPI endpoints."""
    with session_scope(request.app.state.engine) as session:
        yield session


def lifecycle(request: Request) -> RequestLifecycle:
    return request.app.state.lifecycle


def role_context(
    x_actor_id: Optional[str] = Header(default=None),
    x_actor_role: Optional[Role] = Header(default=None),
) -> RoleContext:
    """Bind the caller's viewpoint from the X-Actor-Id / X-Actor-Role headers."""
    if not x_actor_id or not x_actor_id.strip() or x_actor_role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Id and X-Actor-Role headers are required",
        )
    return RoleContext.of(x_actor_role, x_actor_id)
