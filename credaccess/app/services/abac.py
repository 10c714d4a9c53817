"""Simple ABAC evaluator with access logging."""
from typing import Optional

from fastapi import HTTPException, status
from sqlmodel import Session

from ..domain.models import AccessLog, AccessRequest
from ..domain.policy import PolicyContext, is_allowed


class AccessEvaluator:
    def __init__(self, session: Session) -> None:
        self.session = session

    def record(self, context: PolicyContext, action: str, resource: str, allowed: bool) -> None:
        self.session.add(
            AccessLog(
                actor_id=context.subject_id,
                role=context.role,
                action=action,
                resource=resource,
                allowed=allowed,
            )
        )

    def enforce(
        self,
        context: PolicyContext,
        action: str,
        resource: str,
        request: Optional[AccessRequest] = None,
        resource_owner: Optional[str] = None,
    ) -> None:
        allowed = is_allowed(context, action, request=request, resource_owner=resource_owner)
        self.record(context, action, resource, allowed)
        if not allowed:
            # Denials must survive the rollback the 403 triggers.
            self.session.commit()
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied",
            )
