"""Audit routes for the university role."""
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session, select

from ..deps import db_session, lifecycle, role_context
from ..domain.models import AccessLog, AccessLogRead
from ..services.abac import AccessEvaluator
from ..services.audit import newest_first, search_requests
from ..services.lifecycle import RequestLifecycle
from ..services.roles import RoleContext

router = APIRouter()

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def _templates() -> Jinja2Templates:
    try:
        return Jinja2Templates(directory=str(TEMPLATE_DIR))
    except AssertionError as exc:
        raise HTTPException(status_code=500, detail="Template engine not available") from exc


@router.get("/logs", response_model=List[AccessLogRead])
def audit_logs(
    actor_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    ctx: RoleContext = Depends(role_context),
    session: Session = Depends(db_session),
) -> List[AccessLogRead]:
    AccessEvaluator(session).enforce(ctx.policy(), "view_audit_log", resource="access_logs")
    stmt = select(AccessLog).order_by(AccessLog.created_at.desc(), AccessLog.id.desc()).limit(limit)
    if actor_id:
        stmt = stmt.where(AccessLog.actor_id == actor_id)
    if action:
        stmt = stmt.where(AccessLog.action == action)
    return session.exec(stmt).all()


@router.get("/logs/html", response_class=HTMLResponse)
def audit_logs_html(
    request: Request,
    q: Optional[str] = Query(None),
    ctx: RoleContext = Depends(role_context),
    engine: RequestLifecycle = Depends(lifecycle),
    session: Session = Depends(db_session),
):
    logs = audit_logs(actor_id=None, action=None, limit=100, ctx=ctx, session=session)
    requests = newest_first(search_requests(engine.list_all(actor=ctx.policy()), q))
    return _templates().TemplateResponse(
        request,
        "access_logs.html",
        {
            "logs": logs,
            "requests": requests,
            "q": q or "",
        },
    )
