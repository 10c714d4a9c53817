"""Access request routes: employers ask, students answer."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from ..deps import db_session, lifecycle, role_context
from ..domain.models import AccessRequest, Role
from ..domain.schemas import AccessRequestIn, AccessRequestOut, ApproveBody, NarrowBody
from ..services.abac import AccessEvaluator
from ..services.audit import newest_first, search_requests
from ..services.lifecycle import RequestLifecycle
from ..services.roles import RoleContext

router = APIRouter()


def _existing(engine: RequestLifecycle, request_id: str) -> AccessRequest:
    found = engine.get(request_id)
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    return found


@router.post("/", response_model=AccessRequestOut, status_code=status.HTTP_201_CREATED)
def send_request(
    payload: AccessRequestIn,
    ctx: RoleContext = Depends(role_context),
    engine: RequestLifecycle = Depends(lifecycle),
    session: Session = Depends(db_session),
):
    AccessEvaluator(session).enforce(
        ctx.policy(),
        action="send_request",
        resource=f"student:{payload.student_enrollment_id}",
        resource_owner=ctx.subject_id,
    )
    return engine.send_request(
        employer_id=ctx.subject_id,
        employer_name=payload.employer_name,
        employer_email=payload.employer_email,
        student_enrollment_id=payload.student_enrollment_id,
        student_name=payload.student_name,
        purpose=payload.purpose,
        requested_fields=payload.requested_fields,
        actor=ctx.policy(),
    )


@router.get("/", response_model=List[AccessRequestOut])
def list_requests(
    q: Optional[str] = Query(None, description="search student, employer or enrollment id"),
    ctx: RoleContext = Depends(role_context),
    engine: RequestLifecycle = Depends(lifecycle),
    session: Session = Depends(db_session),
):
    evaluator = AccessEvaluator(session)
    actor = ctx.policy()
    if ctx.role is Role.EMPLOYER:
        evaluator.enforce(actor, "list_for_employer", resource="requests", resource_owner=ctx.subject_id)
        found = engine.list_for_employer(ctx.subject_id, actor=actor)
    elif ctx.role is Role.STUDENT:
        evaluator.enforce(actor, "list_for_student", resource="requests", resource_owner=ctx.subject_id)
        found = engine.list_for_student(ctx.subject_id, actor=actor)
    else:
        evaluator.enforce(actor, "list_all", resource="requests")
        found = engine.list_all(actor=actor)
    return newest_first(search_requests(found, q))


@router.get("/{request_id}", response_model=AccessRequestOut)
def get_request(
    request_id: str,
    ctx: RoleContext = Depends(role_context),
    engine: RequestLifecycle = Depends(lifecycle),
    session: Session = Depends(db_session),
):
    found = _existing(engine, request_id)
    AccessEvaluator(session).enforce(ctx.policy(), "view_request", resource=request_id, request=found)
    return found


@router.post("/{request_id}/approve", response_model=AccessRequestOut)
def approve_request(
    request_id: str,
    body: Optional[ApproveBody] = None,
    ctx: RoleContext = Depends(role_context),
    engine: RequestLifecycle = Depends(lifecycle),
    session: Session = Depends(db_session),
):
    """Release the chosen fields; an empty body releases everything requested."""
    found = _existing(engine, request_id)
    AccessEvaluator(session).enforce(ctx.policy(), "approve", resource=request_id, request=found)
    fields = body.approved_fields if body else None
    return engine.approve(request_id, fields, actor=ctx.policy())


@router.post("/{request_id}/reject", response_model=AccessRequestOut)
def reject_request(
    request_id: str,
    ctx: RoleContext = Depends(role_context),
    engine: RequestLifecycle = Depends(lifecycle),
    session: Session = Depends(db_session),
):
    found = _existing(engine, request_id)
    AccessEvaluator(session).enforce(ctx.policy(), "reject", resource=request_id, request=found)
    return engine.reject(request_id, actor=ctx.policy())


@router.post("/{request_id}/narrow", response_model=AccessRequestOut)
def narrow_request(
    request_id: str,
    body: NarrowBody,
    ctx: RoleContext = Depends(role_context),
    engine: RequestLifecycle = Depends(lifecycle),
    session: Session = Depends(db_session),
):
    """Withdraw some already-released fields from an approved request."""
    found = _existing(engine, request_id)
    AccessEvaluator(session).enforce(ctx.policy(), "narrow_grant", resource=request_id, request=found)
    return engine.narrow_grant(request_id, body.approved_fields, actor=ctx.policy())
