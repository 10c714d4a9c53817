"""FastAPI application bootstrap for the credential access service."""
from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .config import Settings
from .domain.errors import (
    AccessWorkflowError,
    AuthorizationError,
    InvalidTransitionError,
    PersistenceError,
    ValidationError,
)
from .infra.db import create_db_engine, init_db
from .infra.store import open_store
from .routers import audit, disclosure, notifications, requests, roles
from .services.lifecycle import RequestLifecycle

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 422,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    store = open_store(settings.store_backend, engine=engine, path=settings.store_path)
    app.state.engine = engine
    app.state.store = store
    app.state.lifecycle = RequestLifecycle(store, strict=settings.strict_transitions)
    logger.info(
        "request store ready (backend=%s, strict=%s)",
        settings.store_backend,
        settings.strict_transitions,
    )
    try:
        yield
    finally:
        store.close()
        engine.dispose()


async def workflow_error_handler(request: Request, exc: AccessWorkflowError) -> JSONResponse:
    code = next(
        (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)),
        status.HTTP_400_BAD_REQUEST,
    )
    detail = str(exc)
    if isinstance(exc, PersistenceError):
        logger.error("persistence failure on %s %s: %s", request.method, request.url.path, exc)
        detail = "Storage is temporarily unavailable; please try again."
    return JSONResponse(status_code=code, content={"detail": detail})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Credential Access API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.add_exception_handler(AccessWorkflowError, workflow_error_handler)

    app.include_router(requests.router, prefix="/requests", tags=["requests"])
    app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
    app.include_router(disclosure.router, prefix="/disclosure", tags=["disclosure"])
    app.include_router(roles.router, prefix="/roles", tags=["roles"])
    app.include_router(audit.router, prefix="/audit", tags=["audit"])

    return app


app = create_app()
