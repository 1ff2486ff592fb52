from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from gatepass.db.init_db import init_db
from gatepass.db.session import create_db_engine, create_session_factory
from gatepass.db.workflow_store import SqlWorkflowStore
from gatepass.identity import DirectoryClient, IdentityConfig, SessionTokenValidator
from gatepass.logging_config import configure_app_logging
from gatepass.routers import admin, health, me, queues, requests, returns
from gatepass.security.config import load_security_config
from gatepass.security.dependencies import enforce_security
from gatepass.settings import Settings, get_settings
from gatepass.workflow import (
    AuthorizationMatrix,
    Forbidden,
    InvalidRequest,
    InvalidState,
    InvalidTransition,
    ItemReturnSubworkflow,
    LifecycleOrchestrator,
    MenuResolver,
    NotFound,
    WorkflowError,
)
from gatepass.workflow.orchestrator import make_reference_factory

logger = logging.getLogger(__name__)

_ERROR_STATUS: tuple[tuple[type[WorkflowError], int], ...] = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (Forbidden, status.HTTP_403_FORBIDDEN),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (InvalidState, status.HTTP_409_CONFLICT),
    (InvalidRequest, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


def identity_config(settings: Settings) -> IdentityConfig:
    return IdentityConfig(
        jwt_secret=settings.jwt_secret,
        jwt_algorithm=settings.jwt_algorithm,
        leeway_seconds=settings.token_leeway_seconds,
        token_ttl_seconds=settings.token_ttl_seconds,
        directory_base_url=settings.directory_base_url,
        directory_username=settings.directory_username,
        directory_password=settings.directory_password,
        directory_timeout_seconds=settings.directory_timeout_seconds,
    )


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, http_status in _ERROR_STATUS:
        if isinstance(exc, error_type):
            code = http_status
            break
    if code >= 500:
        logger.error("Workflow error path=%s method=%s: %s", request.url.path, request.method, exc.message)
    return JSONResponse(status_code=code, content={"detail": exc.message, "code": exc.code})


def create_app(settings: Settings | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        cfg = settings or get_settings()
        configure_app_logging(cfg.log_level)
        logger.info("App startup beginning")

        app.state.security_config = load_security_config(cfg.resolved_security_config_path())
        logger.info("Loaded security config: %s", cfg.resolved_security_config_path())

        engine = create_db_engine(cfg.resolved_db_url())
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        init_db(engine, app.state.session_factory)
        logger.info("Database initialized (tables ensured + seed if needed)")

        identity = identity_config(cfg)
        app.state.identity_config = identity
        app.state.token_validator = SessionTokenValidator(identity)
        directory = DirectoryClient(identity) if identity.directory_enabled else None
        if directory is None:
            logger.info("Directory lookup disabled (no directory_base_url)")

        matrix = AuthorizationMatrix()
        orchestrator = LifecycleOrchestrator(
            SqlWorkflowStore(app.state.session_factory),
            matrix,
            reference_factory=make_reference_factory(cfg.reference_prefix),
            directory=directory,
        )
        app.state.orchestrator = orchestrator
        app.state.returns = ItemReturnSubworkflow(orchestrator)
        app.state.menu_resolver = MenuResolver(matrix)

        yield

        # Shutdown
        engine.dispose()

    # Global dependency: applies the route guard with zero changes to route handlers.
    app = FastAPI(title="Gate Pass", dependencies=[Depends(enforce_security)], lifespan=lifespan)
    app.add_exception_handler(WorkflowError, workflow_error_handler)

    app.include_router(health.router)
    app.include_router(me.router)
    app.include_router(requests.router)
    app.include_router(returns.router)
    app.include_router(queues.router)
    app.include_router(admin.router)

    return app


app = create_app()
