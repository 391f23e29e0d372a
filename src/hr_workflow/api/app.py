"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import replace

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hr_workflow import __version__
from hr_workflow.api.routes import (
    health_router,
    leaves_router,
    onboarding_router,
    tickets_router,
)
from hr_workflow.config import Settings, get_settings
from hr_workflow.database import create_schema, dispose_db, init_db
from hr_workflow.errors import ErrorKind, WorkflowError
from hr_workflow.events import Notifier
from hr_workflow.roles import ActorResolver, TokenActorResolver
from hr_workflow.services import WorkflowOrchestrator
from hr_workflow.workflows import IdentityVerifier, WorkflowCollaborators

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.GUARD_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.STALE_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    engine = app.state.engine
    if engine is not None and app.state.settings.create_schema:
        await create_schema(engine)
    yield
    # Shutdown
    if engine is not None:
        await dispose_db()


def create_app(
    settings: Settings | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    actor_resolver: ActorResolver | None = None,
    collaborators: WorkflowCollaborators | None = None,
    identity_verifier: IdentityVerifier | None = None,
    notifier: Notifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without a ``session_factory`` the app owns the global engine built from
    ``settings.database_url`` and creates the schema on start-up.

    ``identity_verifier`` is the authentication layer's view of who passed
    OTP verification. Without one, every invitation acceptance is refused.
    """
    settings = settings or get_settings()
    engine = None
    if session_factory is None:
        engine, session_factory = init_db()

    resolver = actor_resolver or TokenActorResolver()
    if collaborators is None:
        # The token table doubles as the directory used to validate assignees.
        directory = resolver if isinstance(resolver, TokenActorResolver) else None
        collaborators = WorkflowCollaborators(actor_directory=directory)
    if identity_verifier is not None:
        collaborators = replace(collaborators, identity_verifier=identity_verifier)

    app = FastAPI(
        title="HR Workflow Engine API",
        description="Onboarding, leave and support ticket workflows",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.actor_resolver = resolver
    app.state.orchestrator = WorkflowOrchestrator(
        session_factory,
        collaborators=collaborators,
        notifier=notifier,
        settings=settings,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
        """Rejected operations surface as {kind, message, retryable}."""
        return JSONResponse(status_code=ERROR_STATUS[exc.kind], content=exc.to_dict())

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(onboarding_router, prefix="/api/v1")
    app.include_router(leaves_router, prefix="/api/v1")
    app.include_router(tickets_router, prefix="/api/v1")

    return app
