"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from hr_workflow.roles import Actor
from hr_workflow.services import (
    LeaveService,
    OnboardingService,
    TicketService,
    WorkflowOrchestrator,
)


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with request.app.state.session_factory() as session:
        yield session


def get_orchestrator(request: Request) -> WorkflowOrchestrator:
    return request.app.state.orchestrator


async def get_actor(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> Actor:
    """Resolve the acting user from the bearer token."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Bearer token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    actor = request.app.state.actor_resolver.resolve(token.strip())
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


Orchestrator = Annotated[WorkflowOrchestrator, Depends(get_orchestrator)]


def get_onboarding_service(orchestrator: Orchestrator) -> OnboardingService:
    return OnboardingService(orchestrator)


def get_leave_service(orchestrator: Orchestrator) -> LeaveService:
    return LeaveService(orchestrator)


def get_ticket_service(orchestrator: Orchestrator) -> TicketService:
    return TicketService(orchestrator)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
Onboarding = Annotated[OnboardingService, Depends(get_onboarding_service)]
Leaves = Annotated[LeaveService, Depends(get_leave_service)]
Tickets = Annotated[TicketService, Depends(get_ticket_service)]
