"""Pytest fixtures for workflow engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from hr_workflow.config import Settings
from hr_workflow.database import create_schema, create_session_factory, get_engine
from hr_workflow.events import NotificationEmitter, WorkflowEvent
from hr_workflow.roles import Actor, Role, TokenActorResolver
from hr_workflow.services import (
    LeaveService,
    OnboardingService,
    TicketService,
    WorkflowOrchestrator,
)
from hr_workflow.workflows import VerifiedIdentityRegistry, WorkflowCollaborators

# Monday 3 March 2025, 09:00 UTC
FIXED_NOW = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


class RecordingCredentialStore:
    """Keeps handed-over credentials so tests can see what reached the store."""

    def __init__(self) -> None:
        self.secrets: dict[UUID, str] = {}

    def set_credential(self, employee_id: UUID, secret: str) -> None:
        self.secrets[employee_id] = secret


class FrozenClock:
    """Deterministic clock handed to the orchestrator."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite file.

    A file (not :memory:) so concurrent sessions really use separate connections.
    """
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'workflow.db'}",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        create_schema=False,
        invitation_ttl_days=7,
        min_password_length=8,
        allow_backdated_leave=False,
    )


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with the schema in place."""
    engine = get_engine(settings.database_url)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(FIXED_NOW)


# ----------------------------------------------------------------------------
# Actors
# ----------------------------------------------------------------------------


@pytest.fixture
def employee() -> Actor:
    return Actor(id=uuid4(), role=Role.EMPLOYEE, gender="female")


@pytest.fixture
def other_employee() -> Actor:
    return Actor(id=uuid4(), role=Role.EMPLOYEE, gender="male")


@pytest.fixture
def hr() -> Actor:
    return Actor(id=uuid4(), role=Role.HR)


@pytest.fixture
def admin() -> Actor:
    return Actor(id=uuid4(), role=Role.ADMIN)


@pytest.fixture
def resolver(employee, other_employee, hr, admin) -> TokenActorResolver:
    return TokenActorResolver(
        {
            "employee-token": employee,
            "other-employee-token": other_employee,
            "hr-token": hr,
            "admin-token": admin,
        }
    )


# ----------------------------------------------------------------------------
# Notifications
# ----------------------------------------------------------------------------


@pytest.fixture
def sent_events() -> list[WorkflowEvent]:
    return []


@pytest.fixture
def emitter(sent_events) -> NotificationEmitter:
    emitter = NotificationEmitter()
    emitter.on_all(lambda event, entity: sent_events.append(event))
    return emitter


# ----------------------------------------------------------------------------
# Collaborators
# ----------------------------------------------------------------------------


@pytest.fixture
def identity_registry() -> VerifiedIdentityRegistry:
    return VerifiedIdentityRegistry()


@pytest.fixture
def credential_store() -> RecordingCredentialStore:
    return RecordingCredentialStore()


# ----------------------------------------------------------------------------
# Services
# ----------------------------------------------------------------------------


@pytest.fixture
def orchestrator(
    session_factory, settings, clock, resolver, emitter, identity_registry, credential_store
) -> WorkflowOrchestrator:
    return WorkflowOrchestrator(
        session_factory,
        collaborators=WorkflowCollaborators(
            identity_verifier=identity_registry,
            credential_store=credential_store,
            actor_directory=resolver,
        ),
        notifier=emitter,
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def onboarding_service(orchestrator) -> OnboardingService:
    return OnboardingService(orchestrator)


@pytest.fixture
def leave_service(orchestrator) -> LeaveService:
    return LeaveService(orchestrator)


@pytest.fixture
def ticket_service(orchestrator) -> TicketService:
    return TicketService(orchestrator)


@pytest.fixture
def complete_documents() -> dict[str, Any]:
    """Every document slot the default checker requires."""
    return {
        "government_id": {"type": "passport", "number": "X1234567"},
        "addresses": [{"line1": "1 Main Street", "city": "Springfield", "country": "US"}],
        "employment": {
            "job_title": "Software Engineer",
            "department": "Engineering",
            "employment_type": "full_time",
            "joining_date": "2025-04-01",
        },
    }
