"""Workflow orchestrator - the single mutation path for workflow entities.

Every change runs as one unit of work:
1. Load the entity (optimistic version read)
2. Look up (current, target) in the owning machine's table
3. Authorize the actor and evaluate the guards
4. Apply the status change and side effects (ledger included)
5. Append an audit entry
6. Commit, then run deferred hand-offs and notify

Any rejection rolls the whole unit back and is returned, not raised.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from hr_workflow.config import Settings, get_settings
from hr_workflow.errors import NotFound, StaleState, WorkflowError, WorkflowResult
from hr_workflow.events import NotificationEmitter, Notifier, WorkflowEvent
from hr_workflow.models import utcnow
from hr_workflow.roles import Actor
from hr_workflow.services.audit_service import AuditService
from hr_workflow.services.ledger_service import LeaveLedgerService
from hr_workflow.workflows import WORKFLOWS, EntityType, StateMachine, TransitionContext
from hr_workflow.workflows.collaborators import WorkflowCollaborators

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class EntityRef:
    """Points at one workflow entity."""

    entity_type: EntityType
    entity_id: UUID


@dataclass
class UnitOfWork:
    """Transaction-scoped services and the events to publish on commit."""

    session: AsyncSession
    audit: AuditService
    ledger: LeaveLedgerService
    now: datetime
    events: list[tuple[WorkflowEvent, Any]] = field(default_factory=list)
    after_commit: list[Callable[[], None]] = field(default_factory=list)

    def record(
        self,
        action: str,
        entity_type: EntityType,
        entity_id: UUID,
        entity: Any,
        actor: Actor,
        *,
        from_state: str | None,
        to_state: str,
        note: str | None = None,
    ) -> None:
        """Append the audit entry and queue the matching notification."""
        self.audit.record(
            entity_type=entity_type.value,
            entity_id=entity_id,
            from_state=from_state,
            to_state=to_state,
            actor_id=actor.id,
            timestamp=self.now,
            note=note,
        )
        self.queue(action, entity_type, entity_id, entity, actor,
                   from_state=from_state, to_state=to_state, note=note)

    def queue(
        self,
        action: str,
        entity_type: EntityType,
        entity_id: UUID,
        entity: Any,
        actor: Actor,
        *,
        from_state: str | None = None,
        to_state: str | None = None,
        note: str | None = None,
    ) -> None:
        """Queue a notification without an audit entry."""
        event = WorkflowEvent(
            name=f"{entity_type.value}.{action}",
            entity_type=entity_type.value,
            entity_id=entity_id,
            actor_id=actor.id,
            occurred_at=self.now,
            from_state=from_state,
            to_state=to_state,
            note=note,
        )
        self.events.append((event, entity))


class WorkflowOrchestrator:
    """Runs guarded, audited, all-or-nothing operations on workflow entities."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        machines: Mapping[EntityType, StateMachine] | None = None,
        collaborators: WorkflowCollaborators | None = None,
        notifier: Notifier | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.machines = dict(machines or WORKFLOWS)
        self.collaborators = collaborators or WorkflowCollaborators()
        self.notifier = notifier if notifier is not None else NotificationEmitter()
        self.settings = settings or get_settings()
        self.clock = clock

    def machine_for(self, entity_type: EntityType) -> StateMachine:
        return self.machines[entity_type]

    async def run(
        self,
        operation: Callable[[UnitOfWork], Awaitable[T]],
        *,
        description: str,
    ) -> WorkflowResult[T]:
        """Execute an operation as one transaction.

        The operation raises WorkflowError to reject; the transaction is then
        rolled back and the error returned.
        """
        async with self.session_factory() as session:
            uow = UnitOfWork(
                session=session,
                audit=AuditService(session),
                ledger=LeaveLedgerService(session),
                now=self.clock(),
            )
            try:
                async with session.begin():
                    entity = await operation(uow)
                    await session.flush()
            except WorkflowError as exc:
                logger.info("Rejected %s: %s (%s)", description, exc.message, exc.kind.value)
                return WorkflowResult.failure(exc)
            except (StaleDataError, IntegrityError):
                logger.info("Rejected %s: concurrent modification", description)
                return WorkflowResult.failure(StaleState())

        logger.info("Committed %s", description)
        self._run_after_commit(uow.after_commit, description)
        self._publish(uow.events)
        return WorkflowResult.success(entity)

    async def read(
        self,
        operation: Callable[[AsyncSession], Awaitable[T]],
    ) -> WorkflowResult[T]:
        """Run a read-only operation; WorkflowError is returned, not raised."""
        async with self.session_factory() as session:
            try:
                return WorkflowResult.success(await operation(session))
            except WorkflowError as exc:
                return WorkflowResult.failure(exc)

    async def load(
        self,
        session: AsyncSession,
        entity_type: EntityType,
        entity_id: UUID,
        expected_version: int | None = None,
    ) -> Any:
        """Load an entity for mutation, checking the caller's version if given."""
        machine = self.machine_for(entity_type)
        entity = await session.get(machine.model, entity_id, populate_existing=True)
        if entity is None:
            raise NotFound(f"{entity_type.value.capitalize()} {entity_id} not found")
        if expected_version is not None and entity.version != expected_version:
            raise StaleState()
        return entity

    async def apply_transition(
        self,
        entity_ref: EntityRef,
        target_state: str,
        actor: Actor,
        payload: Mapping[str, Any] | None = None,
        *,
        expected_version: int | None = None,
    ) -> WorkflowResult[Any]:
        """Move an entity to ``target_state`` on behalf of ``actor``.

        Returns the updated entity, or the InvalidTransition / Forbidden /
        GuardFailed / StaleState / NotFound error. State is unchanged on error.
        """
        machine = self.machine_for(entity_ref.entity_type)
        target = getattr(target_state, "value", target_state)
        data = dict(payload or {})

        async def _transition(uow: UnitOfWork) -> Any:
            entity = await self.load(
                uow.session, entity_ref.entity_type, entity_ref.entity_id, expected_version
            )
            source = entity.status
            raced = machine.raced(source, target)
            if raced is not None:
                machine.authorize(raced, actor, entity.employee_id)
                raise StaleState()
            transition = machine.lookup(source, target)
            machine.authorize(transition, actor, entity.employee_id)

            ctx = TransitionContext(
                session=uow.session,
                entity=entity,
                actor=actor,
                payload=data,
                source=source,
                target=target,
                now=uow.now,
                ledger=uow.ledger,
                collaborators=self.collaborators,
                settings=self.settings,
                after_commit=uow.after_commit,
            )
            for guard in transition.guards:
                guard(ctx)

            entity.status = target
            if transition.effect is not None:
                await transition.effect(ctx)

            note = (
                ctx.text("note")
                or ctx.text("comments")
                or ctx.text("rejection_reason")
                or ctx.text("resolution")
            )
            uow.record(
                target.lower(),
                entity_ref.entity_type,
                entity_ref.entity_id,
                entity,
                actor,
                from_state=source,
                to_state=target,
                note=note,
            )
            return entity

        return await self.run(
            _transition,
            description=(
                f"{entity_ref.entity_type.value} {entity_ref.entity_id} -> {target} "
                f"by {actor.role.value} {actor.id}"
            ),
        )

    def _publish(self, events: list[tuple[WorkflowEvent, Any]]) -> None:
        """Fire-and-forget: a failing notifier never undoes a committed change."""
        for event, entity in events:
            try:
                self.notifier.notify(event, entity)
            except Exception:
                logger.exception("Notifier failed for %s %s", event.name, event.entity_id)

    def _run_after_commit(self, callbacks: list[Callable[[], None]], description: str) -> None:
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("After-commit hook failed for %s", description)
