"""Ticket service - support tickets, assignment, comments and rating."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_workflow.errors import Forbidden, GuardFailed, NotFound, WorkflowResult
from hr_workflow.models import Ticket, TicketComment
from hr_workflow.roles import Actor
from hr_workflow.services.orchestrator import EntityRef, UnitOfWork, WorkflowOrchestrator
from hr_workflow.workflows import EntityType, TicketCategory, TicketPriority, TicketStatus
from hr_workflow.workflows.ticket import assign_ticket, ensure_can_comment, ensure_can_rate

MAX_SUBJECT_LENGTH = 200


@dataclass(frozen=True)
class TicketView:
    """A ticket as one actor may see it."""

    ticket: Ticket
    comments: list[TicketComment]

    @classmethod
    def for_actor(cls, ticket: Ticket, actor: Actor) -> TicketView:
        return cls(
            ticket=ticket,
            comments=ticket.visible_comments(actor.can("ticket:comment:internal")),
        )


@dataclass(frozen=True)
class TicketStats:
    """Ticket counts and service quality figures for HR dashboards."""

    by_status: dict[str, int]
    by_category: dict[str, int]
    by_priority: dict[str, int]
    average_rating: float | None
    total_rated: int
    average_resolution_hours: float | None


class TicketService:
    """Operations on support tickets.

    Assignment, comments and rating are field mutations, not transitions;
    they still run through the orchestrator's unit of work so they are
    version-checked and (assignment, rating) audited.
    """

    def __init__(self, orchestrator: WorkflowOrchestrator):
        self.orchestrator = orchestrator

    async def open_ticket(
        self,
        actor: Actor,
        category: str,
        subject: str,
        description: str,
        priority: str = TicketPriority.MEDIUM.value,
        employee_id: UUID | None = None,
    ) -> WorkflowResult[Ticket]:
        """Raise a ticket; HR/ADMIN may raise one on an employee's behalf."""
        category = getattr(category, "value", category)
        priority = getattr(priority, "value", priority)
        owner_id = employee_id or actor.id

        async def _open(uow: UnitOfWork) -> Ticket:
            actor.require("ticket:open")
            if owner_id != actor.id:
                actor.require(
                    "ticket:open:on_behalf",
                    "Only HR or Admin users may open tickets for another employee",
                )
            if category not in {c.value for c in TicketCategory}:
                raise GuardFailed(f"Unknown ticket category '{category}'")
            if priority not in {p.value for p in TicketPriority}:
                raise GuardFailed(f"Unknown ticket priority '{priority}'")
            clean_subject = (subject or "").strip()
            if not clean_subject or len(clean_subject) > MAX_SUBJECT_LENGTH:
                raise GuardFailed(f"Subject must be 1 to {MAX_SUBJECT_LENGTH} characters")
            clean_description = (description or "").strip()
            if not clean_description:
                raise GuardFailed("A description is required")

            ticket = Ticket(
                employee_id=owner_id,
                created_by=actor.id,
                category=category,
                priority=priority,
                subject=clean_subject,
                description=clean_description,
                status=TicketStatus.OPEN.value,
                comments=[],
                created_at=uow.now,
                updated_at=uow.now,
            )
            uow.session.add(ticket)
            await uow.session.flush()
            uow.record(
                "opened",
                EntityType.TICKET,
                ticket.ticket_id,
                ticket,
                actor,
                from_state=None,
                to_state=ticket.status,
            )
            return ticket

        return await self.orchestrator.run(_open, description=f"open ticket for {owner_id}")

    async def transition(
        self,
        actor: Actor,
        ticket_id: UUID,
        to: str,
        payload: Mapping[str, Any] | None = None,
        *,
        expected_version: int | None = None,
    ) -> WorkflowResult[Ticket]:
        return await self.orchestrator.apply_transition(
            EntityRef(EntityType.TICKET, ticket_id),
            to,
            actor,
            payload,
            expected_version=expected_version,
        )

    async def assign(
        self,
        actor: Actor,
        ticket_id: UUID,
        assignee_id: UUID,
        *,
        expected_version: int | None = None,
    ) -> WorkflowResult[Ticket]:
        """Set the assignee; status is unchanged."""

        async def _assign(uow: UnitOfWork) -> Ticket:
            actor.require("ticket:manage", "Only HR or Admin users may assign tickets")
            ticket: Ticket = await self.orchestrator.load(
                uow.session, EntityType.TICKET, ticket_id, expected_version
            )
            assign_ticket(ticket, assignee_id, actor, self.orchestrator.collaborators, uow.now)
            uow.record(
                "assigned",
                EntityType.TICKET,
                ticket_id,
                ticket,
                actor,
                from_state=ticket.status,
                to_state=ticket.status,
                note=f"assigned to {assignee_id}",
            )
            return ticket

        return await self.orchestrator.run(_assign, description=f"assign ticket {ticket_id}")

    async def add_comment(
        self,
        actor: Actor,
        ticket_id: UUID,
        text: str,
        is_internal: bool = False,
    ) -> WorkflowResult[Ticket]:
        async def _comment(uow: UnitOfWork) -> Ticket:
            ticket: Ticket = await self.orchestrator.load(uow.session, EntityType.TICKET, ticket_id)
            ensure_can_comment(ticket, actor, is_internal)
            body = (text or "").strip()
            if not body:
                raise GuardFailed("Comment text is required")
            ticket.comments.append(
                TicketComment(
                    author_id=actor.id,
                    text=body,
                    is_internal=is_internal,
                    created_at=uow.now,
                )
            )
            ticket.updated_at = uow.now
            uow.queue(
                "commented",
                EntityType.TICKET,
                ticket_id,
                ticket,
                actor,
                note="internal" if is_internal else None,
            )
            return ticket

        return await self.orchestrator.run(_comment, description=f"comment on ticket {ticket_id}")

    async def rate(
        self,
        actor: Actor,
        ticket_id: UUID,
        rating: int,
        feedback: str | None = None,
        *,
        expected_version: int | None = None,
    ) -> WorkflowResult[Ticket]:
        """Rate a RESOLVED ticket, once, as its owner."""

        async def _rate(uow: UnitOfWork) -> Ticket:
            ticket: Ticket = await self.orchestrator.load(
                uow.session, EntityType.TICKET, ticket_id, expected_version
            )
            ensure_can_rate(ticket, actor, rating)
            ticket.rating = rating
            ticket.feedback = (feedback or "").strip() or None
            ticket.rated_at = uow.now
            uow.record(
                "rated",
                EntityType.TICKET,
                ticket_id,
                ticket,
                actor,
                from_state=ticket.status,
                to_state=ticket.status,
                note=f"rating {rating}",
            )
            return ticket

        return await self.orchestrator.run(_rate, description=f"rate ticket {ticket_id}")

    async def get(self, actor: Actor, ticket_id: UUID) -> WorkflowResult[TicketView]:
        """Ticket with comments filtered for the actor (no internal notes for employees)."""

        async def _get(session: AsyncSession) -> TicketView:
            ticket = await session.get(Ticket, ticket_id)
            if ticket is None or not (
                actor.owns(ticket.employee_id) or actor.can("ticket:view:any")
            ):
                raise NotFound(f"Ticket {ticket_id} not found")
            return TicketView.for_actor(ticket, actor)

        return await self.orchestrator.read(_get)

    async def list_tickets(
        self,
        actor: Actor,
        *,
        status: str | None = None,
        category: str | None = None,
        priority: str | None = None,
        assigned_to: UUID | None = None,
    ) -> WorkflowResult[list[TicketView]]:
        """Newest first. Employees only ever see the tickets raised for them."""
        filters = {
            "status": getattr(status, "value", status),
            "category": getattr(category, "value", category),
            "priority": getattr(priority, "value", priority),
            "assigned_to": assigned_to,
        }
        owner_id = None if actor.can("ticket:view:any") else actor.id

        async def _list(session: AsyncSession) -> list[TicketView]:
            query = select(Ticket)
            if owner_id is not None:
                query = query.where(Ticket.employee_id == owner_id)
            for column, value in filters.items():
                if value is not None:
                    query = query.where(getattr(Ticket, column) == value)
            result = await session.execute(query.order_by(Ticket.created_at.desc()))
            return [TicketView.for_actor(t, actor) for t in result.scalars().all()]

        return await self.orchestrator.read(_list)

    async def assigned_to(
        self, actor: Actor, status: str | None = None
    ) -> WorkflowResult[list[TicketView]]:
        """Tickets assigned to the acting HR/ADMIN user."""
        if not actor.can("ticket:manage"):
            return WorkflowResult.failure(
                Forbidden("Only HR or Admin users have assigned tickets")
            )
        return await self.list_tickets(actor, status=status, assigned_to=actor.id)

    async def stats(self, actor: Actor) -> WorkflowResult[TicketStats]:
        """Counts by status, category and priority, plus rating and resolution averages."""
        if not actor.can("ticket:view:any"):
            return WorkflowResult.failure(
                Forbidden("Only HR or Admin users may view ticket statistics")
            )

        async def _counts(session: AsyncSession, column: Any) -> dict[str, int]:
            result = await session.execute(select(column, func.count()).group_by(column))
            return {key: count for key, count in result.all()}

        async def _stats(session: AsyncSession) -> TicketStats:
            rated = await session.execute(
                select(func.avg(Ticket.rating), func.count(Ticket.rating)).where(
                    Ticket.rating.is_not(None)
                )
            )
            average_rating, total_rated = rated.one()

            resolved = await session.execute(
                select(Ticket.created_at, Ticket.resolved_at).where(
                    Ticket.resolved_at.is_not(None)
                )
            )
            hours = [
                (resolved_at - created_at).total_seconds() / 3600
                for created_at, resolved_at in resolved.all()
            ]

            return TicketStats(
                by_status=await _counts(session, Ticket.status),
                by_category=await _counts(session, Ticket.category),
                by_priority=await _counts(session, Ticket.priority),
                average_rating=float(average_rating) if average_rating is not None else None,
                total_rated=total_rated,
                average_resolution_hours=sum(hours) / len(hours) if hours else None,
            )

        return await self.orchestrator.read(_stats)
