"""Support ticket state machine, assignment and rating rules."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from hr_workflow.errors import Forbidden, GuardFailed
from hr_workflow.models import Ticket, TicketComment
from hr_workflow.roles import Actor
from hr_workflow.workflows.collaborators import WorkflowCollaborators
from hr_workflow.workflows.state_machine import (
    EntityType,
    StateMachine,
    Transition,
    TransitionContext,
)


class TicketStatus(str, Enum):
    """Ticket status values."""

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class TicketCategory(str, Enum):
    IT = "IT"
    HR = "HR"
    FINANCE = "FINANCE"
    ADMIN = "ADMIN"
    OTHER = "OTHER"


class TicketPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


TERMINAL_STATUSES = frozenset({TicketStatus.CLOSED.value, TicketStatus.CANCELLED.value})
MIN_RATING = 1
MAX_RATING = 5


def assign_ticket(
    ticket: Ticket,
    assignee_id: UUID,
    actor: Actor,
    collaborators: WorkflowCollaborators,
    now: datetime,
) -> None:
    """Set the assignee without touching status.

    Leaves an internal note on the ticket so the change shows in the staff thread.
    """
    if ticket.status in TERMINAL_STATUSES:
        raise GuardFailed(f"Cannot assign a {ticket.status} ticket")
    directory = collaborators.actor_directory
    if directory is not None:
        assignee = directory.get(assignee_id)
        if assignee is None or not assignee.is_staff:
            raise GuardFailed("Tickets can only be assigned to HR or Admin users")
    ticket.assigned_to = assignee_id
    ticket.comments.append(
        TicketComment(
            author_id=actor.id,
            text=f"Ticket assigned to {assignee_id}",
            is_internal=True,
            created_at=now,
        )
    )


def ensure_can_comment(ticket: Ticket, actor: Actor, is_internal: bool) -> None:
    actor.require("ticket:comment")
    if ticket.status in TERMINAL_STATUSES:
        raise GuardFailed(f"Cannot comment on a {ticket.status} ticket")
    if not (actor.can("ticket:view:any") or actor.owns(ticket.employee_id)):
        raise Forbidden("Not authorized to comment on this ticket")
    if is_internal and not actor.can("ticket:comment:internal"):
        raise Forbidden("Only HR or Admin users may add internal comments")


def ensure_can_rate(ticket: Ticket, actor: Actor, rating: int) -> None:
    if not actor.owns(ticket.employee_id):
        raise Forbidden("Only the employee who raised the ticket may rate it")
    if ticket.rating is not None:
        raise GuardFailed("Ticket has already been rated")
    if ticket.status != TicketStatus.RESOLVED.value:
        raise GuardFailed("Only resolved tickets can be rated")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise GuardFailed(f"Rating must be between {MIN_RATING} and {MAX_RATING}")


# ---- guards ----------------------------------------------------------------


def _has_assignee(ctx: TransitionContext) -> None:
    if ctx.entity.assigned_to is None and ctx.uuid("assigned_to") is None:
        raise GuardFailed("Ticket must be assigned before it is resolved")


def _has_resolution(ctx: TransitionContext) -> None:
    resolution = ctx.text("resolution") or (ctx.entity.resolution or "").strip()
    if not resolution:
        raise GuardFailed("A resolution is required to close the ticket")


# ---- side effects ----------------------------------------------------------


def _apply_assignment(ctx: TransitionContext) -> None:
    assignee_id = ctx.uuid("assigned_to")
    if assignee_id is not None and assignee_id != ctx.entity.assigned_to:
        assign_ticket(ctx.entity, assignee_id, ctx.actor, ctx.collaborators, ctx.now)


async def _start(ctx: TransitionContext) -> None:
    _apply_assignment(ctx)


async def _resolve(ctx: TransitionContext) -> None:
    ticket: Ticket = ctx.entity
    _apply_assignment(ctx)
    resolution = ctx.text("resolution")
    if resolution is not None:
        ticket.resolution = resolution
    ticket.resolved_by = ctx.actor.id
    ticket.resolved_at = ctx.now


async def _reopen(ctx: TransitionContext) -> None:
    ctx.entity.resolved_by = None
    ctx.entity.resolved_at = None


async def _close(ctx: TransitionContext) -> None:
    resolution = ctx.text("resolution")
    if resolution is not None:
        ctx.entity.resolution = resolution
    ctx.entity.closed_at = ctx.now


S = TicketStatus

TICKET_MACHINE = StateMachine(
    entity_type=EntityType.TICKET,
    model=Ticket,
    statuses=TicketStatus,
    transitions=[
        Transition(S.OPEN.value, S.IN_PROGRESS.value, capability="ticket:manage", effect=_start),
        Transition(
            S.OPEN.value, S.CANCELLED.value, capability="ticket:manage", allow_owner=True
        ),
        Transition(
            S.IN_PROGRESS.value,
            S.RESOLVED.value,
            capability="ticket:manage",
            guards=(_has_assignee,),
            effect=_resolve,
        ),
        Transition(
            S.IN_PROGRESS.value, S.CANCELLED.value, capability="ticket:manage", allow_owner=True
        ),
        Transition(
            S.RESOLVED.value,
            S.CLOSED.value,
            capability="ticket:manage",
            guards=(_has_resolution,),
            effect=_close,
        ),
        Transition(
            S.RESOLVED.value,
            S.IN_PROGRESS.value,
            capability="ticket:manage",
            effect=_reopen,
            description="reopen",
        ),
    ],
)
