"""Support ticket API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from hr_workflow.api.dependencies import CurrentActor, Tickets
from hr_workflow.api.schemas import (
    AssignRequest,
    CommentCreate,
    ErrorResponse,
    RatingRequest,
    TicketCreate,
    TicketResponse,
    TicketStatsResponse,
    TicketTransitionRequest,
)
from hr_workflow.models import Ticket
from hr_workflow.roles import Actor
from hr_workflow.services import TicketView
from hr_workflow.workflows import TicketCategory, TicketPriority, TicketStatus

router = APIRouter(prefix="/tickets", tags=["tickets"])

ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


def _respond(ticket: Ticket, actor: Actor) -> TicketResponse:
    return TicketResponse.from_view(TicketView.for_actor(ticket, actor))


@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def open_ticket(body: TicketCreate, actor: CurrentActor, service: Tickets) -> TicketResponse:
    result = await service.open_ticket(
        actor,
        body.category,
        body.subject,
        body.description,
        priority=body.priority,
        employee_id=body.employee_id,
    )
    return _respond(result.unwrap(), actor)


@router.get("", response_model=list[TicketResponse], responses=ERRORS)
async def list_tickets(
    actor: CurrentActor,
    service: Tickets,
    status_filter: Annotated[TicketStatus | None, Query(alias="status")] = None,
    category: TicketCategory | None = None,
    priority: TicketPriority | None = None,
    assigned_to: UUID | None = None,
) -> list[TicketResponse]:
    """Tickets visible to the actor, newest first."""
    result = await service.list_tickets(
        actor,
        status=status_filter,
        category=category,
        priority=priority,
        assigned_to=assigned_to,
    )
    return [TicketResponse.from_view(v) for v in result.unwrap()]


@router.get("/assigned", response_model=list[TicketResponse], responses=ERRORS)
async def my_assigned_tickets(
    actor: CurrentActor,
    service: Tickets,
    status_filter: Annotated[TicketStatus | None, Query(alias="status")] = None,
) -> list[TicketResponse]:
    result = await service.assigned_to(actor, status=status_filter)
    return [TicketResponse.from_view(v) for v in result.unwrap()]


@router.get("/stats", response_model=TicketStatsResponse, responses=ERRORS)
async def ticket_stats(actor: CurrentActor, service: Tickets) -> TicketStatsResponse:
    result = await service.stats(actor)
    return TicketStatsResponse.from_stats(result.unwrap())

@router.get("/{ticket_id}", response_model=TicketResponse, responses=ERRORS)
async def get_ticket(ticket_id: UUID, actor: CurrentActor, service: Tickets) -> TicketResponse:
    """Ticket detail; internal comments are only shown to HR/ADMIN."""
    result = await service.get(actor, ticket_id)
    return TicketResponse.from_view(result.unwrap())


@router.post("/{ticket_id}/transition", response_model=TicketResponse, responses=ERRORS)
async def transition_ticket(
    ticket_id: UUID, body: TicketTransitionRequest, actor: CurrentActor, service: Tickets
) -> TicketResponse:
    result = await service.transition(
        actor, ticket_id, body.to, body.payload(), expected_version=body.expected_version
    )
    return _respond(result.unwrap(), actor)


@router.post("/{ticket_id}/assign", response_model=TicketResponse, responses=ERRORS)
async def assign_ticket(
    ticket_id: UUID, body: AssignRequest, actor: CurrentActor, service: Tickets
) -> TicketResponse:
    result = await service.assign(
        actor, ticket_id, body.assignee_id, expected_version=body.expected_version
    )
    return _respond(result.unwrap(), actor)


@router.post(
    "/{ticket_id}/comments",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def add_comment(
    ticket_id: UUID, body: CommentCreate, actor: CurrentActor, service: Tickets
) -> TicketResponse:
    result = await service.add_comment(actor, ticket_id, body.text, is_internal=body.is_internal)
    return _respond(result.unwrap(), actor)


@router.post("/{ticket_id}/rating", response_model=TicketResponse, responses=ERRORS)
async def rate_ticket(
    ticket_id: UUID, body: RatingRequest, actor: CurrentActor, service: Tickets
) -> TicketResponse:
    result = await service.rate(
        actor, ticket_id, body.rating, body.feedback, expected_version=body.expected_version
    )
    return _respond(result.unwrap(), actor)
