"""Leave request and balance API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from hr_workflow.api.dependencies import CurrentActor, Leaves
from hr_workflow.api.schemas import (
    EntitlementUpdate,
    ErrorResponse,
    LeaveBalanceResponse,
    LeaveRequestCreate,
    LeaveRequestResponse,
    LeaveTransitionRequest,
)
from hr_workflow.workflows import LeaveStatus, LeaveType

router = APIRouter(prefix="/leaves", tags=["leaves"])

ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=LeaveRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def request_leave(
    body: LeaveRequestCreate, actor: CurrentActor, service: Leaves
) -> LeaveRequestResponse:
    """Submit a leave request; its days are reserved immediately."""
    result = await service.request_leave(
        actor, body.leave_type, body.start_date, body.end_date, body.reason
    )
    return LeaveRequestResponse.model_validate(result.unwrap())


@router.get("", response_model=list[LeaveRequestResponse], responses=ERRORS)
async def list_leave_requests(
    actor: CurrentActor,
    service: Leaves,
    status_filter: Annotated[LeaveStatus | None, Query(alias="status")] = None,
    employee_id: UUID | None = None,
) -> list[LeaveRequestResponse]:
    result = await service.list_requests(actor, status=status_filter, employee_id=employee_id)
    return [LeaveRequestResponse.model_validate(r) for r in result.unwrap()]


@router.get(
    "/balances/{employee_id}", response_model=list[LeaveBalanceResponse], responses=ERRORS
)
async def leave_balances(
    employee_id: UUID,
    actor: CurrentActor,
    service: Leaves,
    year: Annotated[int, Query(ge=1900, le=9999)],
) -> list[LeaveBalanceResponse]:
    result = await service.balances(actor, employee_id, year)
    return [LeaveBalanceResponse.model_validate(b) for b in result.unwrap()]


@router.put(
    "/balances/{employee_id}/{leave_type}/{year}",
    response_model=LeaveBalanceResponse,
    responses=ERRORS,
)
async def set_entitlement(
    employee_id: UUID,
    leave_type: LeaveType,
    year: int,
    body: EntitlementUpdate,
    actor: CurrentActor,
    service: Leaves,
) -> LeaveBalanceResponse:
    result = await service.set_entitlement(actor, employee_id, leave_type, year, body.days)
    return LeaveBalanceResponse.model_validate(result.unwrap())


@router.get("/{leave_request_id}", response_model=LeaveRequestResponse, responses=ERRORS)
async def get_leave_request(
    leave_request_id: UUID, actor: CurrentActor, service: Leaves
) -> LeaveRequestResponse:
    result = await service.get(actor, leave_request_id)
    return LeaveRequestResponse.model_validate(result.unwrap())


@router.post(
    "/{leave_request_id}/transition", response_model=LeaveRequestResponse, responses=ERRORS
)
async def transition_leave_request(
    leave_request_id: UUID,
    body: LeaveTransitionRequest,
    actor: CurrentActor,
    service: Leaves,
) -> LeaveRequestResponse:
    """Approve, reject or cancel a leave request."""
    result = await service.transition(
        actor, leave_request_id, body.to, body.payload(), expected_version=body.expected_version
    )
    return LeaveRequestResponse.model_validate(result.unwrap())
