"""Onboarding API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from hr_workflow.api.dependencies import CurrentActor, Onboarding
from hr_workflow.api.schemas import (
    AuditEntryResponse,
    DocumentsUpdate,
    ErrorResponse,
    InviteRequest,
    OnboardingResponse,
    OnboardingTransitionRequest,
)
from hr_workflow.workflows import OnboardingStatus

router = APIRouter(prefix="/onboarding", tags=["onboarding"])

ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=OnboardingResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def invite_employee(
    body: InviteRequest, actor: CurrentActor, service: Onboarding
) -> OnboardingResponse:
    """Invite an employee (HR/ADMIN); the record starts in INVITED."""
    result = await service.invite(actor, body.employee_id, body.personal_email)
    return OnboardingResponse.model_validate(result.unwrap())


@router.get("", response_model=list[OnboardingResponse], responses=ERRORS)
async def list_onboarding(
    actor: CurrentActor,
    service: Onboarding,
    status_filter: Annotated[OnboardingStatus | None, Query(alias="status")] = None,
) -> list[OnboardingResponse]:
    """HR review queue; ``?status=SUBMITTED`` lists records awaiting review."""
    result = await service.list_records(actor, status=status_filter)
    return [OnboardingResponse.model_validate(r) for r in result.unwrap()]

@router.get("/{employee_id}", response_model=OnboardingResponse, responses=ERRORS)
async def get_onboarding(
    employee_id: UUID, actor: CurrentActor, service: Onboarding
) -> OnboardingResponse:
    result = await service.get(actor, employee_id)
    return OnboardingResponse.model_validate(result.unwrap())


@router.put("/{employee_id}/documents", response_model=OnboardingResponse, responses=ERRORS)
async def update_documents(
    employee_id: UUID, body: DocumentsUpdate, actor: CurrentActor, service: Onboarding
) -> OnboardingResponse:
    result = await service.update_documents(
        actor, employee_id, body.documents, expected_version=body.expected_version
    )
    return OnboardingResponse.model_validate(result.unwrap())


@router.post("/{employee_id}/transition", response_model=OnboardingResponse, responses=ERRORS)
async def transition_onboarding(
    employee_id: UUID,
    body: OnboardingTransitionRequest,
    actor: CurrentActor,
    service: Onboarding,
) -> OnboardingResponse:
    """Move the record along the onboarding workflow."""
    result = await service.transition(
        actor, employee_id, body.to, body.payload(), expected_version=body.expected_version
    )
    return OnboardingResponse.model_validate(result.unwrap())


@router.get(
    "/{employee_id}/history", response_model=list[AuditEntryResponse], responses=ERRORS
)
async def onboarding_history(
    employee_id: UUID, actor: CurrentActor, service: Onboarding
) -> list[AuditEntryResponse]:
    result = await service.history(actor, employee_id)
    return [AuditEntryResponse.model_validate(e) for e in result.unwrap()]
