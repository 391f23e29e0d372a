"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hr_workflow.services import TicketStats, TicketView
from hr_workflow.workflows import (
    LeaveStatus,
    LeaveType,
    OnboardingStatus,
    TicketCategory,
    TicketPriority,
    TicketStatus,
)


class ErrorResponse(BaseModel):
    """Structured workflow error."""

    kind: str
    message: str
    retryable: bool = False


class TransitionRequest(BaseModel):
    """Common transition fields; subclasses add the payload keys."""

    expected_version: int | None = None
    note: str | None = None

    def payload(self) -> dict[str, Any]:
        """Payload handed to guards and side effects."""
        return self.model_dump(exclude={"to", "expected_version"}, exclude_none=True)


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    audit_entry_id: int
    entity_type: str
    entity_id: UUID
    from_state: str | None = None
    to_state: str
    actor_id: UUID
    timestamp: datetime
    note: str | None = None


# ============================================================================
# Onboarding schemas
# ============================================================================


class InviteRequest(BaseModel):
    """Schema for inviting an employee."""

    employee_id: UUID
    personal_email: str | None = None


class DocumentsUpdate(BaseModel):
    """Document slots to merge into a PENDING record."""

    documents: dict[str, Any]
    expected_version: int | None = None


class OnboardingTransitionRequest(TransitionRequest):
    to: OnboardingStatus
    comments: str | None = None
    documents: dict[str, Any] | None = None
    password: str | None = Field(default=None, repr=False)


class OnboardingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    status: str
    personal_email: str | None = None
    submitted_documents: dict[str, Any]
    invited_by: UUID
    invited_at: datetime
    expires_at: datetime
    verified_at: datetime | None = None
    submitted_at: datetime | None = None
    reviewed_at: datetime | None = None
    reviewer_id: UUID | None = None
    review_comments: str | None = None
    completed_at: datetime | None = None
    version: int
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Leave schemas
# ============================================================================


class LeaveRequestCreate(BaseModel):
    """Schema for submitting a leave request."""

    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str


class LeaveTransitionRequest(TransitionRequest):
    to: LeaveStatus
    rejection_reason: str | None = None


class LeaveRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    leave_request_id: UUID
    employee_id: UUID
    leave_type: str
    start_date: date
    end_date: date
    number_of_days: int
    ledger_year: int
    status: str
    reason: str
    approver_id: UUID | None = None
    decided_at: datetime | None = None
    rejection_reason: str | None = None
    cancelled_at: datetime | None = None
    version: int
    created_at: datetime
    updated_at: datetime


class LeaveBalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    leave_type: str
    year: int
    entitlement: int
    consumed: int
    reserved: int
    available: int


class EntitlementUpdate(BaseModel):
    days: int = Field(ge=0)


# ============================================================================
# Ticket schemas
# ============================================================================


class TicketCreate(BaseModel):
    """Schema for opening a ticket."""

    category: TicketCategory
    subject: str
    description: str
    priority: TicketPriority = TicketPriority.MEDIUM
    employee_id: UUID | None = None


class TicketTransitionRequest(TransitionRequest):
    to: TicketStatus
    resolution: str | None = None
    assigned_to: UUID | None = None


class AssignRequest(BaseModel):
    assignee_id: UUID
    expected_version: int | None = None


class CommentCreate(BaseModel):
    text: str
    is_internal: bool = False


class RatingRequest(BaseModel):
    rating: int
    feedback: str | None = None
    expected_version: int | None = None


class TicketCommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket_comment_id: int
    author_id: UUID
    text: str
    is_internal: bool
    created_at: datetime


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket_id: UUID
    employee_id: UUID
    created_by: UUID
    category: str
    priority: str
    subject: str
    description: str
    status: str
    assigned_to: UUID | None = None
    resolution: str | None = None
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None
    rating: int | None = None
    feedback: str | None = None
    rated_at: datetime | None = None
    version: int
    created_at: datetime
    updated_at: datetime
    comments: list[TicketCommentResponse] = []

    @classmethod
    def from_view(cls, view: TicketView) -> "TicketResponse":
        """Build from a ticket view; the view decides which comments show."""
        response = cls.model_validate(view.ticket)
        response.comments = [TicketCommentResponse.model_validate(c) for c in view.comments]
        return response


class TicketStatsResponse(BaseModel):
    by_status: dict[str, int]
    by_category: dict[str, int]
    by_priority: dict[str, int]
    average_rating: float | None = None
    total_rated: int
    average_resolution_hours: float | None = None

    @classmethod
    def from_stats(cls, stats: TicketStats) -> "TicketStatsResponse":
        return cls.model_validate(stats, from_attributes=True)
