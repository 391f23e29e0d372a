"""ORM models for the workflow engine."""

from hr_workflow.models.audit import AuditEntry, AuditImmutableError
from hr_workflow.models.base import Base, TimestampMixin, UTCDateTime, utcnow
from hr_workflow.models.leave import LeaveLedgerEntry, LeaveRequest
from hr_workflow.models.onboarding import OnboardingRecord
from hr_workflow.models.ticket import Ticket, TicketComment

__all__ = [
    "AuditEntry",
    "AuditImmutableError",
    "Base",
    "LeaveLedgerEntry",
    "LeaveRequest",
    "OnboardingRecord",
    "TimestampMixin",
    "Ticket",
    "TicketComment",
    "UTCDateTime",
    "utcnow",
]
