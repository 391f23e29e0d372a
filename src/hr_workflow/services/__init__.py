"""Workflow services."""

from hr_workflow.services.audit_service import AuditService
from hr_workflow.services.leave_service import LeaveService
from hr_workflow.services.ledger_service import LeaveBalance, LeaveLedgerService
from hr_workflow.services.onboarding_service import OnboardingService
from hr_workflow.services.orchestrator import EntityRef, UnitOfWork, WorkflowOrchestrator
from hr_workflow.services.ticket_service import TicketService, TicketStats, TicketView

__all__ = [
    "AuditService",
    "EntityRef",
    "LeaveBalance",
    "LeaveLedgerService",
    "LeaveService",
    "OnboardingService",
    "TicketService",
    "TicketStats",
    "TicketView",
    "UnitOfWork",
    "WorkflowOrchestrator",
]
