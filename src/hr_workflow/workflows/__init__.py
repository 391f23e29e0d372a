"""Transition tables for every workflow entity."""

from hr_workflow.workflows.collaborators import (
    CredentialStore,
    DocumentChecker,
    IdentityVerifier,
    LoggingCredentialStore,
    RequiredDocumentsChecker,
    VerifiedIdentityRegistry,
    WorkflowCollaborators,
)
from hr_workflow.workflows.leave import LEAVE_MACHINE, LeaveStatus, LeaveType, count_leave_days
from hr_workflow.workflows.onboarding import ONBOARDING_MACHINE, OnboardingStatus
from hr_workflow.workflows.state_machine import (
    EntityType,
    StateMachine,
    Transition,
    TransitionContext,
)
from hr_workflow.workflows.ticket import (
    TICKET_MACHINE,
    TicketCategory,
    TicketPriority,
    TicketStatus,
)

WORKFLOWS: dict[EntityType, StateMachine] = {
    EntityType.ONBOARDING: ONBOARDING_MACHINE,
    EntityType.LEAVE: LEAVE_MACHINE,
    EntityType.TICKET: TICKET_MACHINE,
}

__all__ = [
    "CredentialStore",
    "DocumentChecker",
    "EntityType",
    "IdentityVerifier",
    "LEAVE_MACHINE",
    "LeaveStatus",
    "LeaveType",
    "LoggingCredentialStore",
    "ONBOARDING_MACHINE",
    "OnboardingStatus",
    "RequiredDocumentsChecker",
    "StateMachine",
    "TICKET_MACHINE",
    "TicketCategory",
    "TicketPriority",
    "TicketStatus",
    "Transition",
    "TransitionContext",
    "VerifiedIdentityRegistry",
    "WORKFLOWS",
    "WorkflowCollaborators",
    "count_leave_days",
]
