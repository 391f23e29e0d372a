"""Onboarding state machine: invitation through active employment."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from hr_workflow.errors import GuardFailed
from hr_workflow.models import OnboardingRecord
from hr_workflow.workflows.state_machine import (
    EntityType,
    StateMachine,
    Transition,
    TransitionContext,
)


class OnboardingStatus(str, Enum):
    """Onboarding status values."""

    INVITED = "INVITED"
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


# A review request arriving in one of these lost the race to another reviewer.
REVIEWED_STATUSES = frozenset(
    {
        OnboardingStatus.APPROVED.value,
        OnboardingStatus.REJECTED.value,
        OnboardingStatus.COMPLETED.value,
    }
)


def merge_documents(current: Mapping[str, Any], update: Mapping[str, Any] | None) -> dict[str, Any]:
    """Overlay submitted document slots; slots not mentioned are kept."""
    merged = dict(current or {})
    merged.update(update or {})
    return merged


# ---- guards ----------------------------------------------------------------


def _invitation_not_expired(ctx: TransitionContext) -> None:
    record: OnboardingRecord = ctx.entity
    if record.expires_at <= ctx.now:
        raise GuardFailed("Invitation has expired; ask HR to send a new one")


def _identity_verified(ctx: TransitionContext) -> None:
    record: OnboardingRecord = ctx.entity
    verifier = ctx.collaborators.identity_verifier
    if not verifier.is_verified(record.employee_id):
        raise GuardFailed("Identity verification has not succeeded")


def _documents_complete(ctx: TransitionContext) -> None:
    record: OnboardingRecord = ctx.entity
    documents = merge_documents(record.submitted_documents, ctx.payload.get("documents"))
    if not ctx.collaborators.document_checker.is_complete(documents):
        raise GuardFailed(
            "Onboarding documents are incomplete: a government ID, at least one "
            "address and the employment details are required"
        )


def _review_comment_required(ctx: TransitionContext) -> None:
    if ctx.text("comments") is None:
        raise GuardFailed("Review comments are required when rejecting onboarding")


def _credential_acceptable(ctx: TransitionContext) -> None:
    password = ctx.payload.get("password")
    minimum = ctx.settings.min_password_length
    if not isinstance(password, str) or len(password) < minimum:
        raise GuardFailed(f"Password must be at least {minimum} characters")


# ---- side effects ----------------------------------------------------------


async def _mark_verified(ctx: TransitionContext) -> None:
    ctx.entity.verified_at = ctx.now


async def _submit(ctx: TransitionContext) -> None:
    record: OnboardingRecord = ctx.entity
    record.submitted_documents = merge_documents(
        record.submitted_documents, ctx.payload.get("documents")
    )
    record.submitted_at = ctx.now


async def _review(ctx: TransitionContext) -> None:
    record: OnboardingRecord = ctx.entity
    record.reviewer_id = ctx.actor.id
    record.reviewed_at = ctx.now
    record.review_comments = ctx.text("comments")


async def _reopen(ctx: TransitionContext) -> None:
    # Documents are kept so the employee only fixes what the reviewer flagged.
    ctx.entity.reviewer_id = None


async def _complete(ctx: TransitionContext) -> None:
    record: OnboardingRecord = ctx.entity
    store = ctx.collaborators.credential_store
    employee_id, secret = record.employee_id, ctx.payload["password"]
    ctx.defer(lambda: store.set_credential(employee_id, secret))
    record.completed_at = ctx.now
    record.reviewer_id = None


S = OnboardingStatus

ONBOARDING_MACHINE = StateMachine(
    entity_type=EntityType.ONBOARDING,
    model=OnboardingRecord,
    statuses=OnboardingStatus,
    transitions=[
        Transition(
            S.INVITED.value,
            S.PENDING.value,
            allow_owner=True,
            guards=(_invitation_not_expired, _identity_verified),
            effect=_mark_verified,
            description="employee accepts the invitation",
        ),
        Transition(
            S.PENDING.value,
            S.SUBMITTED.value,
            allow_owner=True,
            guards=(_documents_complete,),
            effect=_submit,
            description="employee submits details",
        ),
        Transition(
            S.SUBMITTED.value,
            S.APPROVED.value,
            capability="onboarding:review",
            stale_after=REVIEWED_STATUSES,
            effect=_review,
            description="HR approves",
        ),
        Transition(
            S.SUBMITTED.value,
            S.REJECTED.value,
            capability="onboarding:review",
            stale_after=REVIEWED_STATUSES,
            guards=(_review_comment_required,),
            effect=_review,
            description="HR rejects",
        ),
        Transition(
            S.REJECTED.value,
            S.PENDING.value,
            allow_owner=True,
            effect=_reopen,
            description="employee resubmits",
        ),
        Transition(
            S.APPROVED.value,
            S.COMPLETED.value,
            allow_owner=True,
            guards=(_credential_acceptable,),
            effect=_complete,
            description="employee sets a password",
        ),
    ],
)
