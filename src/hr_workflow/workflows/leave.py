"""Leave request state machine and its ledger side effects."""

from __future__ import annotations

from datetime import date
from enum import Enum

from hr_workflow.errors import Forbidden, GuardFailed
from hr_workflow.models import LeaveRequest
from hr_workflow.workflows.state_machine import (
    EntityType,
    StateMachine,
    Transition,
    TransitionContext,
)


class LeaveStatus(str, Enum):
    """Leave request status values."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LeaveType(str, Enum):
    """Leave types tracked by the ledger."""

    ANNUAL = "annual"
    SICK = "sick"
    PERSONAL = "personal"
    MATERNITY = "maternity"
    PATERNITY = "paternity"


def count_leave_days(start_date: date, end_date: date) -> int:
    """Inclusive length of the date span."""
    return (end_date - start_date).days + 1


# ---- guards ----------------------------------------------------------------


def _not_own_request(ctx: TransitionContext) -> None:
    if ctx.actor.owns(ctx.entity.employee_id):
        raise Forbidden("Leave requests must be decided by someone other than the requester")


def _rejection_reason_required(ctx: TransitionContext) -> None:
    if ctx.text("rejection_reason") is None:
        raise GuardFailed("A rejection reason is required")


def _not_started(ctx: TransitionContext) -> None:
    if ctx.entity.start_date <= ctx.today:
        raise GuardFailed("Cannot cancel leave that has already started")


# ---- side effects ----------------------------------------------------------


def _ledger_key(request: LeaveRequest) -> dict:
    return {
        "employee_id": request.employee_id,
        "leave_type": request.leave_type,
        "year": request.ledger_year,
        "days": request.number_of_days,
    }


async def _approve(ctx: TransitionContext) -> None:
    request: LeaveRequest = ctx.entity
    await ctx.ledger.consume(**_ledger_key(request))
    request.approver_id = ctx.actor.id
    request.decided_at = ctx.now


async def _reject(ctx: TransitionContext) -> None:
    request: LeaveRequest = ctx.entity
    await ctx.ledger.release(**_ledger_key(request))
    request.approver_id = ctx.actor.id
    request.decided_at = ctx.now
    request.rejection_reason = ctx.text("rejection_reason")


async def _cancel_pending(ctx: TransitionContext) -> None:
    await ctx.ledger.release(**_ledger_key(ctx.entity))
    ctx.entity.cancelled_at = ctx.now


async def _cancel_approved(ctx: TransitionContext) -> None:
    await ctx.ledger.reverse_consumption(**_ledger_key(ctx.entity))
    ctx.entity.cancelled_at = ctx.now


S = LeaveStatus

LEAVE_MACHINE = StateMachine(
    entity_type=EntityType.LEAVE,
    model=LeaveRequest,
    statuses=LeaveStatus,
    transitions=[
        Transition(
            S.PENDING.value,
            S.APPROVED.value,
            capability="leave:decide",
            guards=(_not_own_request,),
            effect=_approve,
            description="HR approves; reservation becomes consumption",
        ),
        Transition(
            S.PENDING.value,
            S.REJECTED.value,
            capability="leave:decide",
            guards=(_not_own_request, _rejection_reason_required),
            effect=_reject,
            description="HR rejects; reservation is released",
        ),
        Transition(
            S.PENDING.value,
            S.CANCELLED.value,
            allow_owner=True,
            effect=_cancel_pending,
            description="owner withdraws a pending request",
        ),
        Transition(
            S.APPROVED.value,
            S.CANCELLED.value,
            allow_owner=True,
            guards=(_not_started,),
            effect=_cancel_approved,
            description="owner cancels approved leave that has not started",
        ),
    ],
)
