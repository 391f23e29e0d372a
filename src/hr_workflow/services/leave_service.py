"""Leave service - requests, decisions and ledger administration."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_workflow.errors import Forbidden, GuardFailed, NotFound, WorkflowResult
from hr_workflow.models import LeaveRequest
from hr_workflow.roles import Actor, ensure_leave_type_allowed
from hr_workflow.services.ledger_service import LeaveBalance, LeaveLedgerService
from hr_workflow.services.orchestrator import EntityRef, UnitOfWork, WorkflowOrchestrator
from hr_workflow.workflows import EntityType, LeaveStatus, LeaveType, count_leave_days


class LeaveService:
    """Operations on leave requests and the leave ledger.

    Operations:
    - request_leave: create a PENDING request and reserve its days
    - transition: approve / reject / cancel through the leave machine
    - set_entitlement, balances: ledger administration and summary
    """

    def __init__(self, orchestrator: WorkflowOrchestrator):
        self.orchestrator = orchestrator

    async def request_leave(
        self,
        actor: Actor,
        leave_type: str,
        start_date: date,
        end_date: date,
        reason: str,
    ) -> WorkflowResult[LeaveRequest]:
        """Submit a leave request for the acting employee.

        Creation and reservation happen together: if the ledger cannot cover
        the days, no request is created (InsufficientBalance).
        """
        leave_type = getattr(leave_type, "value", leave_type)
        settings = self.orchestrator.settings

        async def _request(uow: UnitOfWork) -> LeaveRequest:
            actor.require("leave:request")
            if leave_type not in {t.value for t in LeaveType}:
                raise GuardFailed(f"Unknown leave type '{leave_type}'")
            ensure_leave_type_allowed(actor, leave_type)
            text = (reason or "").strip()
            if not text:
                raise GuardFailed("A reason is required for a leave request")
            if end_date < start_date:
                raise GuardFailed("End date cannot be before start date")
            if start_date < uow.now.date() and not settings.allow_backdated_leave:
                raise GuardFailed("Leave cannot start in the past")

            days = count_leave_days(start_date, end_date)
            year = start_date.year
            await uow.ledger.reserve(actor.id, leave_type, year, days)

            request = LeaveRequest(
                employee_id=actor.id,
                leave_type=leave_type,
                start_date=start_date,
                end_date=end_date,
                number_of_days=days,
                ledger_year=year,
                status=LeaveStatus.PENDING.value,
                reason=text,
            )
            uow.session.add(request)
            await uow.session.flush()
            uow.record(
                "requested",
                EntityType.LEAVE,
                request.leave_request_id,
                request,
                actor,
                from_state=None,
                to_state=request.status,
                note=f"{days} {leave_type} day(s)",
            )
            return request

        return await self.orchestrator.run(
            _request, description=f"leave request by {actor.id} ({leave_type})"
        )

    async def transition(
        self,
        actor: Actor,
        leave_request_id: UUID,
        to: str,
        payload: Mapping[str, Any] | None = None,
        *,
        expected_version: int | None = None,
    ) -> WorkflowResult[LeaveRequest]:
        return await self.orchestrator.apply_transition(
            EntityRef(EntityType.LEAVE, leave_request_id),
            to,
            actor,
            payload,
            expected_version=expected_version,
        )

    async def get(self, actor: Actor, leave_request_id: UUID) -> WorkflowResult[LeaveRequest]:
        async def _get(session: AsyncSession) -> LeaveRequest:
            request = await session.get(LeaveRequest, leave_request_id)
            if request is None or not _can_view(actor, request.employee_id):
                raise NotFound(f"Leave request {leave_request_id} not found")
            return request

        return await self.orchestrator.read(_get)

    async def list_requests(
        self,
        actor: Actor,
        status: str | None = None,
        employee_id: UUID | None = None,
    ) -> WorkflowResult[list[LeaveRequest]]:
        """Newest first. Employees only ever see their own requests."""
        if not actor.can("leave:view:any"):
            if employee_id is not None and employee_id != actor.id:
                return WorkflowResult.failure(
                    Forbidden("Employees may only list their own leave requests")
                )
            employee_id = actor.id
        status = getattr(status, "value", status)

        async def _list(session: AsyncSession) -> list[LeaveRequest]:
            query = select(LeaveRequest)
            if employee_id is not None:
                query = query.where(LeaveRequest.employee_id == employee_id)
            if status is not None:
                query = query.where(LeaveRequest.status == status)
            query = query.order_by(LeaveRequest.start_date.desc(), LeaveRequest.created_at.desc())
            result = await session.execute(query)
            return list(result.scalars().all())

        return await self.orchestrator.read(_list)

    async def set_entitlement(
        self,
        actor: Actor,
        employee_id: UUID,
        leave_type: str,
        year: int,
        days: int,
    ) -> WorkflowResult[LeaveBalance]:
        """Provision or adjust an entitlement (HR/ADMIN)."""
        leave_type = getattr(leave_type, "value", leave_type)

        async def _set(uow: UnitOfWork) -> LeaveBalance:
            actor.require("ledger:adjust", "Only HR or Admin users may adjust leave entitlements")
            if leave_type not in {t.value for t in LeaveType}:
                raise GuardFailed(f"Unknown leave type '{leave_type}'")
            before = await uow.ledger.get_balance(employee_id, leave_type, year)
            balance = await uow.ledger.set_entitlement(employee_id, leave_type, year, days)
            uow.audit.record(
                entity_type="ledger",
                entity_id=employee_id,
                from_state=str(before.entitlement),
                to_state=str(balance.entitlement),
                actor_id=actor.id,
                timestamp=uow.now,
                note=f"{leave_type} entitlement for {year}",
            )
            return balance

        return await self.orchestrator.run(
            _set, description=f"set {leave_type} entitlement for {employee_id}/{year}"
        )

    async def balances(
        self, actor: Actor, employee_id: UUID, year: int
    ) -> WorkflowResult[list[LeaveBalance]]:
        """Leave summary: every provisioned leave type for the year."""

        async def _balances(session: AsyncSession) -> list[LeaveBalance]:
            if not _can_view(actor, employee_id):
                raise Forbidden("Not authorized to view this employee's leave balances")
            return await LeaveLedgerService(session).balances_for(employee_id, year)

        return await self.orchestrator.read(_balances)


def _can_view(actor: Actor, employee_id: UUID) -> bool:
    return actor.owns(employee_id) or actor.can("leave:view:any")
