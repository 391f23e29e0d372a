"""Leave request workflow tests, including ledger side effects."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import date

import pytest

from hr_workflow.errors import ErrorKind, InsufficientBalance
from hr_workflow.services import LeaveService, WorkflowOrchestrator

pytestmark = pytest.mark.asyncio

YEAR = 2025


async def _entitle(leave_service, hr, employee, days=10, leave_type="annual"):
    result = await leave_service.set_entitlement(hr, employee.id, leave_type, YEAR, days)
    assert result.ok, result.error
    return result.entity


async def _available(leave_service, hr, employee, leave_type="annual") -> int:
    balances = (await leave_service.balances(hr, employee.id, YEAR)).entity
    return {b.leave_type: b.available for b in balances}.get(leave_type, 0)


class TestRequestLeave:
    """Creation reserves days or creates nothing."""

    async def test_request_reserves_days(self, leave_service, hr, employee):
        await _entitle(leave_service, hr, employee)

        result = await leave_service.request_leave(
            employee, "annual", date(2025, 3, 10), date(2025, 3, 14), "Family trip"
        )

        assert result.ok, result.error
        request = result.entity
        assert request.status == "PENDING"
        assert request.number_of_days == 5
        assert request.ledger_year == YEAR
        assert request.employee_id == employee.id
        assert await _available(leave_service, hr, employee) == 5

    async def test_scenario_insufficient_then_reject_restores(self, leave_service, hr, employee):
        """10 days entitled: 12 fails, 5 succeeds, rejecting the 5 restores 10."""
        await _entitle(leave_service, hr, employee, days=10)

        too_long = await leave_service.request_leave(
            employee, "annual", date(2025, 4, 1), date(2025, 4, 12), "Long holiday"
        )
        assert too_long.error.kind is ErrorKind.GUARD_FAILED
        assert isinstance(too_long.error, InsufficientBalance)
        listed = (await leave_service.list_requests(employee)).entity
        assert listed == []

        request = (
            await leave_service.request_leave(
                employee, "annual", date(2025, 4, 1), date(2025, 4, 5), "Short holiday"
            )
        ).entity
        assert await _available(leave_service, hr, employee) == 5

        rejected = await leave_service.transition(
            hr, request.leave_request_id, "REJECTED", {"rejection_reason": "Peak season"}
        )
        assert rejected.entity.status == "REJECTED"
        assert rejected.entity.rejection_reason == "Peak season"
        assert rejected.entity.approver_id == hr.id
        assert await _available(leave_service, hr, employee) == 10

    @pytest.mark.parametrize(
        "start,end,reason",
        [
            (date(2025, 3, 14), date(2025, 3, 10), "Backwards"),
            (date(2025, 3, 10), date(2025, 3, 11), "   "),
            (date(2025, 2, 24), date(2025, 2, 25), "In the past"),
        ],
    )
    async def test_invalid_requests(self, leave_service, hr, employee, start, end, reason):
        await _entitle(leave_service, hr, employee)

        result = await leave_service.request_leave(employee, "annual", start, end, reason)

        assert result.error.kind is ErrorKind.GUARD_FAILED
        assert await _available(leave_service, hr, employee) == 10

    async def test_unknown_leave_type(self, leave_service, employee):
        result = await leave_service.request_leave(
            employee, "sabbatical", date(2025, 3, 10), date(2025, 3, 10), "Rest"
        )

        assert result.error.kind is ErrorKind.GUARD_FAILED

    async def test_gender_restricted_leave(self, leave_service, hr, employee, other_employee):
        await _entitle(leave_service, hr, other_employee, days=90, leave_type="maternity")

        result = await leave_service.request_leave(
            other_employee, "maternity", date(2025, 4, 1), date(2025, 4, 30), "Birth"
        )

        assert result.error.kind is ErrorKind.FORBIDDEN

    async def test_backdating_allowed_by_setting(
        self, session_factory, settings, clock, hr, employee
    ):
        lenient = WorkflowOrchestrator(
            session_factory, settings=replace(settings, allow_backdated_leave=True), clock=clock
        )
        service = LeaveService(lenient)
        await _entitle(service, hr, employee, days=10, leave_type="sick")

        result = await service.request_leave(
            employee, "sick", date(2025, 2, 27), date(2025, 2, 28), "Flu"
        )

        assert result.ok, result.error

    async def test_concurrent_requests_exactly_one_fits(self, leave_service, hr, employee):
        await _entitle(leave_service, hr, employee, days=10)

        results = await asyncio.gather(
            leave_service.request_leave(
                employee, "annual", date(2025, 5, 5), date(2025, 5, 10), "Trip one"
            ),
            leave_service.request_leave(
                employee, "annual", date(2025, 6, 2), date(2025, 6, 7), "Trip two"
            ),
        )

        assert sorted(r.ok for r in results) == [False, True]
        loser = next(r for r in results if not r.ok)
        assert isinstance(loser.error, InsufficientBalance)
        assert len((await leave_service.list_requests(employee)).entity) == 1
        assert await _available(leave_service, hr, employee) == 4


class TestDecisions:
    async def _pending(self, leave_service, hr, employee):
        await _entitle(leave_service, hr, employee)
        result = await leave_service.request_leave(
            employee, "annual", date(2025, 3, 10), date(2025, 3, 14), "Trip"
        )
        return result.entity

    async def test_approve_consumes(self, leave_service, hr, employee, clock):
        request = await self._pending(leave_service, hr, employee)

        result = await leave_service.transition(hr, request.leave_request_id, "APPROVED")

        assert result.entity.status == "APPROVED"
        assert result.entity.decided_at == clock.now
        balance = (await leave_service.balances(hr, employee.id, YEAR)).entity[0]
        assert (balance.consumed, balance.reserved, balance.available) == (5, 0, 5)

    async def test_rejection_reason_required(self, leave_service, hr, employee):
        request = await self._pending(leave_service, hr, employee)

        result = await leave_service.transition(hr, request.leave_request_id, "REJECTED")

        assert result.error.kind is ErrorKind.GUARD_FAILED
        assert await _available(leave_service, hr, employee) == 5

    async def test_employee_cannot_approve(self, leave_service, hr, employee):
        request = await self._pending(leave_service, hr, employee)

        result = await leave_service.transition(employee, request.leave_request_id, "APPROVED")

        assert result.error.kind is ErrorKind.FORBIDDEN

    async def test_staff_cannot_decide_own_leave(self, leave_service, hr, admin):
        await _entitle(leave_service, admin, hr)
        request = (
            await leave_service.request_leave(
                hr, "annual", date(2025, 3, 10), date(2025, 3, 11), "Rest"
            )
        ).entity

        own = await leave_service.transition(hr, request.leave_request_id, "APPROVED")
        assert own.error.kind is ErrorKind.FORBIDDEN

        other = await leave_service.transition(admin, request.leave_request_id, "APPROVED")
        assert other.ok

    async def test_owner_cancels_pending(self, leave_service, hr, employee):
        request = await self._pending(leave_service, hr, employee)

        stranger = await leave_service.transition(hr, request.leave_request_id, "CANCELLED")
        assert stranger.error.kind is ErrorKind.FORBIDDEN

        result = await leave_service.transition(employee, request.leave_request_id, "CANCELLED")
        assert result.entity.status == "CANCELLED"
        assert await _available(leave_service, hr, employee) == 10

    async def test_round_trip_restores_balance(self, leave_service, hr, employee):
        """PENDING -> APPROVED -> CANCELLED on future leave gives every day back."""
        await _entitle(leave_service, hr, employee)
        before = await _available(leave_service, hr, employee)
        request = (
            await leave_service.request_leave(
                employee, "annual", date(2025, 7, 1), date(2025, 7, 3), "Summer"
            )
        ).entity

        await leave_service.transition(hr, request.leave_request_id, "APPROVED")
        result = await leave_service.transition(employee, request.leave_request_id, "CANCELLED")

        assert result.ok, result.error
        assert await _available(leave_service, hr, employee) == before

    async def test_started_leave_cannot_be_cancelled(self, leave_service, hr, employee, clock):
        request = await self._pending(leave_service, hr, employee)
        await leave_service.transition(hr, request.leave_request_id, "APPROVED")
        clock.advance(days=7)

        result = await leave_service.transition(employee, request.leave_request_id, "CANCELLED")

        assert result.error.kind is ErrorKind.GUARD_FAILED
        balance = (await leave_service.balances(hr, employee.id, YEAR)).entity[0]
        assert balance.consumed == 5

    async def test_terminal_requests_reject_transitions(self, leave_service, hr, employee):
        request = await self._pending(leave_service, hr, employee)
        await leave_service.transition(
            hr, request.leave_request_id, "REJECTED", {"rejection_reason": "No cover"}
        )

        result = await leave_service.transition(hr, request.leave_request_id, "APPROVED")

        assert result.error.kind is ErrorKind.INVALID_TRANSITION
        assert (await leave_service.get(hr, request.leave_request_id)).entity.status == "REJECTED"


class TestQueries:
    async def test_employees_only_list_their_own(self, leave_service, hr, employee, other_employee):
        await _entitle(leave_service, hr, employee)
        await _entitle(leave_service, hr, other_employee)
        for actor in (employee, other_employee):
            await leave_service.request_leave(
                actor, "annual", date(2025, 3, 10), date(2025, 3, 10), "Errand"
            )

        own = (await leave_service.list_requests(employee)).entity
        assert {r.employee_id for r in own} == {employee.id}

        peek = await leave_service.list_requests(employee, employee_id=other_employee.id)
        assert peek.error.kind is ErrorKind.FORBIDDEN

        everyone = (await leave_service.list_requests(hr, status="PENDING")).entity
        assert len(everyone) == 2

    async def test_get_hides_other_employees_requests(
        self, leave_service, hr, employee, other_employee
    ):
        await _entitle(leave_service, hr, employee)
        request = (
            await leave_service.request_leave(
                employee, "annual", date(2025, 3, 10), date(2025, 3, 10), "Errand"
            )
        ).entity

        result = await leave_service.get(other_employee, request.leave_request_id)

        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_only_staff_adjust_entitlements(self, leave_service, employee):
        result = await leave_service.set_entitlement(employee, employee.id, "annual", YEAR, 30)

        assert result.error.kind is ErrorKind.FORBIDDEN
