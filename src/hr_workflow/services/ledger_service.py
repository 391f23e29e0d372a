"""Leave balance ledger.

Tracks entitlement, consumption and reservations per
(employee, leave type, year) with:
- available = entitlement - consumed - reserved, never negative
- every mutation a single conditional UPDATE, so the database linearizes
  concurrent reservations against the same key
- no partial application: a rejected operation changes nothing
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hr_workflow.errors import GuardFailed, InsufficientBalance
from hr_workflow.models import LeaveLedgerEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveBalance:
    """Snapshot of one ledger key."""

    employee_id: UUID
    leave_type: str
    year: int
    entitlement: int = 0
    consumed: int = 0
    reserved: int = 0

    @property
    def available(self) -> int:
        return self.entitlement - self.consumed - self.reserved


class LeaveLedgerService:
    """Reserve / release / consume operations over the leave ledger.

    Notes:
    - Callers guarantee at-most-once invocation per transition; the
      orchestrator's single-apply unit of work provides that.
    - A key with no row behaves as entitlement 0.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _key(self, employee_id: UUID, leave_type: str, year: int):
        return (
            LeaveLedgerEntry.employee_id == employee_id,
            LeaveLedgerEntry.leave_type == leave_type,
            LeaveLedgerEntry.year == year,
        )

    async def _conditional_update(self, employee_id, leave_type, year, condition, **values) -> bool:
        result = await self.session.execute(
            update(LeaveLedgerEntry)
            .where(*self._key(employee_id, leave_type, year), condition)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    @staticmethod
    def _require_positive(days: int) -> None:
        if days <= 0:
            raise ValueError("Days must be positive")

    async def get_balance(self, employee_id: UUID, leave_type: str, year: int) -> LeaveBalance:
        """Current balance for a key (zeros if the key was never provisioned)."""
        result = await self.session.execute(
            select(LeaveLedgerEntry)
            .where(*self._key(employee_id, leave_type, year))
            .execution_options(populate_existing=True)
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            return LeaveBalance(employee_id=employee_id, leave_type=leave_type, year=year)
        return LeaveBalance(
            employee_id=employee_id,
            leave_type=leave_type,
            year=year,
            entitlement=entry.entitlement,
            consumed=entry.consumed,
            reserved=entry.reserved,
        )

    async def available(self, employee_id: UUID, leave_type: str, year: int) -> int:
        balance = await self.get_balance(employee_id, leave_type, year)
        return balance.available

    async def balances_for(self, employee_id: UUID, year: int) -> list[LeaveBalance]:
        """All provisioned keys of an employee for a year."""
        result = await self.session.execute(
            select(LeaveLedgerEntry)
            .where(LeaveLedgerEntry.employee_id == employee_id, LeaveLedgerEntry.year == year)
            .order_by(LeaveLedgerEntry.leave_type)
            .execution_options(populate_existing=True)
        )
        return [
            LeaveBalance(
                employee_id=e.employee_id,
                leave_type=e.leave_type,
                year=e.year,
                entitlement=e.entitlement,
                consumed=e.consumed,
                reserved=e.reserved,
            )
            for e in result.scalars().all()
        ]

    async def reserve(self, employee_id: UUID, leave_type: str, year: int, days: int) -> None:
        """Hold days against the balance.

        Raises InsufficientBalance (and changes nothing) if available < days.
        """
        self._require_positive(days)
        E = LeaveLedgerEntry
        ok = await self._conditional_update(
            employee_id,
            leave_type,
            year,
            E.entitlement - E.consumed - E.reserved >= days,
            reserved=E.reserved + days,
        )
        if not ok:
            available = await self.available(employee_id, leave_type, year)
            raise InsufficientBalance(leave_type, days, available)
        logger.debug("Reserved %s %s day(s) for %s/%s", days, leave_type, employee_id, year)

    async def release(self, employee_id: UUID, leave_type: str, year: int, days: int) -> None:
        """Drop a reservation without consuming it."""
        self._require_positive(days)
        E = LeaveLedgerEntry
        ok = await self._conditional_update(
            employee_id, leave_type, year, E.reserved >= days, reserved=E.reserved - days
        )
        if not ok:
            raise GuardFailed(f"No reservation of {days} {leave_type} day(s) to release")

    async def consume(self, employee_id: UUID, leave_type: str, year: int, days: int) -> None:
        """Convert a reservation into consumption."""
        self._require_positive(days)
        E = LeaveLedgerEntry
        ok = await self._conditional_update(
            employee_id,
            leave_type,
            year,
            E.reserved >= days,
            reserved=E.reserved - days,
            consumed=E.consumed + days,
        )
        if not ok:
            raise GuardFailed(f"No reservation of {days} {leave_type} day(s) to consume")

    async def reverse_consumption(
        self, employee_id: UUID, leave_type: str, year: int, days: int
    ) -> None:
        """Give back consumed days (approved leave cancelled before it starts)."""
        self._require_positive(days)
        E = LeaveLedgerEntry
        ok = await self._conditional_update(
            employee_id, leave_type, year, E.consumed >= days, consumed=E.consumed - days
        )
        if not ok:
            raise GuardFailed(f"No consumption of {days} {leave_type} day(s) to reverse")

    async def set_entitlement(
        self, employee_id: UUID, leave_type: str, year: int, entitlement: int
    ) -> LeaveBalance:
        """Create or adjust the entitlement for a key.

        The new entitlement may not fall below what is already consumed or reserved.
        """
        if entitlement < 0:
            raise GuardFailed("Entitlement cannot be negative")
        E = LeaveLedgerEntry
        updated = await self._conditional_update(
            employee_id,
            leave_type,
            year,
            E.consumed + E.reserved <= entitlement,
            entitlement=entitlement,
        )
        if not updated:
            balance = await self.get_balance(employee_id, leave_type, year)
            if balance.consumed or balance.reserved:
                raise GuardFailed(
                    f"Entitlement cannot drop below the {balance.consumed + balance.reserved} "
                    f"{leave_type} day(s) already used or reserved"
                )
            await self._insert(employee_id, leave_type, year, entitlement)
        return await self.get_balance(employee_id, leave_type, year)

    async def _insert(self, employee_id: UUID, leave_type: str, year: int, entitlement: int) -> None:
        # A concurrent insert of the same key fails the unique constraint at
        # flush; the unit of work reports that as a stale read.
        self.session.add(
            LeaveLedgerEntry(
                employee_id=employee_id,
                leave_type=leave_type,
                year=year,
                entitlement=entitlement,
                consumed=0,
                reserved=0,
            )
        )
        await self.session.flush()
