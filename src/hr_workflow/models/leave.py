"""Leave request and leave balance ledger models."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hr_workflow.models.base import Base, TimestampMixin


class LeaveRequest(Base, TimestampMixin):
    """A single leave request."""

    __tablename__ = "leave_request"

    leave_request_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    leave_type: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    number_of_days: Mapped[int] = mapped_column(Integer, nullable=False)
    ledger_year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    approver_id: Mapped[UUID | None] = mapped_column(nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED')",
            name="leave_request_status_check",
        ),
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
        CheckConstraint("number_of_days >= 1", name="leave_request_days_check"),
    )
    __mapper_args__ = {"version_id_col": version}


class LeaveLedgerEntry(Base, TimestampMixin):
    """Per-employee, per-type, per-year entitlement and usage."""

    __tablename__ = "leave_ledger_entry"

    leave_ledger_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    leave_type: Mapped[str] = mapped_column(String, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    entitlement: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consumed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reserved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type", "year", name="leave_ledger_key_unique"),
        CheckConstraint("consumed >= 0", name="leave_ledger_consumed_check"),
        CheckConstraint("reserved >= 0", name="leave_ledger_reserved_check"),
        CheckConstraint(
            "consumed + reserved <= entitlement",
            name="leave_ledger_available_check",
        ),
    )

    @property
    def available(self) -> int:
        return self.entitlement - self.consumed - self.reserved
