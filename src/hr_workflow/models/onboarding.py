"""Employee onboarding record model."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_workflow.models.base import Base, TimestampMixin


class OnboardingRecord(Base, TimestampMixin):
    """One onboarding record per employee, from invitation to completion."""

    __tablename__ = "onboarding_record"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="INVITED")
    personal_email: Mapped[str | None] = mapped_column(String, nullable=True)
    submitted_documents: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    invited_by: Mapped[UUID] = mapped_column(nullable=False)
    invited_at: Mapped[datetime] = mapped_column(nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    verified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reviewer_id: Mapped[UUID | None] = mapped_column(nullable=True)
    review_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('INVITED', 'PENDING', 'SUBMITTED', 'APPROVED', 'REJECTED', 'COMPLETED')",
            name="onboarding_status_check",
        ),
        CheckConstraint(
            "(status IN ('APPROVED', 'REJECTED') AND reviewer_id IS NOT NULL)"
            " OR (status NOT IN ('APPROVED', 'REJECTED') AND reviewer_id IS NULL)",
            name="onboarding_reviewer_check",
        ),
    )
    __mapper_args__ = {"version_id_col": version}
