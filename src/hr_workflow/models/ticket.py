"""Support ticket and ticket comment models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_workflow.models.base import Base, TimestampMixin, UTCDateTime, utcnow


class Ticket(Base, TimestampMixin):
    """Employee support ticket."""

    __tablename__ = "ticket"

    ticket_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    created_by: Mapped[UUID] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    priority: Mapped[str] = mapped_column(String, nullable=False, default="MEDIUM")
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="OPEN")
    assigned_to: Mapped[UUID | None] = mapped_column(nullable=True)
    resolution: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    rated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('OPEN', 'IN_PROGRESS', 'RESOLVED', 'CLOSED', 'CANCELLED')",
            name="ticket_status_check",
        ),
        CheckConstraint(
            "category IN ('IT', 'HR', 'FINANCE', 'ADMIN', 'OTHER')",
            name="ticket_category_check",
        ),
        CheckConstraint(
            "priority IN ('LOW', 'MEDIUM', 'HIGH', 'URGENT')",
            name="ticket_priority_check",
        ),
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ticket_rating_check",
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    comments: Mapped[list[TicketComment]] = relationship(
        back_populates="ticket",
        lazy="selectin",
        order_by="TicketComment.ticket_comment_id",
    )

    def visible_comments(self, include_internal: bool) -> list[TicketComment]:
        """Comments for a view; internal notes only for staff views."""
        if include_internal:
            return list(self.comments)
        return [c for c in self.comments if not c.is_internal]


class TicketComment(Base):
    """Append-only comment on a ticket."""

    __tablename__ = "ticket_comment"

    ticket_comment_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[UUID] = mapped_column(
        ForeignKey("ticket.ticket_id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id: Mapped[UUID] = mapped_column(nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    ticket: Mapped[Ticket] = relationship(back_populates="comments")
