"""Append-only audit trail of workflow events."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Integer, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from hr_workflow.models.base import Base


class AuditEntry(Base):
    """Audit trail entry. Rows are never updated or deleted."""

    __tablename__ = "audit_entry"

    audit_entry_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    from_state: Mapped[str | None] = mapped_column(String, nullable=True)
    to_state: Mapped[str] = mapped_column(String, nullable=False)
    actor_id: Mapped[UUID] = mapped_column(nullable=False)
    timestamp: Mapped[datetime] = mapped_column(nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)


class AuditImmutableError(RuntimeError):
    """Raised when code tries to rewrite audit history."""


@event.listens_for(AuditEntry, "before_update")
def _reject_update(mapper, connection, target: AuditEntry) -> None:
    raise AuditImmutableError(f"Audit entry {target.audit_entry_id} is immutable")


@event.listens_for(AuditEntry, "before_delete")
def _reject_delete(mapper, connection, target: AuditEntry) -> None:
    raise AuditImmutableError(f"Audit entry {target.audit_entry_id} cannot be deleted")
