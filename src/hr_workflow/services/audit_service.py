"""Audit trail recording and lookup."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_workflow.models import AuditEntry


class AuditService:
    """Append-only access to the audit log.

    The audit log is the source of truth for who approved, rejected,
    assigned or rated what, and when.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def record(
        self,
        *,
        entity_type: str,
        entity_id: UUID,
        from_state: str | None,
        to_state: str,
        actor_id: UUID,
        timestamp: datetime,
        note: str | None = None,
    ) -> AuditEntry:
        """Append an entry; it is written with the rest of the unit of work."""
        entry = AuditEntry(
            entity_type=entity_type,
            entity_id=entity_id,
            from_state=from_state,
            to_state=to_state,
            actor_id=actor_id,
            timestamp=timestamp,
            note=note,
        )
        self.session.add(entry)
        return entry

    async def history(self, entity_type: str, entity_id: UUID) -> list[AuditEntry]:
        """All entries for an entity, oldest first."""
        result = await self.session.execute(
            select(AuditEntry)
            .where(AuditEntry.entity_type == entity_type, AuditEntry.entity_id == entity_id)
            .order_by(AuditEntry.audit_entry_id)
        )
        return list(result.scalars().all())
