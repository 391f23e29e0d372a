"""Workflow events handed to the notifier after a unit of work commits."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class WorkflowEvent:
    """Something that happened to a workflow entity.

    ``name`` is ``"<entity_type>.<action>"``, e.g. ``leave.approved`` or
    ``ticket.rated``.
    """

    name: str
    entity_type: str
    entity_id: UUID
    actor_id: UUID
    occurred_at: datetime
    from_state: str | None = None
    to_state: str | None = None
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["entity_id"] = str(self.entity_id)
        data["actor_id"] = str(self.actor_id)
        data["occurred_at"] = self.occurred_at.isoformat()
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())
