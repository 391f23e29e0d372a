"""Data-driven state machines shared by every workflow entity.

Each entity type declares a table of ``Transition`` rows. The orchestrator
consumes the table generically: look up the edge, authorize the actor, run
the guards, set the status, run the side effect.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from hr_workflow.errors import Forbidden, GuardFailed, InvalidTransition
from hr_workflow.roles import Actor

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_workflow.config import Settings
    from hr_workflow.services.ledger_service import LeaveLedgerService
    from hr_workflow.workflows.collaborators import WorkflowCollaborators


class EntityType(str, Enum):
    """Workflow entity kinds (the tag of the transition-table variant)."""

    ONBOARDING = "onboarding"
    LEAVE = "leave"
    TICKET = "ticket"


@dataclass
class TransitionContext:
    """Everything a guard or side effect may look at."""

    session: AsyncSession
    entity: Any
    actor: Actor
    payload: Mapping[str, Any]
    source: str
    target: str
    now: datetime
    ledger: LeaveLedgerService
    collaborators: WorkflowCollaborators
    settings: Settings
    after_commit: list[Callable[[], None]] = field(default_factory=list)

    def defer(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` only once the transition has committed."""
        self.after_commit.append(callback)

    @property
    def today(self) -> date:
        return self.now.date()

    def text(self, key: str) -> str | None:
        """Stripped string payload value, None when missing or blank."""
        value = self.payload.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def uuid(self, key: str) -> UUID | None:
        value = self.payload.get(key)
        if value is None or isinstance(value, UUID):
            return value
        try:
            return UUID(str(value))
        except ValueError:
            raise GuardFailed(f"'{key}' must be a valid identifier") from None


Guard = Callable[[TransitionContext], None]
Effect = Callable[[TransitionContext], Awaitable[None]]


@dataclass(frozen=True)
class Transition:
    """One row of a transition table.

    ``capability`` grants the edge to any role holding it; ``allow_owner``
    grants it to the actor who owns the entity regardless of role.

    ``stale_after`` lists statuses that mean another actor already took this
    edge. Asking for the target from one of them is a lost race (StaleState),
    not an invalid request.
    """

    source: str
    target: str
    capability: str | None = None
    allow_owner: bool = False
    stale_after: frozenset[str] = frozenset()
    guards: tuple[Guard, ...] = ()
    effect: Effect | None = None
    description: str = ""


@dataclass
class StateMachine:
    """Transition table for one entity type."""

    entity_type: EntityType
    model: type
    statuses: type[Enum]
    transitions: Iterable[Transition]
    _table: dict[tuple[str, str], Transition] = field(init=False, repr=False)
    _raced: dict[tuple[str, str], Transition] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._table = {}
        self._raced = {}
        valid = {s.value for s in self.statuses}
        for t in self.transitions:
            if not {t.source, t.target, *t.stale_after} <= valid:
                raise ValueError(f"Unknown status in transition {t.source} -> {t.target}")
            self._table[(t.source, t.target)] = t
            self._raced.update(((status, t.target), t) for status in t.stale_after)

    @property
    def valid_transitions(self) -> dict[str, list[str]]:
        """{from_status: [allowed_to_statuses]}"""
        table: dict[str, list[str]] = {s.value: [] for s in self.statuses}
        for source, target in self._table:
            table[source].append(target)
        return table

    def can_transition(self, from_status: str, to_status: str) -> bool:
        """Check if a transition is in the table."""
        return (from_status, to_status) in self._table

    def validate_transition(self, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransition if invalid."""
        self.lookup(from_status, to_status)

    def lookup(self, from_status: str, to_status: str) -> Transition:
        transition = self._table.get((from_status, to_status))
        if transition is None:
            raise InvalidTransition(from_status, to_status)
        return transition

    def raced(self, from_status: str, to_status: str) -> Transition | None:
        """The edge another actor already took, if ``from_status`` shows that."""
        return self._raced.get((from_status, to_status))

    def get_next_statuses(self, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return [target for source, target in self._table if source == current_status]

    def is_terminal(self, status: str) -> bool:
        return not self.get_next_statuses(status)

    def authorize(self, transition: Transition, actor: Actor, owner_id: UUID) -> None:
        """Raise Forbidden unless the actor's capability or ownership grants the edge."""
        if transition.capability is not None and actor.can(transition.capability):
            return
        if transition.allow_owner and actor.owns(owner_id):
            return
        if transition.allow_owner and transition.capability is None:
            raise Forbidden(
                f"Only the owning employee may move a {self.entity_type.value} "
                f"from {transition.source} to {transition.target}"
            )
        raise Forbidden(
            f"Role {actor.role.value} may not move a {self.entity_type.value} "
            f"from {transition.source} to {transition.target}"
        )
