"""Roles, actors and capability checks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol
from uuid import UUID

from hr_workflow.errors import Forbidden


class Role(str, Enum):
    """Actor roles, ordered by administrative privilege."""

    EMPLOYEE = "EMPLOYEE"
    HR = "HR"
    ADMIN = "ADMIN"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def at_least(self, other: Role) -> bool:
        """ADMIN ⊇ HR ⊇ EMPLOYEE for administrative capabilities."""
        return self.rank >= other.rank


_ROLE_RANK = {Role.EMPLOYEE: 0, Role.HR: 1, Role.ADMIN: 2}

STAFF_ROLES = frozenset({Role.HR, Role.ADMIN})


_EMPLOYEE_CAPABILITIES = {
    "leave:request",
    "ticket:open",
    "ticket:comment",
}
_HR_CAPABILITIES = _EMPLOYEE_CAPABILITIES | {
    "onboarding:invite",
    "onboarding:review",
    "onboarding:view:any",
    "leave:decide",
    "leave:view:any",
    "ledger:adjust",
    "ticket:manage",
    "ticket:open:on_behalf",
    "ticket:comment:internal",
    "ticket:view:any",
}
_ADMIN_CAPABILITIES = set(_HR_CAPABILITIES)

ROLE_CAPABILITIES: dict[Role, frozenset[str]] = {
    Role.EMPLOYEE: frozenset(_EMPLOYEE_CAPABILITIES),
    Role.HR: frozenset(_HR_CAPABILITIES),
    Role.ADMIN: frozenset(_ADMIN_CAPABILITIES),
}


def has_capability(role: Role, capability: str) -> bool:
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


@dataclass(frozen=True)
class Actor:
    """Who is performing an action. Passed explicitly into every call."""

    id: UUID
    role: Role
    gender: str | None = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def owns(self, employee_id: UUID) -> bool:
        return self.id == employee_id

    def can(self, capability: str) -> bool:
        return has_capability(self.role, capability)

    def require(self, capability: str, message: str | None = None) -> None:
        """Raise Forbidden unless the actor's role grants the capability."""
        if not self.can(capability):
            raise Forbidden(message or f"Role {self.role.value} may not perform '{capability}'")


# Leave types restricted by the requesting employee's gender.
LEAVE_TYPE_ELIGIBILITY: dict[str, frozenset[str]] = {
    "maternity": frozenset({"female"}),
    "paternity": frozenset({"male"}),
}


def ensure_leave_type_allowed(actor: Actor, leave_type: str) -> None:
    """Reject gender-restricted leave types the actor is not eligible for."""
    eligible = LEAVE_TYPE_ELIGIBILITY.get(leave_type)
    if eligible is None:
        return
    gender = (actor.gender or "").lower()
    if gender not in eligible:
        raise Forbidden(f"Employee is not eligible for {leave_type} leave")


class ActorResolver(Protocol):
    """Resolves a session token into an actor (authentication is external)."""

    def resolve(self, token: str) -> Actor | None:
        ...


class ActorDirectory(Protocol):
    """Looks up actors by id (used to validate ticket assignees)."""

    def get(self, actor_id: UUID) -> Actor | None:
        ...


class TokenActorResolver:
    """In-memory token table; doubles as an actor directory."""

    def __init__(self, tokens: dict[str, Actor] | None = None):
        self._tokens: dict[str, Actor] = dict(tokens or {})

    def register(self, token: str, actor: Actor) -> None:
        self._tokens[token] = actor

    def resolve(self, token: str) -> Actor | None:
        return self._tokens.get(token)

    def get(self, actor_id: UUID) -> Actor | None:
        for actor in self._tokens.values():
            if actor.id == actor_id:
                return actor
        return None
