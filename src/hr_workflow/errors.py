"""Workflow error kinds and the result type returned across the engine boundary.

Errors are raised inside a unit of work so that the transaction rolls back,
then converted into a ``WorkflowResult`` by the orchestrator. Callers never
see an exception for a business rejection.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Structured error kinds."""

    INVALID_TRANSITION = "InvalidTransition"
    FORBIDDEN = "Forbidden"
    GUARD_FAILED = "GuardFailed"
    STALE_STATE = "StaleState"
    NOT_FOUND = "NotFound"

    @property
    def retryable(self) -> bool:
        """Only a stale read is worth reloading and resubmitting."""
        return self is ErrorKind.STALE_STATE


class WorkflowError(Exception):
    """Base class for rejected workflow operations."""

    kind: ErrorKind = ErrorKind.GUARD_FAILED

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.kind.retryable,
        }


class InvalidTransition(WorkflowError):
    """Requested edge is not in the owning machine's table."""

    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, from_state: str, to_state: str, reason: str | None = None):
        self.from_state = from_state
        self.to_state = to_state
        msg = f"Invalid transition from '{from_state}' to '{to_state}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class Forbidden(WorkflowError):
    """Actor lacks the role or ownership required."""

    kind = ErrorKind.FORBIDDEN


class GuardFailed(WorkflowError):
    """Edge is valid for the actor but a business precondition is unmet."""

    kind = ErrorKind.GUARD_FAILED


class InsufficientBalance(GuardFailed):
    """Leave ledger cannot cover the requested days."""

    def __init__(self, leave_type: str, requested: int, available: int):
        self.leave_type = leave_type
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient {leave_type} leave balance. "
            f"Requested: {requested} days, available: {available} days"
        )


STALE_MESSAGE = "The record was changed by someone else; reload it and try again"


class StaleState(WorkflowError):
    """Entity changed since the caller read it."""

    kind = ErrorKind.STALE_STATE

    def __init__(self, message: str = STALE_MESSAGE):
        super().__init__(message)


class NotFound(WorkflowError):
    """Entity does not exist (or is not visible to the actor)."""

    kind = ErrorKind.NOT_FOUND


@dataclass(frozen=True)
class WorkflowResult(Generic[T]):
    """Outcome of an engine operation: exactly one of entity or error is set.

    Always check ``ok`` before reading ``entity``.
    """

    entity: T | None = None
    error: WorkflowError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, entity: T) -> WorkflowResult[T]:
        return cls(entity=entity)

    @classmethod
    def failure(cls, error: WorkflowError) -> WorkflowResult[T]:
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the entity, re-raising the error for callers that want exceptions."""
        if self.error is not None:
            raise self.error
        return self.entity  # type: ignore[return-value]
