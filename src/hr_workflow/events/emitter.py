"""Fire-and-forget notification fan-out.

Handlers are isolated: a failing handler is logged and does not stop the
others, and nothing a handler does can roll back the transition that
produced the event. Retrying delivery is the handler's business.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from hr_workflow.events.types import WorkflowEvent

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Collaborator notified after a workflow change commits."""

    def notify(self, event: WorkflowEvent, entity: Any) -> None:
        ...


@runtime_checkable
class NotificationHandler(Protocol):
    def __call__(self, event: WorkflowEvent, entity: Any) -> None:
        ...


@dataclass
class HandlerRegistration:
    """Registration of a notification handler."""

    handler: NotificationHandler
    event_names: set[str] | None  # None = all events


class NotificationEmitter:
    """Dispatches workflow events to registered handlers.

    Usage:
        emitter = NotificationEmitter()
        emitter.on("leave.approved", send_leave_status_email)
        emitter.on_all(write_to_outbox)
    """

    def __init__(self) -> None:
        self._handlers: list[HandlerRegistration] = []

    def on(self, event_name: str | Iterable[str], handler: NotificationHandler) -> None:
        """Register handler for specific event name(s)."""
        names = {event_name} if isinstance(event_name, str) else set(event_name)
        self._handlers.append(HandlerRegistration(handler=handler, event_names=names))

    def on_all(self, handler: NotificationHandler) -> None:
        """Register handler for all events."""
        self._handlers.append(HandlerRegistration(handler=handler, event_names=None))

    def off(self, handler: NotificationHandler) -> None:
        """Unregister a handler."""
        self._handlers = [reg for reg in self._handlers if reg.handler is not handler]

    def notify(self, event: WorkflowEvent, entity: Any) -> list[Exception]:
        """Dispatch to every matching handler.

        Returns the exceptions raised by handlers; they are logged, never raised.
        """
        errors: list[Exception] = []
        for reg in self._handlers:
            if reg.event_names is not None and event.name not in reg.event_names:
                continue
            try:
                reg.handler(event, entity)
            except Exception as e:
                logger.exception("Notification handler %s failed for %s", reg.handler, event.name)
                errors.append(e)
        return errors
