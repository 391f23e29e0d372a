"""Workflow notifications."""

from hr_workflow.events.emitter import NotificationEmitter, NotificationHandler, Notifier
from hr_workflow.events.types import WorkflowEvent

__all__ = ["NotificationEmitter", "NotificationHandler", "Notifier", "WorkflowEvent"]
