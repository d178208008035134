"""Workflow event system for observer pattern notifications."""

from crmflow.domain.events.event_types import WorkflowEventType
from crmflow.domain.events.event import WorkflowEvent
from crmflow.domain.events.observer import WorkflowObserver
from crmflow.domain.events.emitter import WorkflowEventEmitter
from crmflow.domain.events.stderr_observer import StderrEventObserver

__all__ = [
    "WorkflowEventType",
    "WorkflowEvent",
    "WorkflowObserver",
    "WorkflowEventEmitter",
    "StderrEventObserver",
]
