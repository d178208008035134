"""Workflow event types for observer pattern notifications."""

from enum import Enum


class WorkflowEventType(str, Enum):
    """Typed run events for audit trails and live progress views."""

    # Run lifecycle
    RUN_STARTED = "run_started"
    RUN_COMPLETED = "run_completed"
    RUN_SHORT_CIRCUITED = "run_short_circuited"
    RUN_ABORTED = "run_aborted"

    # Steps
    STEP_COMPLETED = "step_completed"
    STEP_FAILED = "step_failed"
