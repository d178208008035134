"""Workflow event payload model."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from crmflow.domain.events.event_types import WorkflowEventType
from crmflow.domain.models.execution_report import RunState


class WorkflowEvent(BaseModel):
    """Immutable event payload for run notifications."""

    model_config = {"frozen": True}

    event_type: WorkflowEventType
    workflow_id: str
    timestamp: datetime
    run_state: RunState | None = None
    step_id: str | None = None
    step_type: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
