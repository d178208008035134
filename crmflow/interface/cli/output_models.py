from typing import Any, Literal
from pydantic import BaseModel, Field


class BaseOutput(BaseModel):
    schema_version: int = 1
    command: Literal["run", "validate", "list", "history"]
    exit_code: int
    error: str | None = None


class RunOutput(BaseOutput):
    command: Literal["run"] = "run"
    workflow_id: str
    # Saved run id; None when the run was not persisted
    run_id: str | None = None
    report: dict[str, Any] | None = None


class IssueOutput(BaseModel):
    step_id: str | None = None
    message: str


class ValidateOutput(BaseOutput):
    command: Literal["validate"] = "validate"
    workflow_id: str | None = None
    valid: bool = False
    issues: list[IssueOutput] = Field(default_factory=list)


class WorkflowSummary(BaseModel):
    """Summary of a single workflow for list output."""
    workflow_id: str
    name: str
    trigger_type: str
    is_active: bool
    steps: int
    run_count: int
    last_run_at: str | None = None


class ListOutput(BaseOutput):
    command: Literal["list"] = "list"
    workflows: list[WorkflowSummary] = Field(default_factory=list)


class HistoryOutput(BaseOutput):
    command: Literal["history"] = "history"
    workflow_id: str
    runs: list[str] = Field(default_factory=list)
