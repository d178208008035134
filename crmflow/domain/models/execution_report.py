"""Per-step results and the report returned by a workflow run."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class RunState(str, Enum):
    """Lifecycle of a single run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class RunStatus(str, Enum):
    """How a finished run ended."""

    COMPLETED = "completed"              # Every step executed
    SHORT_CIRCUITED = "short_circuited"  # A condition evaluated false
    ABORTED = "aborted"                  # Fatal error


class StepResult(BaseModel):
    """Outcome of one executed step.

    Only the keys relevant to the step type are set; ``error`` is present
    only when the step failed.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    step_id: str
    type: str

    # condition
    passed: bool | None = None
    field: str | None = None
    operator: str | None = None
    value: str | None = None
    actual: Any = None

    # delay
    skipped: bool | None = None
    duration: str | None = None
    duration_seconds: int | None = None

    output: Any = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ExecutionReport(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    workflow_id: str
    success: bool
    status: RunStatus
    steps_executed: int
    results: list[StepResult]
    error: str | None = None

    @model_validator(mode="after")
    def _steps_match_results(self) -> "ExecutionReport":
        if self.steps_executed != len(self.results):
            raise ValueError(
                f"steps_executed ({self.steps_executed}) must equal len(results) ({len(self.results)})"
            )
        return self

    @classmethod
    def build(
        cls,
        workflow_id: str,
        status: RunStatus,
        results: list[StepResult],
        error: str | None = None,
    ) -> "ExecutionReport":
        return cls(
            workflow_id=workflow_id,
            success=status != RunStatus.ABORTED,
            status=status,
            steps_executed=len(results),
            results=list(results),
            error=error,
        )

    def to_payload(self) -> dict[str, Any]:
        """camelCase JSON-ready dict, omitting unset per-type keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
