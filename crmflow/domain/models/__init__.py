"""Domain models for the workflow automation engine."""

from .workflow_definition import (
    ActionStep,
    AgentConfig,
    AgentStep,
    ConditionStep,
    DelayConfig,
    DelayStep,
    IntegrationConfig,
    IntegrationStep,
    StepType,
    TriggerType,
    WorkflowDefinition,
    WorkflowStep,
    parse_duration,
)
from .execution_report import ExecutionReport, RunState, RunStatus, StepResult
from .dispatch_result import DispatchResult
from .run_record import RunRecord


__all__ = [
    "ActionStep",
    "AgentConfig",
    "AgentStep",
    "ConditionStep",
    "DelayConfig",
    "DelayStep",
    "IntegrationConfig",
    "IntegrationStep",
    "StepType",
    "TriggerType",
    "WorkflowDefinition",
    "WorkflowStep",
    "parse_duration",
    "ExecutionReport",
    "RunState",
    "RunStatus",
    "StepResult",
    "DispatchResult",
    "RunRecord",
]
