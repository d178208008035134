"""Runs one workflow definition against one trigger payload.

Per-run lifecycle: PENDING -> RUNNING -> COMPLETED | ABORTED.

- A condition that evaluates false ends the run early; that is a successful
  outcome (status SHORT_CIRCUITED).
- Any other failing step is recorded and the run moves on to the next step.
- An inactive workflow, or an exception escaping the step executor, aborts the
  run with ``success=False``.

Everything a run needs lives in local variables of ``execute_workflow``, so a
single runner can serve concurrent runs.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from crmflow.application.step_executor import StepExecutor
from crmflow.domain.collaborators.workflow_store import WorkflowStore
from crmflow.domain.errors import WorkflowInactiveError
from crmflow.domain.models.execution_report import (
    ExecutionReport,
    RunState,
    RunStatus,
    StepResult,
)
from crmflow.domain.models.workflow_definition import StepType, WorkflowDefinition

if TYPE_CHECKING:
    from crmflow.domain.collaborators.agent import AgentDispatcher
    from crmflow.domain.collaborators.integration import IntegrationDispatcher
    from crmflow.domain.collaborators.record_gateway import RecordGateway
    from crmflow.domain.events.emitter import WorkflowEventEmitter
    from crmflow.domain.events.event_types import WorkflowEventType

logger = logging.getLogger(__name__)


@dataclass
class WorkflowRunner:
    """Orchestrates a single execution of a workflow definition."""

    executor: StepExecutor
    store: WorkflowStore | None = None
    event_emitter: "WorkflowEventEmitter | None" = None

    def __post_init__(self) -> None:
        if self.event_emitter is None:
            from crmflow.domain.events.emitter import WorkflowEventEmitter
            self.event_emitter = WorkflowEventEmitter()

    def execute_workflow(
        self,
        workflow: WorkflowDefinition,
        context: Mapping[str, Any] | None = None,
    ) -> ExecutionReport:
        """Execute every step of ``workflow`` in order.

        Args:
            workflow: The definition to run
            context: Trigger payload; never mutated

        Returns:
            ExecutionReport with one StepResult per executed step
        """
        from crmflow.domain.events.event_types import WorkflowEventType

        trigger: Mapping[str, Any] = MappingProxyType(dict(context or {}))
        state = RunState.PENDING

        if not workflow.is_active:
            error = str(WorkflowInactiveError(workflow.id))
            logger.warning(error)
            state = self._transition(workflow, state, RunState.ABORTED)
            self._emit(WorkflowEventType.RUN_ABORTED, workflow, state, error=error)
            return ExecutionReport.build(workflow.id, RunStatus.ABORTED, [], error=error)

        state = self._transition(workflow, state, RunState.RUNNING)
        self._emit(WorkflowEventType.RUN_STARTED, workflow, state)
        logger.info(f"Running workflow '{workflow.id}' ({len(workflow.steps)} steps)")

        results: list[StepResult] = []
        step_outputs: dict[str, Any] = {}
        status = RunStatus.COMPLETED
        fatal: str | None = None

        for step in workflow.steps:
            try:
                result = self.executor.run(step, trigger, MappingProxyType(step_outputs))
            except Exception as e:
                logger.exception(f"Unexpected error in step '{step.id}' of workflow '{workflow.id}'")
                fatal = str(e) or type(e).__name__
                results.append(StepResult(step_id=step.id, type=step.type, error=fatal))
                status = RunStatus.ABORTED
                break

            results.append(result)
            if result.failed:
                logger.warning(f"Step '{step.id}' of workflow '{workflow.id}' failed: {result.error}")
                self._emit(
                    WorkflowEventType.STEP_FAILED, workflow, state,
                    step_id=step.id, step_type=step.type, error=result.error,
                )
            else:
                step_outputs[step.id] = _scope_entry(result)
                self._emit(
                    WorkflowEventType.STEP_COMPLETED, workflow, state,
                    step_id=step.id, step_type=step.type,
                )

            if step.step_type == StepType.CONDITION and not result.passed:
                logger.info(f"Condition '{step.id}' not met; stopping workflow '{workflow.id}'")
                status = RunStatus.SHORT_CIRCUITED
                break

        if status == RunStatus.ABORTED:
            state = self._transition(workflow, state, RunState.ABORTED)
            self._emit(WorkflowEventType.RUN_ABORTED, workflow, state, error=fatal)
        else:
            state = self._transition(workflow, state, RunState.COMPLETED)
            event_type = (
                WorkflowEventType.RUN_SHORT_CIRCUITED
                if status == RunStatus.SHORT_CIRCUITED
                else WorkflowEventType.RUN_COMPLETED
            )
            self._emit(event_type, workflow, state)

        report = ExecutionReport.build(workflow.id, status, results, error=fatal)
        logger.info(
            f"Workflow '{workflow.id}' finished: status={status.value} "
            f"steps_executed={report.steps_executed}"
        )
        self._persist(workflow, report)
        return report

    def _persist(self, workflow: WorkflowDefinition, report: ExecutionReport) -> None:
        if self.store is None:
            return
        try:
            self.store.save_run(workflow.id, report)
        except Exception as e:
            logger.error(f"Failed to save run of workflow '{workflow.id}': {e}")

    def _transition(
        self, workflow: WorkflowDefinition, current: RunState, target: RunState
    ) -> RunState:
        logger.debug(f"Workflow '{workflow.id}': {current.value} -> {target.value}")
        return target

    def _emit(
        self,
        event_type: "WorkflowEventType",
        workflow: WorkflowDefinition,
        state: RunState,
        **kwargs: Any,
    ) -> None:
        """Emit a workflow event with common fields."""
        from crmflow.domain.events.event import WorkflowEvent

        self.event_emitter.emit(
            WorkflowEvent(
                event_type=event_type,
                workflow_id=workflow.id,
                timestamp=datetime.now(timezone.utc),
                run_state=state,
                **kwargs,
            )
        )


def _scope_entry(result: StepResult) -> dict[str, Any]:
    """What ``$step_<id>`` references see for a finished step."""
    entry: dict[str, Any] = dict(result.output) if isinstance(result.output, Mapping) else {}
    entry.setdefault("output", result.output)
    if result.type == StepType.AGENT.value:
        entry.setdefault("response", result.output)
    if result.passed is not None:
        entry.setdefault("passed", result.passed)
    return entry


def execute_workflow(
    workflow: WorkflowDefinition,
    context: Mapping[str, Any] | None = None,
    *,
    integrations: "IntegrationDispatcher | None" = None,
    agents: "AgentDispatcher | None" = None,
    records: "RecordGateway | None" = None,
    store: WorkflowStore | None = None,
) -> ExecutionReport:
    """Run ``workflow`` once with a freshly built runner.

    Without ``records``, action effects write to a throwaway in-memory gateway.
    """
    executor = StepExecutor(integrations=integrations, agents=agents)
    if records is not None:
        executor.records = records
    return WorkflowRunner(executor=executor, store=store).execute_workflow(workflow, context)
