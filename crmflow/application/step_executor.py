"""Single-step execution.

One handler per step type. Handlers turn every failure into a StepResult with
an ``error`` so a broken step is reported instead of raised.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

from crmflow.application.actions.base import ActionContext
from crmflow.application.actions.registry import ActionRegistry
from crmflow.domain.collaborators.agent import AgentDispatcher
from crmflow.domain.collaborators.integration import IntegrationDispatcher
from crmflow.domain.collaborators.record_gateway import InMemoryRecordGateway, RecordGateway
from crmflow.domain.conditions.condition_evaluator import ConditionEvaluator
from crmflow.domain.errors import WorkflowConfigurationError
from crmflow.domain.models.execution_report import StepResult
from crmflow.domain.models.workflow_definition import (
    ActionStep,
    AgentStep,
    ConditionStep,
    DelayStep,
    IntegrationStep,
    StepType,
    WorkflowStep,
)
from crmflow.domain.resolution.value_resolver import render, to_text

logger = logging.getLogger(__name__)

StepHandler = Callable[[Any, Mapping[str, Any], Mapping[str, Any]], StepResult]


@dataclass
class StepExecutor:
    """Executes exactly one step and produces its StepResult.

    Holds configuration and collaborators only; nothing about a particular run
    is stored on the instance.
    """

    integrations: IntegrationDispatcher | None = None
    agents: AgentDispatcher | None = None
    # Stand-alone runs keep record writes in memory
    records: RecordGateway | None = field(default_factory=InMemoryRecordGateway)
    actions: ActionRegistry = field(default_factory=ActionRegistry.with_builtins)
    evaluator: ConditionEvaluator = field(default_factory=ConditionEvaluator)

    def __post_init__(self) -> None:
        self._handlers: dict[StepType, StepHandler] = {
            StepType.CONDITION: self._run_condition,
            StepType.ACTION: self._run_action,
            StepType.INTEGRATION: self._run_integration,
            StepType.AGENT: self._run_agent,
            StepType.DELAY: self._run_delay,
        }

    def run(
        self,
        step: WorkflowStep,
        context: Mapping[str, Any],
        step_outputs: Mapping[str, Any] | None = None,
    ) -> StepResult:
        """Execute ``step`` against the trigger context.

        Args:
            step: The step to execute
            context: Trigger payload (read-only)
            step_outputs: Outputs of earlier steps in the same run, by step id

        Returns:
            StepResult; failures are reported in ``error``
        """
        handler = self._handlers[step.step_type]
        logger.debug(f"Executing step '{step.id}' ({step.type})")
        try:
            return handler(step, context, step_outputs or {})
        except Exception as e:
            logger.warning(f"Step '{step.id}' failed: {e}")
            return StepResult(step_id=step.id, type=step.type, error=_describe(e))

    def _run_condition(
        self,
        step: ConditionStep,
        context: Mapping[str, Any],
        step_outputs: Mapping[str, Any],
    ) -> StepResult:
        common = {
            "step_id": step.id,
            "type": step.type,
            "field": step.field,
            "operator": step.operator,
            "value": step.value,
        }
        try:
            outcome = self.evaluator.evaluate_detailed(
                step.field, step.operator, step.value, context, step_outputs
            )
        except WorkflowConfigurationError as e:
            # Fail closed: a condition that cannot be evaluated does not pass.
            return StepResult(**common, passed=False, error=str(e))

        actual = None if outcome.actual.is_missing else outcome.actual.raw
        if isinstance(actual, Mapping):
            actual = dict(actual)
        return StepResult(**common, passed=outcome.passed, actual=actual)

    def _run_action(
        self,
        step: ActionStep,
        context: Mapping[str, Any],
        step_outputs: Mapping[str, Any],
    ) -> StepResult:
        try:
            effect = self.actions.get(step.action)
            config = render(step.config, context, step_outputs)
            output = effect.execute(config, ActionContext(trigger=context, records=self.records))
        except WorkflowConfigurationError as e:
            return StepResult(step_id=step.id, type=step.type, error=str(e))
        return StepResult(step_id=step.id, type=step.type, output=output)

    def _run_integration(
        self,
        step: IntegrationStep,
        context: Mapping[str, Any],
        step_outputs: Mapping[str, Any],
    ) -> StepResult:
        integration_id = step.config.integration_id
        if not integration_id:
            return StepResult(
                step_id=step.id, type=step.type, error="Integration step requires integrationId"
            )
        if self.integrations is None:
            return StepResult(
                step_id=step.id, type=step.type, error="No integration dispatcher configured"
            )

        params = render(step.config.call_params(), context, step_outputs)
        result = self.integrations.invoke(integration_id, params)
        if not result.ok:
            return StepResult(
                step_id=step.id,
                type=step.type,
                error=result.error or f"Integration '{integration_id}' failed",
            )
        return StepResult(step_id=step.id, type=step.type, output=result.output)

    def _run_agent(
        self,
        step: AgentStep,
        context: Mapping[str, Any],
        step_outputs: Mapping[str, Any],
    ) -> StepResult:
        agent_id = step.config.agent_id
        if not agent_id:
            return StepResult(step_id=step.id, type=step.type, error="Agent step requires agentId")
        if self.agents is None:
            return StepResult(step_id=step.id, type=step.type, error="No agent dispatcher configured")

        rendered = render(step.config.prompt or "", context, step_outputs)
        prompt = rendered if isinstance(rendered, str) else to_text(rendered)
        result = self.agents.ask(agent_id, prompt, context)
        if not result.ok:
            return StepResult(
                step_id=step.id,
                type=step.type,
                error=result.error or f"Agent '{agent_id}' failed",
            )
        return StepResult(step_id=step.id, type=step.type, output=result.output)

    def _run_delay(
        self,
        step: DelayStep,
        context: Mapping[str, Any],
        step_outputs: Mapping[str, Any],
    ) -> StepResult:
        # Durations are hints for the scheduler; the run never sleeps.
        return StepResult(
            step_id=step.id,
            type=step.type,
            skipped=True,
            duration=step.config.duration,
            duration_seconds=step.config.seconds,
        )


def _describe(error: Exception) -> str:
    message = str(error)
    return message if message else type(error).__name__
