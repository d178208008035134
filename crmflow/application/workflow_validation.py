"""Static checks on a workflow definition.

Reports the configuration problems that would otherwise only surface as
per-step errors at run time, so a workflow can be fixed before it fires.
"""
from dataclasses import dataclass
import re

from crmflow.application.actions.registry import ActionRegistry
from crmflow.domain.conditions.condition_evaluator import parse_operator
from crmflow.domain.errors import UnknownOperatorError
from crmflow.domain.models.workflow_definition import (
    ActionStep,
    AgentStep,
    ConditionStep,
    IntegrationStep,
    WorkflowDefinition,
)

_STEP_REF_RE = re.compile(r"\$step_([A-Za-z0-9_-]+)")


@dataclass
class ValidationIssue:
    """A single problem found in a workflow definition."""
    step_id: str | None
    message: str


def _step_references(value) -> set[str]:
    """Step ids referenced via ``$step_<id>`` anywhere inside a config value."""
    if isinstance(value, str):
        return set(_STEP_REF_RE.findall(value))
    if isinstance(value, dict):
        found: set[str] = set()
        for item in value.values():
            found |= _step_references(item)
        return found
    if isinstance(value, (list, tuple)):
        found = set()
        for item in value:
            found |= _step_references(item)
        return found
    return set()


def validate_workflow(
    workflow: WorkflowDefinition,
    actions: ActionRegistry | None = None,
) -> list[ValidationIssue]:
    """Check a workflow for configuration errors.

    Args:
        workflow: Definition to check
        actions: Registry used to resolve action ids (default: built-ins)

    Returns:
        List of ValidationIssue, empty if valid
    """
    registry = actions or ActionRegistry.with_builtins()
    issues: list[ValidationIssue] = []

    if not workflow.is_active:
        issues.append(ValidationIssue(step_id=None, message="Workflow is not active"))

    earlier: set[str] = set()
    for step in workflow.steps:
        if isinstance(step, ConditionStep):
            try:
                parse_operator(step.operator)
            except UnknownOperatorError as e:
                issues.append(ValidationIssue(step_id=step.id, message=str(e)))
            refs = _step_references([step.field, step.value])
        elif isinstance(step, ActionStep):
            if step.action not in registry:
                issues.append(ValidationIssue(step_id=step.id, message=f"Unknown action: {step.action}"))
            refs = _step_references(step.config)
        elif isinstance(step, IntegrationStep):
            if not step.config.integration_id:
                issues.append(
                    ValidationIssue(step_id=step.id, message="Integration step requires integrationId")
                )
            refs = _step_references(step.config.call_params())
        elif isinstance(step, AgentStep):
            if not step.config.agent_id:
                issues.append(ValidationIssue(step_id=step.id, message="Agent step requires agentId"))
            refs = _step_references(step.config.prompt or "")
        else:
            if step.config.seconds is None:
                issues.append(
                    ValidationIssue(step_id=step.id, message=f"Unrecognised delay duration: {step.config.duration}")
                )
            refs = set()

        for ref in sorted(refs - earlier):
            issues.append(
                ValidationIssue(
                    step_id=step.id,
                    message=f"References step '{ref}' which does not run before it",
                )
            )
        earlier.add(step.id)

    return issues
