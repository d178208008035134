from collections.abc import Mapping
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from crmflow.application.step_executor import StepExecutor
from crmflow.application.workflow_runner import WorkflowRunner
from crmflow.domain.collaborators.agent import AgentDispatcher
from crmflow.domain.collaborators.integration import IntegrationDispatcher
from crmflow.domain.collaborators.record_gateway import InMemoryRecordGateway
from crmflow.domain.models.dispatch_result import DispatchResult
from crmflow.domain.models.workflow_definition import WorkflowDefinition


def make_workflow(steps: list[dict[str, Any]], **overrides: Any) -> WorkflowDefinition:
    """Build a WorkflowDefinition the way stored records look."""
    data: dict[str, Any] = {
        "id": "wf-test",
        "name": "Test Workflow",
        "description": "",
        "trigger_type": "manual",
        "trigger_config": {},
        "steps": steps,
        "is_active": True,
    }
    data.update(overrides)
    return WorkflowDefinition.model_validate(data)


class EchoIntegrations(IntegrationDispatcher):
    """Side-effect free dispatcher that returns its call as output."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def invoke(self, integration_id: str, params: dict[str, Any]) -> DispatchResult:
        self.calls.append((integration_id, params))
        return DispatchResult.success({"integration": integration_id, "params": params})


class FixedAgents(AgentDispatcher):
    """Answers every prompt with a fixed reply."""

    def __init__(self, reply: str = "ok") -> None:
        self.reply = reply
        self.prompts: list[tuple[str, str]] = []

    def ask(self, agent_id: str, prompt: str, context: Mapping[str, Any]) -> DispatchResult:
        self.prompts.append((agent_id, prompt))
        return DispatchResult.success(self.reply)


@pytest.fixture
def records() -> InMemoryRecordGateway:
    return InMemoryRecordGateway()


@pytest.fixture
def integrations() -> EchoIntegrations:
    return EchoIntegrations()


@pytest.fixture
def agents() -> FixedAgents:
    return FixedAgents()


@pytest.fixture
def executor(records, integrations, agents) -> StepExecutor:
    return StepExecutor(integrations=integrations, agents=agents, records=records)


@pytest.fixture
def runner(executor) -> WorkflowRunner:
    return WorkflowRunner(executor=executor)


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    """Isolated store root for tests.

    Tests should not write into the real project's .crmflow directory.
    """
    return tmp_path / "store"


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep the developer's ~/.crmflow/config.yml out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))
    return home


@pytest.fixture
def mock_integrations() -> MagicMock:
    return MagicMock(spec=IntegrationDispatcher)
