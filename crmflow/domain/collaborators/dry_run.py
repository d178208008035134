"""Collaborators that record what would be sent instead of calling out.

The CLI wires these in so workflows can be exercised without credentials.
"""

from collections.abc import Mapping
from typing import Any

from .agent import ChatAgent
from .integration import IntegrationAdapter


class DryRunIntegrationAdapter(IntegrationAdapter):
    """Echoes the call back as its output."""

    def __init__(self, integration_id: str) -> None:
        self.integration_id = integration_id

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        return {
            "name": "dry-run",
            "description": "Echoes integration calls without contacting the provider",
            "supported_actions": ["*"],
        }

    def execute(self, action: str | None, params: dict[str, Any]) -> Any:
        return {
            "integration": self.integration_id,
            "action": action,
            "params": params,
            "dry_run": True,
        }


class DryRunAgent(ChatAgent):
    """Answers with a fixed reply (empty by default)."""

    def __init__(self, agent_id: str, reply: str = "") -> None:
        self.agent_id = agent_id
        self.reply = reply

    def chat(self, message: str, context: Mapping[str, Any] | None = None) -> str:
        return self.reply
