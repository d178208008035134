"""Agent dispatch: the uniform "ask agent" door to the AI chat agents."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from crmflow.domain.errors import DispatchError
from crmflow.domain.models.dispatch_result import DispatchResult

logger = logging.getLogger(__name__)


class AgentDispatcher(ABC):
    """Collaborator interface used by agent steps."""

    @abstractmethod
    def ask(self, agent_id: str, prompt: str, context: Mapping[str, Any]) -> DispatchResult:
        """Send a prompt to an agent. Same non-raising contract as integrations."""
        ...


class ChatAgent(ABC):
    """A single agent (sales, marketing, ceo, ...) that answers text prompts."""

    @abstractmethod
    def chat(self, message: str, context: Mapping[str, Any] | None = None) -> str:
        """Return the agent's reply.

        Raises:
            DispatchError: If the underlying model call fails
        """
        ...


class AgentRegistry(AgentDispatcher):
    """Routes ``ask`` calls to registered agents by id."""

    def __init__(self, agents: dict[str, ChatAgent] | None = None) -> None:
        self._agents: dict[str, ChatAgent] = dict(agents or {})

    def register(self, key: str, agent: ChatAgent) -> None:
        self._agents[key] = agent

    def list_agents(self) -> list[str]:
        return sorted(self._agents)

    def ask(self, agent_id: str, prompt: str, context: Mapping[str, Any]) -> DispatchResult:
        agent = self._agents.get(agent_id)
        if agent is None:
            return DispatchResult.failure(f"Unknown agent: {agent_id}")
        try:
            reply = agent.chat(prompt, context)
        except DispatchError as e:
            return DispatchResult.failure(str(e))
        except Exception as e:
            logger.warning(f"Agent '{agent_id}' raised: {e}")
            return DispatchResult.failure(f"{type(e).__name__}: {e}")
        if reply is None:
            return DispatchResult.failure(f"Agent '{agent_id}' returned no response")
        return DispatchResult.success(reply)
