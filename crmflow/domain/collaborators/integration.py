"""Integration dispatch: the uniform door to payment, email and chat providers."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from crmflow.domain.errors import DispatchError
from crmflow.domain.models.dispatch_result import DispatchResult

logger = logging.getLogger(__name__)


class IntegrationDispatcher(ABC):
    """Collaborator interface used by integration steps."""

    @abstractmethod
    def invoke(self, integration_id: str, params: dict[str, Any]) -> DispatchResult:
        """Call an integration.

        Must not raise for ordinary failures (network errors, 4xx/5xx); those
        come back as ``DispatchResult(ok=False, error=...)``.
        """
        ...


class IntegrationAdapter(ABC):
    """One third-party integration (Stripe, SendGrid, Slack, ...)."""

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        """Return adapter metadata for discovery commands."""
        return {
            "name": "unknown",
            "description": "No description available",
            "supported_actions": [],
        }

    @abstractmethod
    def execute(self, action: str | None, params: dict[str, Any]) -> Any:
        """Run a named action and return its output.

        Raises:
            DispatchError: If the provider call fails
        """
        ...


class IntegrationRegistry(IntegrationDispatcher):
    """Routes ``invoke`` calls to registered adapters by integration id.

    Adapter failures, including unexpected exceptions, are turned into failed
    results so a broken provider cannot take a run down.
    """

    def __init__(self, adapters: dict[str, IntegrationAdapter] | None = None) -> None:
        self._adapters: dict[str, IntegrationAdapter] = dict(adapters or {})

    def register(self, key: str, adapter: IntegrationAdapter) -> None:
        self._adapters[key] = adapter

    def list_integrations(self) -> list[str]:
        return sorted(self._adapters)

    def invoke(self, integration_id: str, params: dict[str, Any]) -> DispatchResult:
        adapter = self._adapters.get(integration_id)
        if adapter is None:
            return DispatchResult.failure(f"Unknown integration: {integration_id}")

        call_params = dict(params)
        action = call_params.pop("action", None)
        try:
            output = adapter.execute(action, call_params)
        except DispatchError as e:
            return DispatchResult.failure(str(e))
        except Exception as e:
            logger.warning(f"Integration '{integration_id}' raised: {e}")
            return DispatchResult.failure(f"{type(e).__name__}: {e}")
        return DispatchResult.success(output)
