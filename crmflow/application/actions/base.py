"""Base class and context for built-in action effects."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from crmflow.domain.collaborators.record_gateway import RecordGateway
from crmflow.domain.errors import MissingParameterError


@dataclass(frozen=True)
class ActionContext:
    """What an effect may touch while it runs.

    Effects get the trigger payload read-only and reach the CRM only through
    the record gateway, so they can be tested with a mock gateway.
    """

    trigger: Mapping[str, Any]
    records: RecordGateway | None = None

    def require_records(self) -> RecordGateway:
        if self.records is None:
            raise MissingParameterError("No record gateway configured for action steps")
        return self.records


class ActionEffect(ABC):
    """One built-in effect an action step can name (e.g. ``log_change``)."""

    name: str = ""

    @abstractmethod
    def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        """Run the effect.

        Args:
            config: Step config with references already rendered
            context: Trigger data and collaborators

        Returns:
            Output recorded on the step result

        Raises:
            MissingParameterError: If required config keys are absent
        """
        ...
