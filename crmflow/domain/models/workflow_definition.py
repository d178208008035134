"""Workflow definition models.

A definition is loaded once per run and never mutated by the engine. Steps are
a discriminated union on ``type`` so each variant carries a typed payload and an
unknown step type is rejected when the definition is loaded.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from crmflow.domain.constants import DEFAULT_DELAY_DURATION
from crmflow.domain.resolution.value_resolver import to_text


_DURATION_RE = re.compile(r"(\d+)\s*([smhd])")
_DURATION_FULL_RE = re.compile(r"^\s*(?:\d+\s*[smhd]\s*)+$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(duration: str) -> int:
    """Return the length of a human duration such as ``5m`` or ``1h30m`` in seconds.

    Raises:
        ValueError: If the string is not a sequence of ``<int><s|m|h|d>`` parts.
    """
    if not _DURATION_FULL_RE.match(duration):
        raise ValueError(f"Invalid duration '{duration}' (expected e.g. '30s', '5m', '1h30m')")
    return sum(int(n) * _UNIT_SECONDS[unit] for n, unit in _DURATION_RE.findall(duration))


class TriggerType(str, Enum):
    """How a workflow gets fired. The engine only records it."""

    MANUAL = "manual"
    EVENT = "event"
    SCHEDULED = "scheduled"


# Trigger spellings stored by older workflow records
_LEGACY_TRIGGERS = {
    "on_create": TriggerType.EVENT,
    "on_update": TriggerType.EVENT,
    "on_status_change": TriggerType.EVENT,
    "schedule": TriggerType.SCHEDULED,
    "cron": TriggerType.SCHEDULED,
}


class StepType(str, Enum):
    CONDITION = "condition"
    ACTION = "action"
    INTEGRATION = "integration"
    AGENT = "agent"
    DELAY = "delay"


class _StepBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    id: str
    name: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def step_type(self) -> StepType:
        return StepType(self.type)  # type: ignore[attr-defined]


class ConditionStep(_StepBase):
    """Gate: compares a context field against a value and halts the run when false."""

    type: Literal["condition"] = "condition"
    field: str
    operator: str
    value: str = ""

    @model_validator(mode="before")
    @classmethod
    def _lift_config(cls, data: Any) -> Any:
        # Stored records keep field/operator/value inside "config".
        if isinstance(data, dict) and isinstance(data.get("config"), dict):
            data = dict(data)
            config = data.pop("config")
            for key in ("field", "operator", "value"):
                if key in config and key not in data:
                    data[key] = config[key]
        return data

    @field_validator("value", mode="before")
    @classmethod
    def _value_to_str(cls, v: Any) -> Any:
        if v is None:
            return ""
        # YAML scalars: booleans read as "true"/"false", like trigger fields do.
        if isinstance(v, (bool, int, float)):
            return to_text(v)
        return v

    @field_validator("field", "operator")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("must be non-empty")
        return v2


class ActionStep(_StepBase):
    """Runs a built-in effect (e.g. ``log_change``) with templated config."""

    type: Literal["action"] = "action"
    action: str
    config: dict[str, Any] = Field(default_factory=dict)


class IntegrationConfig(BaseModel):
    """Integration call parameters. Keys other than the known ones are passed through."""

    model_config = ConfigDict(
        frozen=True, extra="allow", alias_generator=to_camel, populate_by_name=True
    )

    integration_id: str | None = None
    action: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)

    def call_params(self) -> dict[str, Any]:
        """Parameters sent to the integration dispatcher (before templating)."""
        merged: dict[str, Any] = dict(self.model_extra or {})
        merged.update(self.params)
        if self.action is not None:
            merged["action"] = self.action
        return merged


class IntegrationStep(_StepBase):
    type: Literal["integration"] = "integration"
    config: IntegrationConfig = Field(default_factory=IntegrationConfig)


class AgentConfig(BaseModel):
    model_config = ConfigDict(
        frozen=True, extra="allow", alias_generator=to_camel, populate_by_name=True
    )

    agent_id: str | None = None
    prompt: str | None = None


class AgentStep(_StepBase):
    """Asks an AI agent; the reply becomes the step output."""

    type: Literal["agent"] = "agent"
    config: AgentConfig = Field(default_factory=AgentConfig)


class DelayConfig(BaseModel):
    """Declared wait. Any text is kept; only the ``5m``/``1h30m`` form has a length."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    duration: str = DEFAULT_DELAY_DURATION

    @field_validator("duration", mode="before")
    @classmethod
    def _duration_text(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_DELAY_DURATION
        if isinstance(v, int) and not isinstance(v, bool):
            return f"{v}s"
        return v

    @property
    def seconds(self) -> int | None:
        """Length in seconds, or None when ``duration`` is not in the short form."""
        try:
            return parse_duration(self.duration)
        except ValueError:
            return None


class DelayStep(_StepBase):
    """Advisory scheduling hint; the engine records it and moves on."""

    type: Literal["delay"] = "delay"
    config: DelayConfig = Field(default_factory=DelayConfig)


WorkflowStep = Annotated[
    Union[ConditionStep, ActionStep, IntegrationStep, AgentStep, DelayStep],
    Field(discriminator="type"),
]


class WorkflowDefinition(BaseModel):
    """One automation rule: an ordered list of steps plus trigger metadata."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    id: str
    name: str = ""
    description: str = ""
    trigger_type: TriggerType = TriggerType.MANUAL
    trigger_config: dict[str, Any] = Field(default_factory=dict)
    steps: list[WorkflowStep] = Field(default_factory=list)
    is_active: bool = True

    # Bookkeeping maintained by the store
    run_count: int = 0
    last_run_at: datetime | None = None

    @field_validator("trigger_type", mode="before")
    @classmethod
    def _normalize_trigger(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _LEGACY_TRIGGERS.get(v.strip().lower(), v.strip().lower())
        return v

    @field_validator("steps")
    @classmethod
    def _unique_step_ids(cls, v: list[Any]) -> list[Any]:
        seen: set[str] = set()
        for step in v:
            if step.id in seen:
                raise ValueError(f"Duplicate step id: {step.id}")
            seen.add(step.id)
        return v
