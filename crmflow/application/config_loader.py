"""Layered engine configuration.

Sources, lowest to highest precedence:
    built-in defaults
    ~/.crmflow/config.yml      (user)
    <project>/.crmflow/config.yml
    CLI options                 (applied by the CLI)

Example:
    store_root: .crmflow
    log_level: INFO
    emit_events: true
    integrations: [slack, sendgrid]
    agents:
      sales: "85"
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


CONFIG_DIRNAME = ".crmflow"
CONFIG_FILENAME = "config.yml"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigLoadError(Exception):
    """A config file could not be read, parsed or validated."""

    def __init__(self, message: str, *, path: Path | None = None, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.cause = cause

    def __str__(self) -> str:
        return self.message if self.path is None else f"{self.message}: {self.path}"


class EngineConfig(BaseModel):
    """Validated shape of the merged configuration."""

    model_config = ConfigDict(extra="ignore")

    store_root: str = CONFIG_DIRNAME
    log_level: str = "WARNING"
    emit_events: bool = False
    # Integration ids the CLI answers with dry-run adapters
    integrations: list[str] = Field(default_factory=lambda: ["slack", "sendgrid", "stripe"])
    # Agent id -> canned reply used by the CLI's dry-run agents
    agents: dict[str, str | None] = Field(
        default_factory=lambda: {"ceo": "", "sales": "", "marketing": "", "it": ""}
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _known_level(cls, v: Any) -> str:
        level = str(v).strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log_level '{v}'")
        return level

    @field_validator("integrations", mode="before")
    @classmethod
    def _integration_list(cls, v: Any) -> Any:
        if not isinstance(v, list):
            raise ValueError("'integrations' must be a list of integration ids")
        return v

    @field_validator("agents", mode="before")
    @classmethod
    def _agent_mapping(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            raise ValueError("'agents' must be a mapping of agent id to reply")
        return {str(k): (None if reply is None else str(reply)) for k, reply in v.items()}


def _overlay(base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """Apply ``layer`` on top of ``base``; nested mappings merge key by key."""
    result = dict(base)
    for key, value in layer.items():
        current = result.get(key)
        result[key] = _overlay(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return result


def _read_layer(path: Path) -> dict[str, Any]:
    """Mapping stored in ``path``; a missing or empty file is an empty layer."""
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigLoadError("Malformed YAML", path=path, cause=e) from e
    except OSError as e:  # pragma: no cover
        raise ConfigLoadError("Failed to read config file", path=path, cause=e) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError("YAML root must be a mapping", path=path)
    return data


def load_config(*, project_root: Path | None = None, user_home: Path | None = None) -> dict[str, Any]:
    """Merge the config layers and validate the result.

    A relative ``store_root`` is resolved against ``project_root``.

    Raises:
        ConfigLoadError: If a file is malformed or a value is invalid
    """
    project_root = project_root or Path.cwd()
    user_home = user_home or Path.home()

    merged: dict[str, Any] = EngineConfig().model_dump()
    for config_dir in (user_home, project_root):
        merged = _overlay(merged, _read_layer(config_dir / CONFIG_DIRNAME / CONFIG_FILENAME))

    try:
        cfg = EngineConfig.model_validate(merged).model_dump()
    except ValidationError as e:
        messages = "; ".join(str(err["msg"]).removeprefix("Value error, ") for err in e.errors())
        raise ConfigLoadError(messages, cause=e) from e

    store_root = Path(cfg["store_root"]).expanduser()
    cfg["store_root"] = store_root if store_root.is_absolute() else project_root / store_root
    return cfg
