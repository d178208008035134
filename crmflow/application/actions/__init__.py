"""Built-in effects that action steps dispatch to."""

from .base import ActionContext, ActionEffect
from .builtin import CreateRecord, LogChange, SendNotification, UpdateField
from .registry import ActionRegistry

__all__ = [
    "ActionContext",
    "ActionEffect",
    "ActionRegistry",
    "CreateRecord",
    "LogChange",
    "SendNotification",
    "UpdateField",
]
