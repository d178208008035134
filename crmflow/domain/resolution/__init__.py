"""Field reference resolution and config templating."""

from .value_resolver import (
    MISSING,
    ResolvedValue,
    render,
    resolve,
    resolve_operand,
    to_number,
    to_text,
)

__all__ = [
    "MISSING",
    "ResolvedValue",
    "render",
    "resolve",
    "resolve_operand",
    "to_number",
    "to_text",
]
