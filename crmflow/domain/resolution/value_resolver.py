"""Field reference resolution over loosely-typed trigger data.

References come in three forms:

- bare paths (``status``, ``lead.owner.email``, ``items[0].sku``) read from the
  trigger context;
- ``$trigger.<path>`` reads from the trigger context explicitly;
- ``$step_<id>.<path>`` reads the output of an earlier step of the same run.

Resolution never raises. Absent data resolves to ``MISSING`` and every caller
decides what a missing value means for it.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from crmflow.domain.constants import STEP_REF_PREFIX, TRIGGER_REF_PREFIX


class _Missing:
    """Sentinel for a reference that points at nothing."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()

_SEGMENT = r"[A-Za-z0-9_][\w-]*"
_INDEX = r"\[(?:\d+|\"[^\"]*\"|'[^']*')\]"
_PATH_RE = re.compile(rf"^[A-Za-z_][\w-]*(?:\.{_SEGMENT}|{_INDEX})*$")
_TOKEN_RE = re.compile(rf"\.?({_SEGMENT})|\[(\d+)\]|\[(\"|')(.*?)\3\]")
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_STEP_ROOT_RE = re.compile(r"^([\w-]+?)((?:\.|\[).*)?$")

# References embedded in template text
_EMBEDDED_REF_RE = re.compile(
    r"\$(?:trigger(?![\w-])|step_[A-Za-z0-9_-]+)(?:\.[A-Za-z0-9_][\w]*|\[\d+\])*"
)


@dataclass(frozen=True)
class ResolvedValue:
    """A resolved reference with both its string and numeric readings."""

    raw: Any

    @property
    def is_missing(self) -> bool:
        return self.raw is MISSING

    @property
    def is_empty(self) -> bool:
        if self.is_missing or self.raw is None:
            return True
        if isinstance(self.raw, str):
            return not self.raw.strip()
        if isinstance(self.raw, (Mapping, list, tuple)):
            return len(self.raw) == 0
        return False

    @property
    def text(self) -> str:
        return to_text(self.raw)

    @property
    def number(self) -> float | None:
        return to_number(self.raw)


def to_number(value: Any) -> float | None:
    """Numeric reading of a value, or None when it is not fully numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            # Integers beyond float range have no numeric reading.
            return None
    elif isinstance(value, str):
        candidate = value.strip()
        if not _NUMBER_RE.match(candidate):
            return None
        number = float(candidate)
    else:
        return None
    return number if math.isfinite(number) else None


def to_text(value: Any) -> str:
    """String form used by string operators and template interpolation."""
    if value is MISSING or value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Mapping):
        return json.dumps(dict(value), default=str, ensure_ascii=False)
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value), default=str, ensure_ascii=False)
    return str(value)


def is_path(ref: str) -> bool:
    """True when ``ref`` uses context-path syntax (``a``, ``a.b``, ``a[0]``)."""
    return bool(_PATH_RE.match(ref))


def split_path(path: str) -> list[str | int] | None:
    """Split a path into key/index segments, or None when it is not a valid path."""
    segments: list[str | int] = []
    pos = 0
    while pos < len(path):
        match = _TOKEN_RE.match(path, pos)
        if match is None or match.end() == pos:
            return None
        # A bare segment is only valid at the start or after a dot.
        if match.group(1) is not None and pos > 0 and path[pos] != ".":
            return None
        if match.group(1) is not None:
            segments.append(match.group(1))
        elif match.group(2) is not None:
            segments.append(int(match.group(2)))
        else:
            segments.append(match.group(4))
        pos = match.end()
    return segments


def traverse(root: Any, segments: list[str | int]) -> Any:
    """Walk ``segments`` from ``root``; any dead end yields MISSING."""
    current = root
    for segment in segments:
        if isinstance(current, Mapping):
            if segment in current:
                current = current[segment]
            elif isinstance(segment, int) and str(segment) in current:
                current = current[str(segment)]
            else:
                return MISSING
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            index = segment if isinstance(segment, int) else _as_index(segment)
            if index is None or not 0 <= index < len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def _as_index(segment: str) -> int | None:
    return int(segment) if segment.isdigit() else None


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ("'", '"'):
        return token[1:-1]
    return token


def _resolve_reference(
    ref: str,
    context: Mapping[str, Any],
    step_outputs: Mapping[str, Any],
) -> ResolvedValue | None:
    """Resolve a ``$``-prefixed reference; None when ``ref`` is not reference syntax."""
    if ref.startswith(STEP_REF_PREFIX):
        match = _STEP_ROOT_RE.match(ref[len(STEP_REF_PREFIX):])
        if match is None:
            return None
        step_id, rest = match.group(1), (match.group(2) or "")
        segments = split_path(rest.lstrip(".")) if rest else []
        if segments is None:
            return None
        return ResolvedValue(traverse(step_outputs.get(step_id, MISSING), segments))

    if ref == TRIGGER_REF_PREFIX:
        return ResolvedValue(context)
    if ref.startswith(TRIGGER_REF_PREFIX + ".") or ref.startswith(TRIGGER_REF_PREFIX + "["):
        segments = split_path(ref[len(TRIGGER_REF_PREFIX):].lstrip("."))
        if segments is None:
            return None
        return ResolvedValue(traverse(context, segments))

    body = ref[1:]
    if not is_path(body):
        return None
    return _resolve_path(body, context)


def _resolve_path(path: str, context: Mapping[str, Any]) -> ResolvedValue:
    # Exact keys win so "a.b" stored flat is still reachable.
    if path in context:
        return ResolvedValue(context[path])
    segments = split_path(path)
    if segments is None:
        return ResolvedValue(MISSING)
    return ResolvedValue(traverse(context, segments))


def resolve(
    ref: Any,
    context: Mapping[str, Any],
    step_outputs: Mapping[str, Any] | None = None,
) -> ResolvedValue:
    """Resolve a field reference against the trigger context.

    Args:
        ref: Bare path, ``$`` reference, or literal token.
        context: Trigger payload. Never mutated.
        step_outputs: Outputs of steps already executed in this run.

    Returns:
        ResolvedValue. Paths that lead nowhere resolve to MISSING; tokens that
        are not paths (numbers, quoted strings) come back as literals.
    """
    if not isinstance(ref, str):
        return ResolvedValue(ref)
    token = ref.strip()
    if token in context:
        return ResolvedValue(context[token])
    if token.startswith("$"):
        resolved = _resolve_reference(token, context, step_outputs or {})
        if resolved is not None:
            return resolved
        return ResolvedValue(token)
    if is_path(token):
        return _resolve_path(token, context)
    return ResolvedValue(_unquote(token))


def resolve_operand(
    value: Any,
    context: Mapping[str, Any],
    step_outputs: Mapping[str, Any] | None = None,
) -> ResolvedValue:
    """Resolve the right-hand side of a comparison.

    Only ``$`` references are looked up, so a declared value such as
    ``active`` compares as the literal string rather than a context key.
    """
    if isinstance(value, str):
        token = value.strip()
        if token.startswith("$"):
            resolved = _resolve_reference(token, context, step_outputs or {})
            if resolved is not None:
                return resolved
        return ResolvedValue(_unquote(value))
    return ResolvedValue(value)


def render(
    template: Any,
    context: Mapping[str, Any],
    step_outputs: Mapping[str, Any] | None = None,
) -> Any:
    """Fill ``$trigger`` / ``$step_`` references in a config value.

    A string that is exactly one reference becomes the referenced value itself
    (None when missing). References embedded in longer text are replaced by
    their string form; references that resolve to nothing are left untouched.
    Mappings and lists are rendered recursively; a new structure is returned.
    """
    outputs = step_outputs or {}
    if isinstance(template, str):
        stripped = template.strip()
        if _EMBEDDED_REF_RE.fullmatch(stripped):
            resolved = _resolve_reference(stripped, context, outputs)
            if resolved is not None:
                return None if resolved.is_missing else resolved.raw

        def _replace(match: re.Match[str]) -> str:
            resolved = _resolve_reference(match.group(0), context, outputs)
            if resolved is None or resolved.is_missing:
                return match.group(0)
            return resolved.text

        return _EMBEDDED_REF_RE.sub(_replace, template)
    if isinstance(template, Mapping):
        return {key: render(value, context, outputs) for key, value in template.items()}
    if isinstance(template, (list, tuple)):
        return [render(item, context, outputs) for item in template]
    return template
