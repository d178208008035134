"""Comparison predicates for condition steps.

Conditions gate everything after them, so evaluation fails closed: malformed
or missing data makes a comparison false instead of raising. The only error
is an operator outside the supported set.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from crmflow.domain.errors import UnknownOperatorError
from crmflow.domain.resolution.value_resolver import (
    ResolvedValue,
    resolve,
    resolve_operand,
    to_text,
)


class ComparisonOperator(str, Enum):
    EQ = "="
    NE = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


# Spellings accepted from stored workflows and the editor
_ALIASES: dict[str, ComparisonOperator] = {
    "==": ComparisonOperator.EQ,
    "eq": ComparisonOperator.EQ,
    "equals": ComparisonOperator.EQ,
    "<>": ComparisonOperator.NE,
    "ne": ComparisonOperator.NE,
    "not_equals": ComparisonOperator.NE,
    "gt": ComparisonOperator.GT,
    "gte": ComparisonOperator.GTE,
    "lt": ComparisonOperator.LT,
    "lte": ComparisonOperator.LTE,
}


def parse_operator(operator: str) -> ComparisonOperator:
    """Map a declared operator to ComparisonOperator.

    Raises:
        UnknownOperatorError: If the operator is not supported.
    """
    token = operator.strip() if isinstance(operator, str) else operator
    try:
        return ComparisonOperator(token)
    except ValueError:
        pass
    if isinstance(token, str) and token.lower() in _ALIASES:
        return _ALIASES[token.lower()]
    if isinstance(token, str):
        try:
            return ComparisonOperator(token.lower())
        except ValueError:
            pass
    raise UnknownOperatorError(str(operator))


def _equals(left: ResolvedValue, right: ResolvedValue) -> bool:
    if left.is_missing or right.is_missing:
        return False
    left_num, right_num = left.number, right.number
    if left_num is not None and right_num is not None:
        return left_num == right_num
    return left.text == right.text


def _numeric(compare: Callable[[float, float], bool]) -> Callable[[ResolvedValue, ResolvedValue], bool]:
    def _check(left: ResolvedValue, right: ResolvedValue) -> bool:
        left_num, right_num = left.number, right.number
        if left_num is None or right_num is None:
            return False
        return compare(left_num, right_num)

    return _check


def _contains(left: ResolvedValue, right: ResolvedValue) -> bool:
    if left.is_missing or right.is_missing:
        return False
    if isinstance(left.raw, (list, tuple)):
        return any(to_text(item) == right.text for item in left.raw)
    return right.text in left.text


def _starts_with(left: ResolvedValue, right: ResolvedValue) -> bool:
    if left.is_missing or right.is_missing:
        return False
    return left.text.startswith(right.text)


def _ends_with(left: ResolvedValue, right: ResolvedValue) -> bool:
    if left.is_missing or right.is_missing:
        return False
    return left.text.endswith(right.text)


Predicate = Callable[[ResolvedValue, ResolvedValue], bool]
PREDICATES: dict[ComparisonOperator, Predicate] = {
    ComparisonOperator.EQ: _equals,
    ComparisonOperator.NE: lambda left, right: not _equals(left, right),
    ComparisonOperator.GT: _numeric(lambda a, b: a > b),
    ComparisonOperator.GTE: _numeric(lambda a, b: a >= b),
    ComparisonOperator.LT: _numeric(lambda a, b: a < b),
    ComparisonOperator.LTE: _numeric(lambda a, b: a <= b),
    ComparisonOperator.CONTAINS: _contains,
    ComparisonOperator.STARTS_WITH: _starts_with,
    ComparisonOperator.ENDS_WITH: _ends_with,
    ComparisonOperator.IS_EMPTY: lambda left, right: left.is_empty,
    ComparisonOperator.IS_NOT_EMPTY: lambda left, right: not left.is_empty,
}


@dataclass(frozen=True)
class ConditionOutcome:
    passed: bool
    actual: ResolvedValue
    operator: ComparisonOperator


class ConditionEvaluator:
    """Evaluates one ``field operator value`` comparison against a context.

    Stateless; one instance can serve any number of concurrent runs.
    """

    def evaluate(
        self,
        field: str,
        operator: str,
        value: Any,
        context: Mapping[str, Any],
        step_outputs: Mapping[str, Any] | None = None,
    ) -> bool:
        return self.evaluate_detailed(field, operator, value, context, step_outputs).passed

    def evaluate_detailed(
        self,
        field: str,
        operator: str,
        value: Any,
        context: Mapping[str, Any],
        step_outputs: Mapping[str, Any] | None = None,
    ) -> ConditionOutcome:
        """Evaluate and also return the resolved left-hand value.

        Raises:
            UnknownOperatorError: If ``operator`` is not supported.
        """
        op = parse_operator(operator)
        left = resolve(field, context, step_outputs)
        right = resolve_operand(value, context, step_outputs)
        try:
            passed = PREDICATES[op](left, right)
        except (TypeError, ValueError, OverflowError):
            passed = False
        return ConditionOutcome(passed=bool(passed), actual=left, operator=op)
