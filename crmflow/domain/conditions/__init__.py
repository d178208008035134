"""Condition step evaluation."""

from .condition_evaluator import (
    ComparisonOperator,
    ConditionEvaluator,
    ConditionOutcome,
    parse_operator,
)

__all__ = [
    "ComparisonOperator",
    "ConditionEvaluator",
    "ConditionOutcome",
    "parse_operator",
]
