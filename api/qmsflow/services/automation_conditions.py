"""Pure predicates for automation rule conditions.

Invariants:
- Field resolution never raises; a missing path resolves to None.
- Every operator returns a bool for any input, including None and mixed types.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any, Callable, Iterable

from qmsflow.schema.automation import AutomationCondition
from qmsflow.utils.datetime import parse_datetime, utcnow

CURRENT_DATE = "current_date"

Operator = Callable[[Any, Any], bool]


def resolve_field(data: Any, path: str) -> Any:
    """Walk a dot path through nested mappings."""
    current = data
    for key in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def strict_equals(left: Any, right: Any) -> bool:
    # True == 1 in Python; a boolean only ever equals another boolean here.
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _comparable(left: Any, right: Any) -> tuple[Any, Any] | None:
    if left is None or right is None or isinstance(left, bool) or isinstance(right, bool):
        return None
    if isinstance(left, (datetime, date)) or isinstance(right, (datetime, date)):
        left_moment, right_moment = parse_datetime(left), parse_datetime(right)
        if left_moment is None or right_moment is None:
            return None
        return left_moment, right_moment
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left, right
    if isinstance(left, str) and isinstance(right, str):
        return left, right
    return None


def _equals(value: Any, expected: Any) -> bool:
    return strict_equals(value, expected)


def _not_equals(value: Any, expected: Any) -> bool:
    return not strict_equals(value, expected)


def _contains(value: Any, expected: Any) -> bool:
    text = "" if value is None else str(value)
    return str(expected) in text


def _greater_than(value: Any, expected: Any) -> bool:
    pair = _comparable(value, expected)
    return pair is not None and pair[0] > pair[1]


def _less_than(value: Any, expected: Any) -> bool:
    if expected == CURRENT_DATE:
        moment = parse_datetime(value)
        return moment is not None and moment < utcnow()
    pair = _comparable(value, expected)
    return pair is not None and pair[0] < pair[1]


def _in_array(value: Any, expected: Any) -> bool:
    if isinstance(expected, (str, bytes)) or not isinstance(expected, (Sequence, set, frozenset)):
        return False
    return any(strict_equals(value, item) for item in expected)


OPERATORS: dict[str, Operator] = {
    "equals": _equals,
    "not_equals": _not_equals,
    "contains": _contains,
    "greater_than": _greater_than,
    "less_than": _less_than,
    "in_array": _in_array,
}


def evaluate_condition(condition: AutomationCondition, data: Any) -> bool:
    operator = OPERATORS.get(condition.operator)
    if operator is None:
        return False
    return operator(resolve_field(data, condition.field), condition.value)


def evaluate_conditions(conditions: Iterable[AutomationCondition], data: Any) -> bool:
    """Logical AND that stops at the first failing condition."""
    for condition in conditions:
        if not evaluate_condition(condition, data):
            return False
    return True
