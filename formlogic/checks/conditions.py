"""Condition evaluators for conditional visibility rules."""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..config.models import Condition, FieldDescriptor
from ..utils.values import as_number, normalize_value, to_text, values_equal

ConditionOutcome = Tuple[bool, Optional[str]]


def evaluate_condition(
    condition: Condition,
    field_values: Mapping[str, Any],
    catalog: Mapping[str, FieldDescriptor],
) -> ConditionOutcome:
    """Evaluate a single condition against the current answers.

    Args:
        condition: Condition to evaluate
        field_values: Current answers keyed by field id
        catalog: Field descriptors keyed by field id

    Returns:
        Tuple of (passed: bool, reason: str or None). The reason explains a
        failure and is only meaningful when passed is False.
    """
    field_id = condition.referenced_field_id
    referenced = catalog.get(field_id)
    if referenced is None:
        return False, f'Referenced field not found: "{field_id}"'

    actual = field_values.get(field_id)
    expected = condition.expected_value
    if actual is None:
        passed = condition.operator == "not_equals" and expected is None
        return passed, f"{referenced.display_name} field has no value"

    handler = _OPERATORS.get(condition.operator)
    if handler is None:
        return False, f"Unknown operator: {condition.operator}"

    passed = handler(normalize_value(actual), normalize_value(expected))
    template = _FAILURE_TEMPLATES[condition.operator]
    return passed, template.format(label=referenced.display_name, expected=to_text(expected))


def _equals(actual: Any, expected: Any) -> bool:
    return values_equal(actual, expected)


def _not_equals(actual: Any, expected: Any) -> bool:
    return not values_equal(actual, expected)


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, list):
        return any(values_equal(item, expected) for item in actual)
    return to_text(expected).lower() in to_text(actual).lower()


def _compare(actual: Any, expected: Any) -> int:
    """Numeric comparison when both sides parse as numbers, lexicographic otherwise."""
    left = as_number(actual)
    right = as_number(expected)
    if left is None or right is None:
        left_text, right_text = to_text(actual), to_text(expected)
        return (left_text > right_text) - (left_text < right_text)
    return (left > right) - (left < right)


def _greater_than(actual: Any, expected: Any) -> bool:
    return _compare(actual, expected) > 0


def _less_than(actual: Any, expected: Any) -> bool:
    return _compare(actual, expected) < 0


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "equals": _equals,
    "not_equals": _not_equals,
    "contains": _contains,
    "greater_than": _greater_than,
    "less_than": _less_than,
}

_FAILURE_TEMPLATES = {
    "equals": '{label} does not equal "{expected}"',
    "not_equals": '{label} equals "{expected}"',
    "contains": '{label} does not contain "{expected}"',
    "greater_than": '{label} is not greater than "{expected}"',
    "less_than": '{label} is not less than "{expected}"',
}
