"""Normalization helpers for comparing answered field values."""

from __future__ import annotations

import math
from numbers import Real
from typing import Any, Optional


def is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def normalize_value(value: Any) -> Any:
    """Normalize a value for comparison.

    Booleans and numbers keep their type, lists (multi-select answers) are
    normalized element-wise and everything else becomes a trimmed string.
    """
    if value is None:
        return ""
    if isinstance(value, bool) or is_number(value):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [normalize_value(item) for item in value]
    return str(value).strip()


def to_text(value: Any) -> str:
    """Render a value the way the editor displays it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(to_text(item) for item in value)
    return str(value).strip()


def as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if is_number(value):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def values_equal(actual: Any, expected: Any) -> bool:
    """Compare two normalized values.

    A boolean never equals a number or a string, and a number never equals a
    string. Lists compare element by element.
    """
    if isinstance(actual, list) or isinstance(expected, list):
        if not (isinstance(actual, list) and isinstance(expected, list)):
            return False
        if len(actual) != len(expected):
            return False
        return all(values_equal(a, b) for a, b in zip(actual, expected))
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if is_number(actual) or is_number(expected):
        return is_number(actual) and is_number(expected) and actual == expected
    return actual == expected
