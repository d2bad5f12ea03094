"""Numeric coercion helpers for generated line item fields.

Generated JSON is loosely typed: quantities arrive as numbers, numeric
strings, strings with units attached ("1,200 sq ft") or not at all. Every
numeric LineItem field goes through coerce_float so the substitution of a
default is visible to callers.
"""

import math
import re
from typing import Any, NamedTuple

_LEADING_NUMBER = re.compile(r"^[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


class Coerced(NamedTuple):
    """A coerced numeric value and whether the default was substituted."""

    value: float
    defaulted: bool


def coerce_float(value: Any, default: float) -> Coerced:
    """Coerce a loosely-typed value to float.

    Strings are parsed from their leading number after dropping thousands
    separators and currency symbols. Booleans, None, NaN, infinities and
    unparseable input yield the default.

    Args:
        value: Raw value from generated output.
        default: Value used when coercion fails.

    Returns:
        Coerced(value, defaulted).
    """
    if isinstance(value, bool) or value is None:
        return Coerced(float(default), True)

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "").lstrip("$R€£ ")
        match = _LEADING_NUMBER.match(cleaned)
        if not match:
            return Coerced(float(default), True)
        number = float(match.group(0))
    else:
        return Coerced(float(default), True)

    if math.isnan(number) or math.isinf(number):
        return Coerced(float(default), True)
    return Coerced(number, False)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp value into [low, high]."""
    return min(high, max(low, value))
