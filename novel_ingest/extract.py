"""Tolerant scalar extraction from decoded JSON trees.

Producers change their payloads without notice, so every helper here is total:
a missing key or a value of the wrong type yields the type's empty value
instead of raising.
"""

from __future__ import annotations

import math
from numbers import Integral, Real
from typing import Any


def extract_string(value: Any) -> str:
    """Return ``value`` if it is a string, else ``""``."""
    if isinstance(value, str):
        return value
    return ""


def extract_int(value: Any) -> int:
    """Narrow any numeric value to ``int``; ``0`` for everything else.

    Floats are truncated toward zero. Booleans are not numbers in JSON and
    map to ``0``, as do NaN and infinities.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, Integral):
        return int(value)
    if isinstance(value, Real):
        f = float(value)
        if not math.isfinite(f):
            return 0
        return int(f)
    return 0


def extract_mapping(value: Any) -> dict[str, Any] | None:
    """Return ``value`` if it is a JSON object, else ``None``."""
    if isinstance(value, dict):
        return value
    return None


def extract_list(value: Any) -> list[Any] | None:
    """Return ``value`` if it is a JSON array, else ``None``."""
    if isinstance(value, list):
        return value
    return None
