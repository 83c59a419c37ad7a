"""Utilities for parsing and validating round counts.

A round count can be specified as:
- A non-negative integer: 0, 10
- An integral float: 10.0
- A plain numeric string: "10", " 5 "
"""

from __future__ import annotations

import re
from typing import Any

_ROUNDS_PATTERN = re.compile(r"^\d+(?:\.0+)?$")


def validate_rounds(value: Any) -> int:
    """Validate a round count and return it as an int.

    Use this for user-provided round counts where invalid input should raise an error.

    Args:
        value: The round count - an int, integral float, or numeric string

    Returns:
        The round count

    Raises:
        ValueError: If the value is not a valid round count
    """
    if isinstance(value, bool):
        raise ValueError(f"rounds must be a number or string, got {type(value).__name__}")

    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"rounds must be non-negative, got {value}")
        return value

    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"rounds must be a whole number, got {value}")
        if value < 0:
            raise ValueError(f"rounds must be non-negative, got {value}")
        return int(value)

    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("rounds cannot be an empty string")
        if value.startswith("-"):
            raise ValueError(f"rounds must be non-negative, got {value}")
        if not _ROUNDS_PATTERN.match(value):
            raise ValueError(
                f"Invalid rounds format: {value!r}. Expected a non-negative whole number"
            )
        return int(float(value))

    raise ValueError(f"rounds must be a number or string, got {type(value).__name__}")


def parse_rounds(rounds_str: str, default: int = 10) -> int:
    """Parse a round count string into an int.

    Use this for stored or environment-provided values where we want lenient
    behavior (defaulting to a safe value rather than raising errors).

    Args:
        rounds_str: The string to parse (e.g., "10", "")
        default: Value to return if rounds_str is empty or invalid

    Returns:
        The parsed round count
    """
    if not rounds_str:
        return default
    try:
        return validate_rounds(rounds_str)
    except ValueError:
        return default
