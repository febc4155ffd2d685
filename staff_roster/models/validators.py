"""Model-level validation utilities for data integrity.

Provides reusable validators that enforce business rules at the ORM level,
preventing invalid data from reaching the database regardless of which
API endpoint or service writes the data.
"""

import re
from typing import Iterable, Optional

TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def non_negative(key: str, value):
    """Validate that a numeric value is >= 0."""
    if value is not None and value < 0:
        raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def in_range(key: str, value, low, high):
    """Validate that a numeric value lies within [low, high]."""
    if value is not None and not (low <= value <= high):
        raise ValueError(f"{key} must be between {low} and {high}, got {value}")
    return value


def one_of(key: str, value, allowed: Iterable[str]):
    """Validate that a string value is one of ``allowed`` (None passes)."""
    allowed = set(allowed)
    if value is not None and value not in allowed:
        raise ValueError(f"{key} must be one of {sorted(allowed)}, got {value!r}")
    return value


def time_of_day(key: str, value: Optional[str]):
    """Validate an "HH:MM" 24-hour time string."""
    if value is not None and not TIME_OF_DAY_RE.match(value):
        raise ValueError(f"{key} must be a HH:MM time, got {value!r}")
    return value


def validate_list(key: str, value):
    """Validate that a JSON column value is a list (or None)."""
    if value is not None and not isinstance(value, list):
        raise ValueError(f"{key} must be a list, got {type(value).__name__}")
    return value


def validate_dict(key: str, value):
    """Validate that a JSON column value is a dict (or None)."""
    if value is not None and not isinstance(value, dict):
        raise ValueError(f"{key} must be a dict, got {type(value).__name__}")
    return value


def day_indices(key: str, value, max_items: Optional[int] = None):
    """Validate a list of weekday indices (0 = Sunday .. 6 = Saturday)."""
    validate_list(key, value)
    if value is None:
        return value
    for day in value:
        if not isinstance(day, int) or isinstance(day, bool) or not 0 <= day <= 6:
            raise ValueError(f"{key} values must be integers between 0 and 6, got {day!r}")
    if max_items is not None and len(value) > max_items:
        raise ValueError(f"{key} allows at most {max_items} entries, got {len(value)}")
    return value


def each_one_of(key: str, values, allowed: Iterable[str]):
    """Validate that every item of a list value is one of ``allowed``."""
    allowed = set(allowed)
    for value in values or []:
        one_of(key, value, allowed)
    return values
