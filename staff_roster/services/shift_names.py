"""Shift-name matching while rosters migrate from morning/evening to free-text names."""

from typing import Optional

from staff_roster.models.shift_definition import ShiftType


def shift_names_match(a: Optional[str], b: Optional[str]) -> bool:
    """Loose equality between two shift names.

    Case-insensitive, and either name containing the other counts as a match,
    so "Morning" matches "Morning Overflow Shift". Empty names never match.
    """
    if not a or not b:
        return False
    a, b = a.strip().lower(), b.strip().lower()
    if not a or not b:
        return False
    return a == b or a in b or b in a


def infer_shift_type(name: Optional[str], fallback: Optional[str] = None) -> Optional[str]:
    """Legacy shift type for a shift name, or ``fallback`` when it names neither."""
    if name:
        lowered = name.lower()
        for shift_type in ShiftType:
            if shift_type.value in lowered:
                return shift_type.value
    return fallback
