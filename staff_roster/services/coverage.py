"""Roster coverage metrics and assignment validation."""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from staff_roster.schemas.roster import CoverageMetrics


def compute_coverage(
    slots: Sequence[Any],
    min_required_staff: int,
    warnings: Optional[Iterable[str]] = None,
) -> CoverageMetrics:
    """Coverage of a slot set against the store's minimum staffing.

    Slots only need a ``user_id`` attribute; a slot without one is vacant.
    """
    total = len(slots)
    filled_users = [s.user_id for s in slots if s.user_id]
    filled = len(filled_users)

    if filled == 0:
        percentage = 0.0
    elif min_required_staff <= 0:
        percentage = 100.0
    else:
        percentage = min(100.0, max(0.0, filled / min_required_staff * 100))

    return CoverageMetrics(
        total_slots=total,
        filled_slots=filled,
        vacant_slots=total - filled,
        coverage_percentage=round(percentage, 1),
        min_required_staff=min_required_staff,
        actual_staff=len(set(filled_users)),
        warnings=list(warnings or []),
    )


def coverage_warning(metrics: CoverageMetrics) -> Optional[str]:
    if metrics.coverage_percentage >= 100:
        return None
    return (
        f"Coverage is {metrics.coverage_percentage:g}% "
        f"({metrics.filled_slots}/{metrics.min_required_staff} required)"
    )


def engaged_headcount(slots: Sequence[Any]) -> int:
    """Distinct people who actually worked, using the planned user where no actuals exist."""
    people = set()
    for slot in slots:
        person = getattr(slot, "actual_user_id", None) or slot.user_id
        if person:
            people.add(person)
    return len(people)


@dataclass
class ValidationIssue:
    field: str
    message: str
    code: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message, "code": self.code}


@dataclass
class ValidationResult:
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
        }


def validate_roster_assignments(
    slots: Sequence[Any],
    store_settings: Any,
    users_by_id: Mapping[int, Any],
    other_rosters_same_date: Iterable[Any] = (),
) -> ValidationResult:
    """Check a proposed slot set against store staffing rules.

    ``users_by_id`` holds the live (non-deleted) users the slots may
    reference. ``other_rosters_same_date`` are the store's other rosters on
    the same day, used to detect double-booking.
    """
    result = ValidationResult()
    slot_count = len(slots)
    warning = coverage_warning(compute_coverage(slots, store_settings.min_staff_per_shift))
    if warning:
        result.warnings.append(warning)

    if slot_count < store_settings.min_staff_per_shift:
        result.errors.append(ValidationIssue(
            "slots",
            f"Minimum {store_settings.min_staff_per_shift} staff required, {slot_count} assigned",
            "MIN_STAFF_NOT_MET",
        ))
    if slot_count > store_settings.max_staff_per_shift:
        result.errors.append(ValidationIssue(
            "slots",
            f"Maximum {store_settings.max_staff_per_shift} staff allowed, {slot_count} assigned",
            "MAX_STAFF_EXCEEDED",
        ))

    booked_elsewhere = {}
    if not store_settings.allow_overlap:
        for roster in other_rosters_same_date:
            for other in roster.slots:
                if other.user_id:
                    booked_elsewhere.setdefault(other.user_id, roster.shift_name)

    seen = set()
    for index, slot in enumerate(slots):
        user_id = slot.user_id
        if not user_id:
            continue
        field_name = f"slots[{index}].userId"
        user = users_by_id.get(user_id)
        if user is None:
            result.errors.append(ValidationIssue(field_name, f"User {user_id} not found", "USER_NOT_FOUND"))
            continue
        if user_id in seen:
            result.errors.append(ValidationIssue(
                field_name,
                f"{user.full_name} is assigned more than once",
                "DUPLICATE_ASSIGNMENT",
            ))
        seen.add(user_id)
        if user_id in booked_elsewhere:
            result.errors.append(ValidationIssue(
                field_name,
                f"{user.full_name} is already rostered on {booked_elsewhere[user_id]}",
                "SHIFT_CONFLICT",
            ))

    return result
