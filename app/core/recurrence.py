"""Recurrence expansion for appointment series.

``expand`` turns one appointment template plus a recurrence rule into the
ordered list of concrete occurrences. It never touches storage; the caller
validates and persists each draft individually.
"""

from dataclasses import dataclass, field, replace
from datetime import date, time, timedelta
from enum import Enum
from itertools import islice
from uuid import UUID

from app.core.calendar_utils import add_months, iter_days, weekday_index
from app.core.exceptions import InvalidRecurrenceRuleException

WEEKDAYS = frozenset(range(7))


class RecurrenceType(str, Enum):
    """Supported recurrence frequencies."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class AppointmentTemplate:
    """The appointment a series is built from."""

    patient_id: UUID
    professional_id: UUID | None
    date: date
    time: time
    duration_minutes: int
    notes: str | None = None


@dataclass(frozen=True)
class RecurrenceRule:
    """How often a template repeats.

    ``weekdays`` uses Sunday=0 ... Saturday=6 and only matters for weekly rules.
    """

    type: RecurrenceType = RecurrenceType.NONE
    weekdays: frozenset[int] = field(default_factory=frozenset)
    occurrence_count: int = 1


@dataclass(frozen=True)
class AppointmentDraft:
    """One not-yet-persisted occurrence of a series."""

    index: int
    patient_id: UUID
    professional_id: UUID | None
    date: date
    time: time
    duration_minutes: int
    notes: str | None = None


def validate_rule(rule: RecurrenceRule, max_occurrences: int | None = None) -> None:
    """
    Reject rules that cannot produce a valid series.

    Raises:
        InvalidRecurrenceRuleException: On a non-positive or oversized count,
            an empty weekday set for a weekly rule, or an out-of-range weekday.
    """
    if rule.occurrence_count < 1:
        raise InvalidRecurrenceRuleException("occurrence_count must be at least 1")

    if max_occurrences is not None and rule.occurrence_count > max_occurrences:
        raise InvalidRecurrenceRuleException(
            f"occurrence_count cannot exceed {max_occurrences}"
        )

    if rule.type == RecurrenceType.WEEKLY:
        if not rule.weekdays:
            raise InvalidRecurrenceRuleException("Weekly recurrence requires at least one weekday")
        invalid = sorted(set(rule.weekdays) - WEEKDAYS)
        if invalid:
            raise InvalidRecurrenceRuleException(f"Invalid weekdays: {invalid}")


def _dates_for(seed: date, rule: RecurrenceRule) -> list[date]:
    count = rule.occurrence_count
    if count < 1:
        return []

    if rule.type == RecurrenceType.NONE:
        return [seed]

    if rule.type == RecurrenceType.DAILY:
        return [seed + timedelta(days=i) for i in range(count)]

    if rule.type == RecurrenceType.WEEKLY:
        weekdays = rule.weekdays & WEEKDAYS
        if not weekdays:
            return []
        matching = (d for d in iter_days(seed) if weekday_index(d) in weekdays)
        return list(islice(matching, count))

    # Always offset from the seed so a clamped month does not shorten later ones
    return [add_months(seed, i, seed.day) for i in range(count)]


def expand(template: AppointmentTemplate, rule: RecurrenceRule) -> list[AppointmentDraft]:
    """
    Expand a template into concrete occurrences in date order.

    A weekly rule without weekdays in 0..6 (or a non-positive count) yields an
    empty list; use ``expand_or_raise`` to turn that into an error.
    """
    base = AppointmentDraft(
        index=0,
        patient_id=template.patient_id,
        professional_id=template.professional_id,
        date=template.date,
        time=template.time,
        duration_minutes=template.duration_minutes,
        notes=template.notes,
    )
    return [replace(base, index=i, date=d) for i, d in enumerate(_dates_for(template.date, rule))]


def expand_or_raise(
    template: AppointmentTemplate,
    rule: RecurrenceRule,
    max_occurrences: int | None = None,
) -> list[AppointmentDraft]:
    """Validate ``rule`` then expand it; never returns an empty list."""
    validate_rule(rule, max_occurrences)
    drafts = expand(template, rule)
    if not drafts:
        raise InvalidRecurrenceRuleException("Recurrence rule produced no occurrences")
    return drafts
