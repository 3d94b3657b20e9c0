"""Field-by-field explanations and a month calendar of fire times."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence

from cronguru.scheduling.cron import (
    FIELD_CONSTRAINTS,
    CronExpression,
    CronField,
    CronFieldType,
)
from cronguru.scheduling.iterator import Occurrence

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

WEEKDAY_NAMES = (
    "Sunday", "Monday", "Tuesday", "Wednesday",
    "Thursday", "Friday", "Saturday",
)

FIELD_LABELS: dict[CronFieldType, str] = {
    CronFieldType.SECOND: "Second",
    CronFieldType.MINUTE: "Minute",
    CronFieldType.HOUR: "Hour",
    CronFieldType.DAY_OF_MONTH: "Day",
    CronFieldType.MONTH: "Month",
    CronFieldType.DAY_OF_WEEK: "Weekday",
}

_UNITS: dict[CronFieldType, str] = {
    CronFieldType.SECOND: "second",
    CronFieldType.MINUTE: "minute",
    CronFieldType.HOUR: "hour",
    CronFieldType.DAY_OF_MONTH: "day",
    CronFieldType.MONTH: "month",
    CronFieldType.DAY_OF_WEEK: "weekday",
}


# =============================================================================
# Field Debugger
# =============================================================================


@dataclass(frozen=True)
class FieldExplanation:
    """What a single field of an expression means."""

    field_type: CronFieldType
    label: str
    token: str
    values: tuple[int, ...]
    meaning: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field_type.value,
            "label": self.label,
            "token": self.token,
            "values": list(self.values),
            "meaning": self.meaning,
        }


def explain_fields(expression: CronExpression) -> list[FieldExplanation]:
    """Explain every field of an expression in position order."""
    return [
        FieldExplanation(
            field_type=f.field_type,
            label=FIELD_LABELS[f.field_type],
            token=f.original,
            values=f.sorted_values,
            meaning=describe_field(f),
        )
        for f in expression.fields
    ]


def describe_field(cron_field: CronField) -> str:
    """Plain-English meaning of one field, e.g. ``Every 5 minutes``."""
    field_type = cron_field.field_type
    unit = _UNITS[field_type]
    token = cron_field.original

    if cron_field.is_any:
        if field_type is CronFieldType.DAY_OF_WEEK:
            return "Every day of the week"
        return f"Every {unit}"

    named = field_type in (CronFieldType.MONTH, CronFieldType.DAY_OF_WEEK)

    if "," not in token:
        base, slash, step = token.partition("/")
        start, dash, end = base.partition("-")
        if dash:
            span = f"{_name(field_type, start)} through {_name(field_type, end)}"
        elif base != "*":
            span = f"{_name(field_type, base)} onwards"
        else:
            span = ""
        if slash and step != "1":
            every = f"Every {step} {unit}s"
            return f"{every}, {span}" if span else every
        if dash:
            return span if named else f"{unit.capitalize()}s {span}"

    names = [_name(field_type, str(v)) for v in cron_field.sorted_values]
    if named:
        return ", ".join(names)
    if len(names) == 1:
        return f"{unit.capitalize()} {names[0]}"
    return f"{unit.capitalize()}s {', '.join(names)}"


def _name(field_type: CronFieldType, text: str) -> str:
    """Render a single value, resolving aliases and numbers to names."""
    names = {
        CronFieldType.MONTH: MONTH_NAMES,
        CronFieldType.DAY_OF_WEEK: WEEKDAY_NAMES,
    }.get(field_type)
    if names is None:
        return text

    constraints = FIELD_CONSTRAINTS[field_type]
    value = constraints.names.get(text.upper())
    if value is None:
        value = int(text)
    return names[value - constraints.min_value]


# =============================================================================
# Calendar
# =============================================================================


@dataclass
class CalendarDay:
    """One cell of the month grid; ``day == 0`` pads outside the month."""

    day: int
    runs: list[datetime] = field(default_factory=list)

    @property
    def has_run(self) -> bool:
        return bool(self.runs)


@dataclass
class CalendarMonth:
    """Sunday-first month grid of fire times."""

    year: int
    month: int
    timezone: str
    weeks: list[list[CalendarDay]]

    @property
    def title(self) -> str:
        return f"{MONTH_NAMES[self.month - 1]} {self.year}"

    def days_with_runs(self) -> list[CalendarDay]:
        return [d for week in self.weeks for d in week if d.has_run]


def build_calendar(
    occurrences: Sequence[Occurrence],
    year: int | None = None,
    month: int | None = None,
) -> CalendarMonth:
    """Lay out occurrences on a month grid.

    Defaults to the month of the first occurrence. Occurrences are placed
    by their local date.

    Raises:
        ValueError: If no month is given and there are no occurrences.
    """
    if year is None or month is None:
        if not occurrences:
            raise ValueError("Cannot pick a calendar month without occurrences")
        first = occurrences[0].local
        year, month = first.year, first.month

    timezone_name = occurrences[0].timezone if occurrences else "UTC"
    by_day: dict[int, list[datetime]] = {}
    for occurrence in occurrences:
        local = occurrence.local
        if local.year == year and local.month == month:
            by_day.setdefault(local.day, []).append(local)

    grid = calendar.Calendar(firstweekday=calendar.SUNDAY)
    weeks = [
        [CalendarDay(day, by_day.get(day, []) if day else []) for day in week]
        for week in grid.monthdayscalendar(year, month)
    ]
    return CalendarMonth(year=year, month=month, timezone=timezone_name, weeks=weeks)
