"""Fluent builder for cron expressions.

Each field is configured in one of four modes, mirroring a point-and-click
editor: every value, specific values, every N-th value, or a range.

Example:
    >>> expr = (CronBuilder()
    ...     .at_minute(0, 30)
    ...     .at_hour(9, 17)
    ...     .on_weekdays()
    ...     .build())
    >>> expr.canonical
    '0,30 9,17 * * 1-5'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from cronguru.scheduling.cron import (
    FIELD_CONSTRAINTS,
    CronDialect,
    CronExpression,
    CronFieldType,
)


class FieldMode(str, Enum):
    EVERY = "every"
    SPECIFIC = "specific"
    INTERVAL = "interval"
    RANGE = "range"


@dataclass(frozen=True)
class FieldSetting:
    """Configuration of one field in the builder."""

    mode: FieldMode = FieldMode.EVERY
    values: tuple[int | str, ...] = ()
    interval: int | None = None
    range_start: int | str | None = None
    range_end: int | str | None = None

    def render(self) -> str:
        if self.mode is FieldMode.INTERVAL and self.interval:
            return f"*/{self.interval}"
        if (
            self.mode is FieldMode.RANGE
            and self.range_start is not None
            and self.range_end is not None
        ):
            return f"{self.range_start}-{self.range_end}"
        if self.mode is FieldMode.SPECIFIC and self.values:
            return ",".join(str(v) for v in _ordered(self.values))
        return "*"


def _ordered(values: tuple[int | str, ...]) -> list[int | str]:
    numbers = sorted({v for v in values if isinstance(v, int)})
    names = list(dict.fromkeys(str(v).upper() for v in values if not isinstance(v, int)))
    return [*numbers, *names]


class CronBuilder:
    """Fluent builder for cron expressions.

    Defaults to every minute in the 5-field dialect. Any seconds setting
    switches to the 6-field dialect.
    """

    def __init__(self, dialect: CronDialect | str = CronDialect.CLASSIC5) -> None:
        self._dialect = CronDialect.coerce(dialect)
        self._settings: dict[CronFieldType, FieldSetting] = {
            field_type: FieldSetting() for field_type in CronDialect.CLASSIC6.field_types
        }
        # "0" rather than "*" so that switching dialects keeps minute granularity
        self._settings[CronFieldType.SECOND] = FieldSetting(FieldMode.SPECIFIC, (0,))

    @property
    def dialect(self) -> CronDialect:
        return self._dialect

    def setting(self, field_type: CronFieldType) -> FieldSetting:
        return self._settings[field_type]

    def set_field(self, field_type: CronFieldType, setting: FieldSetting) -> "CronBuilder":
        """Set a field's mode directly."""
        self._settings[field_type] = setting
        if field_type is CronFieldType.SECOND:
            self._dialect = CronDialect.CLASSIC6
        return self

    def every(self, field_type: CronFieldType) -> "CronBuilder":
        return self.set_field(field_type, FieldSetting())

    def specific(self, field_type: CronFieldType, *values: int | str) -> "CronBuilder":
        return self.set_field(field_type, FieldSetting(FieldMode.SPECIFIC, tuple(values)))

    def interval(self, field_type: CronFieldType, n: int) -> "CronBuilder":
        if n <= 0:
            raise ValueError(f"Interval must be positive, got {n}")
        return self.set_field(field_type, FieldSetting(FieldMode.INTERVAL, interval=n))

    def between(
        self,
        field_type: CronFieldType,
        start: int | str,
        end: int | str,
    ) -> "CronBuilder":
        return self.set_field(
            field_type,
            FieldSetting(FieldMode.RANGE, range_start=start, range_end=end),
        )

    def with_seconds(self) -> "CronBuilder":
        """Include seconds field in expression."""
        self._dialect = CronDialect.CLASSIC6
        return self

    def at_second(self, *seconds: int) -> "CronBuilder":
        return self.specific(CronFieldType.SECOND, *seconds)

    def every_n_seconds(self, n: int) -> "CronBuilder":
        return self.interval(CronFieldType.SECOND, n)

    def at_minute(self, *minutes: int) -> "CronBuilder":
        return self.specific(CronFieldType.MINUTE, *minutes)

    def every_n_minutes(self, n: int) -> "CronBuilder":
        return self.interval(CronFieldType.MINUTE, n)

    def between_minutes(self, start: int, end: int) -> "CronBuilder":
        return self.between(CronFieldType.MINUTE, start, end)

    def at_hour(self, *hours: int) -> "CronBuilder":
        return self.specific(CronFieldType.HOUR, *hours)

    def every_n_hours(self, n: int) -> "CronBuilder":
        return self.interval(CronFieldType.HOUR, n)

    def between_hours(self, start: int, end: int) -> "CronBuilder":
        return self.between(CronFieldType.HOUR, start, end)

    def on_day(self, *days: int) -> "CronBuilder":
        """Set specific days of month."""
        return self.specific(CronFieldType.DAY_OF_MONTH, *days)

    def between_days(self, start: int, end: int) -> "CronBuilder":
        return self.between(CronFieldType.DAY_OF_MONTH, start, end)

    def in_month(self, *months: int | str) -> "CronBuilder":
        return self.specific(CronFieldType.MONTH, *months)

    def between_months(self, start: int | str, end: int | str) -> "CronBuilder":
        return self.between(CronFieldType.MONTH, start, end)

    def on_weekday(self, *weekdays: int | str) -> "CronBuilder":
        """Set specific weekdays (0=SUN, 6=SAT)."""
        return self.specific(CronFieldType.DAY_OF_WEEK, *weekdays)

    def on_weekdays(self) -> "CronBuilder":
        """Run Monday through Friday."""
        return self.between(CronFieldType.DAY_OF_WEEK, 1, 5)

    def on_weekends(self) -> "CronBuilder":
        """Run Saturday and Sunday."""
        return self.specific(CronFieldType.DAY_OF_WEEK, 0, 6)

    def every_day(self) -> "CronBuilder":
        self.every(CronFieldType.DAY_OF_MONTH)
        return self.every(CronFieldType.DAY_OF_WEEK)

    def daily_at(self, hour: int, minute: int = 0) -> "CronBuilder":
        """Run daily at specific time."""
        self.at_minute(minute)
        return self.at_hour(hour)

    def hourly_at(self, minute: int) -> "CronBuilder":
        return self.at_minute(minute)

    def to_string(self) -> str:
        """Render the expression text without validating it."""
        return " ".join(
            self._settings[field_type].render()
            for field_type in self._dialect.field_types
        )

    def build(self) -> CronExpression:
        """Build the cron expression.

        Raises:
            CronValidationError: If a field setting is out of bounds.
        """
        return CronExpression.parse(self.to_string(), self._dialect)

    @classmethod
    def from_expression(cls, expression: CronExpression) -> "CronBuilder":
        """Load an expression into a builder, one field setting per field."""
        builder = cls(expression.dialect)
        for f in expression.fields:
            if f.is_any:
                setting = FieldSetting()
            else:
                setting = _infer_setting(f.field_type, f.sorted_values)
            builder._settings[f.field_type] = setting
        return builder


def _infer_setting(field_type: CronFieldType, values: tuple[int, ...]) -> FieldSetting:
    constraints = FIELD_CONSTRAINTS[field_type]
    if len(values) > 1:
        step = values[1] - values[0]
        expected = tuple(range(constraints.min_value, constraints.max_value + 1, step))
        if values == expected:
            return FieldSetting(FieldMode.INTERVAL, interval=step)
        if step == 1 and values == tuple(range(values[0], values[-1] + 1)):
            return FieldSetting(
                FieldMode.RANGE, range_start=values[0], range_end=values[-1]
            )
    return FieldSetting(FieldMode.SPECIFIC, values)
