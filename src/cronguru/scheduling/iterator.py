"""Lazy occurrence iteration across timezones.

The iterator walks wall-clock ("civil") time in the target zone, jumping
field by field to the next civil time that satisfies the expression, then
maps that civil time to an absolute instant. Instants are emitted strictly
increasing: civil times inside a spring-forward gap are skipped, and inside
a fall-back overlap only the later instant is used.

Each search is bounded by a horizon of civil years so that structurally
unsatisfiable schedules (``0 0 31 2 *``) fail with NoOccurrenceFoundError
instead of scanning forever.

Usage:
    >>> expr = validate("*/5 * * * *")
    >>> runs = next_runs(expr, "UTC", 3, after=datetime(2024, 1, 1, tzinfo=timezone.utc))
    >>> [r.local.strftime("%H:%M") for r in runs]
    ['00:05', '00:10', '00:15']
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import MAXYEAR, datetime, timedelta, timezone
from typing import Any, Iterator

from cronguru.scheduling.cron import CronExpression, CronFieldType, cron_weekday
from cronguru.scheduling.errors import NoOccurrenceFoundError
from cronguru.scheduling.timezones import is_ambiguous, localize, resolve_timezone

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_YEARS = 5
DEFAULT_MIN_COUNT = 1
DEFAULT_MAX_COUNT = 50


@dataclass(frozen=True)
class Occurrence:
    """A single fire time.

    Attributes:
        instant: Absolute time, aware and in UTC.
        local: The same instant as wall-clock time in ``timezone``.
        timezone: Zone key the occurrence was computed for.
    """

    instant: datetime
    local: datetime
    timezone: str

    def isoformat(self) -> str:
        return self.local.isoformat()

    def to_dict(self) -> dict[str, Any]:
        return {
            "instant": self.instant.isoformat(),
            "local": self.local.isoformat(),
            "timezone": self.timezone,
        }


def clamp_count(
    count: int,
    min_count: int = DEFAULT_MIN_COUNT,
    max_count: int = DEFAULT_MAX_COUNT,
) -> int:
    """Clamp a requested result count into ``[min_count, max_count]``."""
    if min_count < 1 or min_count > max_count:
        raise ValueError(
            f"Invalid count bounds: [{min_count}, {max_count}]"
        )
    return max(min_count, min(count, max_count))


class CronIterator(Iterator[Occurrence]):
    """Iterator over the occurrences of an expression.

    Infinite unless ``limit`` is given; the timezone is resolved eagerly so
    an unknown zone fails at construction, not on first ``next()``.
    """

    def __init__(
        self,
        expression: CronExpression,
        timezone_name: str = "UTC",
        after: datetime | None = None,
        *,
        limit: int | None = None,
        horizon_years: int = DEFAULT_HORIZON_YEARS,
    ) -> None:
        """Initialize iterator.

        Args:
            expression: Validated cron expression.
            timezone_name: IANA zone key.
            after: Start strictly after this instant (default: now).
                Naive datetimes are taken as UTC.
            limit: Maximum number of occurrences.
            horizon_years: Civil years each search may scan.

        Raises:
            InvalidTimezoneError: If the zone key is unknown.
        """
        if horizon_years < 1:
            raise ValueError(f"horizon_years must be positive, got {horizon_years}")

        self._expression = expression
        self._zone = resolve_timezone(timezone_name)
        self._timezone_name = timezone_name.strip()
        self._limit = limit
        self._horizon_years = horizon_years
        self._count = 0

        if after is None:
            after = datetime.now(timezone.utc)
        elif after.tzinfo is None:
            after = after.replace(tzinfo=timezone.utc)
        self._last = after.astimezone(timezone.utc)

        if expression.has_seconds:
            self._step = timedelta(seconds=1)
        else:
            self._step = timedelta(minutes=1)
        self._cursor = self._start_cursor(self._last)

    @property
    def timezone(self) -> str:
        return self._timezone_name

    def _start_cursor(self, after: datetime) -> datetime:
        aware = after.astimezone(self._zone)
        local = aware.replace(tzinfo=None, fold=0)
        if aware.fold == 0 and is_ambiguous(local, self._zone):
            # Civil times already passed in the first pass of a fall-back
            # overlap come again at their later instant
            earlier = local.replace(tzinfo=self._zone, fold=0)
            later = local.replace(tzinfo=self._zone, fold=1)
            local -= earlier.utcoffset() - later.utcoffset()
        if self._expression.has_seconds:
            return local.replace(microsecond=0) + self._step
        return local.replace(second=0, microsecond=0) + self._step

    def __iter__(self) -> "CronIterator":
        return self

    def __next__(self) -> Occurrence:
        if self._limit is not None and self._count >= self._limit:
            raise StopIteration

        horizon = _add_years(self._cursor, self._horizon_years)

        while True:
            civil = self._search(self._cursor, horizon)
            self._cursor = civil + self._step

            local = localize(civil, self._zone)
            if local is None:
                logger.debug(
                    "Skipping nonexistent local time %s in %s",
                    civil, self._timezone_name,
                )
                continue

            instant = local.astimezone(timezone.utc)
            if instant <= self._last:
                continue

            self._last = instant
            self._count += 1
            return Occurrence(instant=instant, local=local, timezone=self._timezone_name)

    def _search(self, cursor: datetime, horizon: datetime) -> datetime:
        """Find the first civil time >= cursor matching every field."""
        expr = self._expression
        months = expr[CronFieldType.MONTH]
        hours = expr[CronFieldType.HOUR]
        minutes = expr[CronFieldType.MINUTE]
        seconds = expr.get_field(CronFieldType.SECOND)

        try:
            while cursor <= horizon:
                month = months.next_value(cursor.month)
                if month is None:
                    if cursor.year >= MAXYEAR:
                        break
                    cursor = datetime(cursor.year + 1, months.first, 1)
                    continue
                if month != cursor.month:
                    cursor = datetime(cursor.year, month, 1)
                    continue

                if not expr.day_matches(
                    cursor.year, cursor.month, cursor.day, cron_weekday(cursor)
                ):
                    cursor = _next_day(cursor)
                    continue

                hour = hours.next_value(cursor.hour)
                if hour is None:
                    cursor = _next_day(cursor)
                    continue
                if hour != cursor.hour:
                    cursor = cursor.replace(hour=hour, minute=0, second=0)
                    continue

                minute = minutes.next_value(cursor.minute)
                if minute is None:
                    cursor = cursor.replace(minute=0, second=0) + timedelta(hours=1)
                    continue
                if minute != cursor.minute:
                    cursor = cursor.replace(minute=minute, second=0)
                    continue

                if seconds is not None:
                    second = seconds.next_value(cursor.second)
                    if second is None:
                        cursor = cursor.replace(second=0) + timedelta(minutes=1)
                        continue
                    cursor = cursor.replace(second=second)

                return cursor
        except OverflowError:
            pass

        logger.debug(
            "Search horizon of %d years exhausted for %r",
            self._horizon_years, expr.expression,
        )
        raise NoOccurrenceFoundError(expr.expression, self._horizon_years)


def _next_day(cursor: datetime) -> datetime:
    return datetime(cursor.year, cursor.month, cursor.day) + timedelta(days=1)


def _add_years(cursor: datetime, years: int) -> datetime:
    year = cursor.year + years
    if year > MAXYEAR:
        return datetime.max
    # Feb 29 has no counterpart in most target years
    return cursor.replace(year=year, day=min(cursor.day, 28))


# =============================================================================
# Public Functions
# =============================================================================


def iterate(
    expression: CronExpression,
    timezone_name: str = "UTC",
    after: datetime | None = None,
    *,
    horizon_years: int = DEFAULT_HORIZON_YEARS,
) -> CronIterator:
    """Create a lazy, unbounded iterator of occurrences.

    Call again with a new ``after`` to restart from another instant.

    Raises:
        InvalidTimezoneError: Immediately, if the zone key is unknown.
    """
    return CronIterator(
        expression, timezone_name, after, horizon_years=horizon_years
    )


def next_runs(
    expression: CronExpression,
    timezone_name: str,
    count: int,
    after: datetime | None = None,
    *,
    min_count: int = DEFAULT_MIN_COUNT,
    max_count: int = DEFAULT_MAX_COUNT,
    horizon_years: int = DEFAULT_HORIZON_YEARS,
) -> list[Occurrence]:
    """Take the next ``count`` occurrences, clamped to the count bounds.

    Raises:
        InvalidTimezoneError: If the zone key is unknown.
        NoOccurrenceFoundError: If not even one occurrence exists within
            the horizon. Later exhaustion truncates the result instead.
    """
    wanted = clamp_count(count, min_count, max_count)
    iterator = CronIterator(
        expression, timezone_name, after,
        limit=wanted, horizon_years=horizon_years,
    )

    results: list[Occurrence] = []
    try:
        for occurrence in iterator:
            results.append(occurrence)
    except NoOccurrenceFoundError:
        if not results:
            raise
        logger.debug(
            "Returning %d of %d requested occurrences for %r",
            len(results), wanted, expression.expression,
        )
    return results
