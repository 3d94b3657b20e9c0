"""Cron expression parser and validated field model.

This module turns raw cron text into an immutable ``CronExpression``: an
ordered tuple of ``CronField`` objects, each holding the finite set of
integers its pattern accepts. Occurrence computation and diagnostics only
ever run on a ``CronExpression``, so parsing is the sole validation gate.

Design Principles:
    1. Immutable expressions: safe to share between callers
    2. Resolved sets: every field is a concrete frozenset after parsing
    3. Fail fast: the first invalid field aborts validation
    4. Classic crontab semantics: day-of-month and day-of-week are ORed
"""

from __future__ import annotations

import re
from bisect import bisect_left
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, FrozenSet

from cronguru.scheduling.errors import (
    CronParseError,
    CronValidationError,
    FieldCountMismatchError,
    ParseErrorReason,
)

if TYPE_CHECKING:
    from cronguru.scheduling.builder import CronBuilder
    from cronguru.scheduling.iterator import CronIterator, Occurrence


_NUMBER = re.compile(r"\d+", re.ASCII)
_SIGNED_NUMBER = re.compile(r"-?\d+", re.ASCII)


# =============================================================================
# Field Types
# =============================================================================


class CronFieldType(Enum):
    """Positional slots of a cron expression."""

    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY_OF_MONTH = "day-of-month"
    MONTH = "month"
    DAY_OF_WEEK = "day-of-week"

    @property
    def label(self) -> str:
        return self.value


class CronDialect(Enum):
    """Field-count variant of the cron syntax."""

    CLASSIC5 = "crontab5"
    CLASSIC6 = "crontab6"

    @property
    def field_types(self) -> tuple[CronFieldType, ...]:
        if self is CronDialect.CLASSIC6:
            return (CronFieldType.SECOND,) + _CLASSIC5_FIELDS
        return _CLASSIC5_FIELDS

    @property
    def arity(self) -> int:
        return len(self.field_types)

    @classmethod
    def from_string(cls, value: str) -> "CronDialect":
        """Convert a string to a dialect.

        Args:
            value: ``crontab5``/``crontab6``, ``classic5``/``classic6``
                or the bare field count (case-insensitive).

        Raises:
            ValueError: If the value names no dialect.
        """
        mapping = {
            "crontab5": cls.CLASSIC5,
            "classic5": cls.CLASSIC5,
            "5": cls.CLASSIC5,
            "crontab6": cls.CLASSIC6,
            "classic6": cls.CLASSIC6,
            "6": cls.CLASSIC6,
        }
        try:
            return mapping[value.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown cron dialect: {value!r}") from None

    @classmethod
    def coerce(cls, value: "CronDialect | str") -> "CronDialect":
        if isinstance(value, cls):
            return value
        return cls.from_string(value)


_CLASSIC5_FIELDS = (
    CronFieldType.MINUTE,
    CronFieldType.HOUR,
    CronFieldType.DAY_OF_MONTH,
    CronFieldType.MONTH,
    CronFieldType.DAY_OF_WEEK,
)


@dataclass(frozen=True)
class FieldConstraints:
    """Legal bounds and name aliases of a cron field."""

    min_value: int
    max_value: int
    names: dict[str, int] = field(default_factory=dict)

    @property
    def cardinality(self) -> int:
        return self.max_value - self.min_value + 1


FIELD_CONSTRAINTS: dict[CronFieldType, FieldConstraints] = {
    CronFieldType.SECOND: FieldConstraints(0, 59),
    CronFieldType.MINUTE: FieldConstraints(0, 59),
    CronFieldType.HOUR: FieldConstraints(0, 23),
    CronFieldType.DAY_OF_MONTH: FieldConstraints(1, 31),
    CronFieldType.MONTH: FieldConstraints(
        1, 12,
        names={
            "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4,
            "MAY": 5, "JUN": 6, "JUL": 7, "AUG": 8,
            "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
        },
    ),
    CronFieldType.DAY_OF_WEEK: FieldConstraints(
        0, 6,
        names={
            "SUN": 0, "MON": 1, "TUE": 2, "WED": 3,
            "THU": 4, "FRI": 5, "SAT": 6,
        },
    ),
}


# =============================================================================
# Cron Field
# =============================================================================


class CronField:
    """A parsed cron field.

    Holds the resolved set of accepted values. The set is never symbolic:
    ``*`` resolves to every value within the field's bounds.

    Attributes:
        field_type: The kind of field (MINUTE, HOUR, etc.)
        constraints: Bounds the values were validated against
        values: Frozen set of accepted integer values
        original: The token the field was parsed from
    """

    __slots__ = (
        "_field_type",
        "_constraints",
        "_values",
        "_sorted",
        "_original",
    )

    def __init__(
        self,
        field_type: CronFieldType,
        values: FrozenSet[int],
        *,
        constraints: FieldConstraints | None = None,
        original: str = "",
    ) -> None:
        self._field_type = field_type
        self._constraints = constraints or FIELD_CONSTRAINTS[field_type]
        self._values = frozenset(values)
        self._sorted = tuple(sorted(self._values))
        self._original = original

    @property
    def field_type(self) -> CronFieldType:
        return self._field_type

    @property
    def constraints(self) -> FieldConstraints:
        return self._constraints

    @property
    def values(self) -> FrozenSet[int]:
        return self._values

    @property
    def sorted_values(self) -> tuple[int, ...]:
        return self._sorted

    @property
    def original(self) -> str:
        return self._original

    @property
    def is_any(self) -> bool:
        """True when the field accepts every value in its bounds."""
        return len(self._values) == self._constraints.cardinality

    @property
    def is_restricted(self) -> bool:
        return not self.is_any

    def matches(self, value: int) -> bool:
        return value in self._values

    def next_value(self, value: int) -> int | None:
        """Return the smallest accepted value >= ``value``, or None."""
        index = bisect_left(self._sorted, value)
        if index < len(self._sorted):
            return self._sorted[index]
        return None

    @property
    def first(self) -> int:
        return self._sorted[0]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CronField):
            return (
                self._field_type == other._field_type
                and self._values == other._values
            )
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._field_type, self._values))

    def __repr__(self) -> str:
        return f"CronField({self._field_type.name}, {self._original!r})"


# =============================================================================
# Field Parser
# =============================================================================


def normalize_expression(expression: str) -> str:
    """Trim and collapse internal whitespace runs to single spaces."""
    return " ".join(expression.split())


def parse_field(
    pattern: str,
    field_type: CronFieldType,
    *,
    constraints: FieldConstraints | None = None,
    expression: str = "",
) -> CronField:
    """Parse one field pattern into a CronField.

    Accepted members, comma-separated: ``*``, ``N``, ``N-M``, ``*/S``,
    ``N-M/S`` and ``N/S``. Names from the field's alias table may stand
    in for numbers.

    Args:
        pattern: Field text, e.g. ``"*/15"`` or ``"MON-FRI"``.
        field_type: Which field the pattern belongs to.
        constraints: Bounds override (defaults to FIELD_CONSTRAINTS).
        expression: Whole expression, carried on errors for context.

    Returns:
        Parsed CronField.

    Raises:
        CronParseError: Naming the field and the offending member.
    """
    constraints = constraints or FIELD_CONSTRAINTS[field_type]
    values: set[int] = set()

    for member in pattern.split(","):
        values.update(_parse_member(member, field_type, constraints, expression))

    return CronField(
        field_type,
        frozenset(values),
        constraints=constraints,
        original=pattern,
    )


def _parse_member(
    member: str,
    field_type: CronFieldType,
    constraints: FieldConstraints,
    expression: str,
) -> range:
    if not member:
        raise CronParseError(
            f"Empty list member in {field_type.label} field",
            field_type, member, ParseErrorReason.MALFORMED_TOKEN, expression,
        )

    base, slash, step_text = member.partition("/")
    step = 1
    if slash:
        if not _SIGNED_NUMBER.fullmatch(step_text):
            raise CronParseError(
                f"Invalid step {step_text!r} in {field_type.label} field",
                field_type, member, ParseErrorReason.MALFORMED_TOKEN, expression,
            )
        step = int(step_text)
        if step <= 0:
            raise CronParseError(
                f"Step must be positive in {field_type.label} field, got {step}",
                field_type, member, ParseErrorReason.NON_POSITIVE_STEP, expression,
            )

    if base == "*":
        start, end = constraints.min_value, constraints.max_value
    elif "-" in base:
        start_text, _, end_text = base.partition("-")
        start = _resolve_value(start_text, member, field_type, constraints, expression)
        end = _resolve_value(end_text, member, field_type, constraints, expression)
        if start > end:
            raise CronParseError(
                f"Range start {start} is greater than end {end} "
                f"in {field_type.label} field",
                field_type, member, ParseErrorReason.INVERTED_RANGE, expression,
            )
    else:
        start = _resolve_value(base, member, field_type, constraints, expression)
        # N/S runs from N to the field maximum
        end = constraints.max_value if slash else start

    return range(start, end + 1, step)


def _resolve_value(
    text: str,
    member: str,
    field_type: CronFieldType,
    constraints: FieldConstraints,
    expression: str,
) -> int:
    """Resolve a number or alias name to an in-bounds integer."""
    upper = text.upper()
    if upper in constraints.names:
        return constraints.names[upper]

    if not _NUMBER.fullmatch(text):
        raise CronParseError(
            f"Invalid value {text!r} in {field_type.label} field",
            field_type, member, ParseErrorReason.MALFORMED_TOKEN, expression,
        )

    value = int(text)
    if value < constraints.min_value or value > constraints.max_value:
        raise CronParseError(
            f"Value {value} out of range "
            f"[{constraints.min_value}-{constraints.max_value}] "
            f"for {field_type.label} field",
            field_type, member, ParseErrorReason.OUT_OF_BOUNDS, expression,
        )
    return value


# =============================================================================
# Expression Validator
# =============================================================================


class CronParser:
    """Validator for whole cron expressions.

    Normalizes whitespace, expands predefined aliases, checks the field
    count against the dialect and parses every field in position order.
    """

    ALIASES: dict[str, str] = {
        "@yearly": "0 0 1 1 *",
        "@annually": "0 0 1 1 *",
        "@monthly": "0 0 1 * *",
        "@weekly": "0 0 * * 0",
        "@daily": "0 0 * * *",
        "@midnight": "0 0 * * *",
        "@hourly": "0 * * * *",
    }

    def __init__(
        self,
        expression: str,
        dialect: CronDialect | str = CronDialect.CLASSIC5,
    ) -> None:
        self._dialect = CronDialect.coerce(dialect)
        self._normalized = normalize_expression(expression)
        self._expression = self._resolve_alias(self._normalized)

    @property
    def normalized(self) -> str:
        return self._normalized

    @property
    def dialect(self) -> CronDialect:
        return self._dialect

    def _resolve_alias(self, expression: str) -> str:
        resolved = self.ALIASES.get(expression.lower())
        if resolved is None:
            return expression
        if self._dialect is CronDialect.CLASSIC6:
            return f"0 {resolved}"
        return resolved

    def parse(self) -> list[CronField]:
        """Parse the expression into fields.

        Raises:
            CronValidationError: Wrapping the first failure encountered.
        """
        parts = self._expression.split(" ") if self._expression else []
        field_types = self._dialect.field_types

        if len(parts) != len(field_types):
            cause = FieldCountMismatchError(
                len(field_types), len(parts), self._normalized
            )
            raise CronValidationError(cause) from cause

        fields = []
        for position, (part, field_type) in enumerate(zip(parts, field_types)):
            try:
                fields.append(
                    parse_field(part, field_type, expression=self._normalized)
                )
            except CronParseError as e:
                raise CronValidationError(e, position) from e
        return fields


# =============================================================================
# Cron Expression
# =============================================================================


class CronExpression:
    """Validated cron expression.

    Immutable once constructed. The field tuple always matches the dialect
    arity. Day-of-month and day-of-week combine with OR when both are
    restricted, as in classic crontab.

    Example:
        >>> expr = CronExpression.parse("0 9 * * MON-FRI")
        >>> expr.canonical
        '0 9 * * MON-FRI'
        >>> expr.next_n(3, timezone="Europe/Berlin")
    """

    __slots__ = (
        "_expression",
        "_fields",
        "_dialect",
        "_field_map",
    )

    def __init__(
        self,
        expression: str,
        fields: list[CronField],
        dialect: CronDialect = CronDialect.CLASSIC5,
    ) -> None:
        if len(fields) != dialect.arity:
            raise FieldCountMismatchError(dialect.arity, len(fields), expression)
        self._expression = expression
        self._fields = tuple(fields)
        self._dialect = dialect
        self._field_map: dict[CronFieldType, CronField] = {
            f.field_type: f for f in fields
        }

    @classmethod
    def parse(
        cls,
        expression: str,
        dialect: CronDialect | str = CronDialect.CLASSIC5,
    ) -> "CronExpression":
        """Parse and validate a cron expression.

        Raises:
            CronValidationError: If the expression is invalid.
        """
        parser = CronParser(expression, dialect)
        fields = parser.parse()
        return cls(parser.normalized, fields, parser.dialect)

    @classmethod
    def builder(cls, dialect: CronDialect | str = CronDialect.CLASSIC5) -> "CronBuilder":
        from cronguru.scheduling.builder import CronBuilder

        return CronBuilder(dialect)

    @property
    def expression(self) -> str:
        """Normalized input text (aliases not expanded)."""
        return self._expression

    @property
    def canonical(self) -> str:
        """Field tokens joined by single spaces, aliases expanded."""
        return " ".join(f.original for f in self._fields)

    @property
    def dialect(self) -> CronDialect:
        return self._dialect

    @property
    def fields(self) -> tuple[CronField, ...]:
        return self._fields

    @property
    def has_seconds(self) -> bool:
        return self._dialect is CronDialect.CLASSIC6

    def get_field(self, field_type: CronFieldType) -> CronField | None:
        return self._field_map.get(field_type)

    def __getitem__(self, field_type: CronFieldType) -> CronField:
        return self._field_map[field_type]

    def day_matches(self, year: int, month: int, day: int, weekday: int) -> bool:
        """Apply the day-of-month / day-of-week rule to one calendar day.

        Args:
            weekday: Cron weekday of the date (0=Sunday).
        """
        dom = self._field_map[CronFieldType.DAY_OF_MONTH]
        dow = self._field_map[CronFieldType.DAY_OF_WEEK]

        if dom.is_any and dow.is_any:
            return True
        if dow.is_any:
            return dom.matches(day)
        if dom.is_any:
            return dow.matches(weekday)
        return dom.matches(day) or dow.matches(weekday)

    def matches(self, dt: datetime) -> bool:
        """Check whether the wall-clock fields of ``dt`` match."""
        if not self._field_map[CronFieldType.MONTH].matches(dt.month):
            return False
        if not self.day_matches(dt.year, dt.month, dt.day, cron_weekday(dt)):
            return False
        if not self._field_map[CronFieldType.HOUR].matches(dt.hour):
            return False
        if not self._field_map[CronFieldType.MINUTE].matches(dt.minute):
            return False
        if self.has_seconds:
            return self._field_map[CronFieldType.SECOND].matches(dt.second)
        return dt.second == 0

    def next(
        self,
        after: datetime | None = None,
        timezone: str = "UTC",
    ) -> "Occurrence":
        """Get the next occurrence strictly after ``after``.

        Raises:
            NoOccurrenceFoundError: If none exists within the horizon.
        """
        return next(self.iter(after, timezone=timezone))

    def next_n(
        self,
        n: int,
        after: datetime | None = None,
        timezone: str = "UTC",
    ) -> list["Occurrence"]:
        """Get the next ``n`` occurrences, clamped to the default bounds."""
        from cronguru.scheduling.iterator import next_runs

        return next_runs(self, timezone, n, after)

    def iter(
        self,
        after: datetime | None = None,
        timezone: str = "UTC",
        limit: int | None = None,
    ) -> "CronIterator":
        from cronguru.scheduling.iterator import CronIterator

        return CronIterator(self, timezone, after, limit=limit)

    def __repr__(self) -> str:
        return f"CronExpression({self._expression!r}, {self._dialect.value})"

    def __str__(self) -> str:
        return self._expression

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CronExpression):
            return (
                self.canonical == other.canonical
                and self._dialect == other._dialect
            )
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self.canonical, self._dialect))


def cron_weekday(dt: datetime) -> int:
    """Cron weekday of a date: Sunday=0 .. Saturday=6."""
    return (dt.weekday() + 1) % 7


# =============================================================================
# Validation Functions
# =============================================================================


def validate(
    expression: str,
    dialect: CronDialect | str = CronDialect.CLASSIC5,
) -> CronExpression:
    """Validate raw text against a dialect.

    Raises:
        CronValidationError: Wrapping the first field or count failure.
    """
    return CronExpression.parse(expression, dialect)


def validate_expression(
    expression: str,
    dialect: CronDialect | str = CronDialect.CLASSIC5,
) -> list[str]:
    """Validate a cron expression.

    Returns:
        List of validation errors (empty if valid).
    """
    errors = []

    try:
        CronExpression.parse(expression, dialect)
    except CronValidationError as e:
        errors.append(str(e))

    return errors


def is_valid_expression(
    expression: str,
    dialect: CronDialect | str = CronDialect.CLASSIC5,
) -> bool:
    try:
        CronExpression.parse(expression, dialect)
        return True
    except CronValidationError:
        return False
