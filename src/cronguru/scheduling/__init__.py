"""Cron expression engine.

This module parses and validates cron expressions, computes their upcoming
fire times in any IANA timezone, and flags common semantic pitfalls.

Features:
    - Classic 5-field cron (minute, hour, day, month, weekday)
    - 6-field cron with a leading seconds field
    - Steps, ranges, lists and their combinations
    - Named months and weekdays
    - Predefined expressions (@yearly, @monthly, @weekly, etc.)
    - DST-safe, lazy occurrence iteration
    - Diagnostics (day-of-month / day-of-week OR ambiguity, ...)
    - Expression builder, field debugger and calendar

Syntax Reference:
    Field         Values          Special Characters
    ─────────────────────────────────────────────────
    Second        0-59            * / , -
    Minute        0-59            * / , -
    Hour          0-23            * / , -
    Day of Month  1-31            * / , -
    Month         1-12 or JAN-DEC * / , -
    Day of Week   0-6 or SUN-SAT  * / , -

Usage:
    >>> from cronguru.scheduling import validate, next_runs, diagnose
    >>>
    >>> expr = validate("0 9 1 * MON")
    >>> runs = next_runs(expr, "Europe/Berlin", 5)
    >>> diagnose(expr)
    frozenset({Diagnostic(code=<DiagnosticCode.DOM_DOW_OR_AMBIGUITY: ...>, ...)})
"""

from cronguru.scheduling.errors import (
    CronError,
    CronParseError,
    CronValidationError,
    FieldCountMismatchError,
    InvalidTimezoneError,
    NoOccurrenceFoundError,
    ParseErrorReason,
)

from cronguru.scheduling.cron import (
    # Core
    CronDialect,
    CronExpression,
    CronField,
    CronFieldType,
    FieldConstraints,
    FIELD_CONSTRAINTS,
    # Parser
    CronParser,
    normalize_expression,
    parse_field,
    # Validation
    validate,
    validate_expression,
    is_valid_expression,
)

from cronguru.scheduling.iterator import (
    CronIterator,
    Occurrence,
    clamp_count,
    iterate,
    next_runs,
)

from cronguru.scheduling.diagnostics import (
    Diagnostic,
    DiagnosticCode,
    Severity,
    diagnose,
    register_diagnostic,
)

from cronguru.scheduling.builder import (
    CronBuilder,
    FieldMode,
    FieldSetting,
)

from cronguru.scheduling.explain import (
    CalendarDay,
    CalendarMonth,
    FieldExplanation,
    build_calendar,
    describe_field,
    explain_fields,
)

from cronguru.scheduling.timezones import (
    COMMON_TIMEZONES,
    TimezoneInfo,
    get_timezones_by_region,
    is_ambiguous,
    is_nonexistent,
    is_valid_timezone,
    list_timezone_keys,
    resolve_timezone,
)

__all__ = [
    # Errors
    "CronError",
    "CronParseError",
    "CronValidationError",
    "FieldCountMismatchError",
    "InvalidTimezoneError",
    "NoOccurrenceFoundError",
    "ParseErrorReason",
    # Core
    "CronDialect",
    "CronExpression",
    "CronField",
    "CronFieldType",
    "FieldConstraints",
    "FIELD_CONSTRAINTS",
    # Parser
    "CronParser",
    "normalize_expression",
    "parse_field",
    # Validation
    "validate",
    "validate_expression",
    "is_valid_expression",
    # Iterator
    "CronIterator",
    "Occurrence",
    "clamp_count",
    "iterate",
    "next_runs",
    # Diagnostics
    "Diagnostic",
    "DiagnosticCode",
    "Severity",
    "diagnose",
    "register_diagnostic",
    # Builder
    "CronBuilder",
    "FieldMode",
    "FieldSetting",
    # Explain
    "CalendarDay",
    "CalendarMonth",
    "FieldExplanation",
    "build_calendar",
    "describe_field",
    "explain_fields",
    # Timezones
    "COMMON_TIMEZONES",
    "TimezoneInfo",
    "get_timezones_by_region",
    "is_ambiguous",
    "is_nonexistent",
    "is_valid_timezone",
    "list_timezone_keys",
    "resolve_timezone",
]
