"""Advisory diagnostics over validated expressions.

Each diagnostic is an independent predicate taking a ``CronExpression`` and
returning a ``Diagnostic`` or None. ``diagnose`` runs every registered
predicate; new checks are added with ``register_diagnostic`` without
touching existing ones. Diagnostics never block validation or iteration.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from cronguru.scheduling.cron import CronExpression, CronFieldType


class DiagnosticCode(str, Enum):
    """Known semantic pitfalls."""

    DOM_DOW_OR_AMBIGUITY = "dom_dow_or_ambiguity"
    HIGH_FREQUENCY = "high_frequency"
    IMPOSSIBLE_DATE = "impossible_date"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """A structural property of an expression worth telling the user."""

    code: DiagnosticCode
    message: str
    severity: Severity = Severity.WARNING

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "severity": self.severity.value,
        }


DiagnosticCheck = Callable[[CronExpression], "Diagnostic | None"]

_CHECKS: list[DiagnosticCheck] = []


def register_diagnostic(check: DiagnosticCheck) -> DiagnosticCheck:
    """Register a diagnostic predicate. Usable as a decorator."""
    if check not in _CHECKS:
        _CHECKS.append(check)
    return check


def registered_diagnostics() -> tuple[DiagnosticCheck, ...]:
    return tuple(_CHECKS)


def diagnose(expression: CronExpression) -> frozenset[Diagnostic]:
    """Run every registered diagnostic against an expression."""
    found = set()
    for check in _CHECKS:
        result = check(expression)
        if result is not None:
            found.add(result)
    return frozenset(found)


# =============================================================================
# Built-in Diagnostics
# =============================================================================


@register_diagnostic
def check_dom_dow_or(expression: CronExpression) -> Diagnostic | None:
    dom = expression[CronFieldType.DAY_OF_MONTH]
    dow = expression[CronFieldType.DAY_OF_WEEK]
    if dom.is_restricted and dow.is_restricted:
        return Diagnostic(
            DiagnosticCode.DOM_DOW_OR_AMBIGUITY,
            "In classic crontab, day-of-month and day-of-week are ORed "
            "(either match can trigger).",
        )
    return None


@register_diagnostic
def check_high_frequency(expression: CronExpression) -> Diagnostic | None:
    if all(f.is_any for f in expression.fields):
        unit = "second" if expression.has_seconds else "minute"
        return Diagnostic(
            DiagnosticCode.HIGH_FREQUENCY,
            f"This schedule fires every {unit}.",
            Severity.INFO,
        )
    return None


@register_diagnostic
def check_impossible_date(expression: CronExpression) -> Diagnostic | None:
    if expression[CronFieldType.DAY_OF_WEEK].is_restricted:
        return None

    days = expression[CronFieldType.DAY_OF_MONTH]
    for month in expression[CronFieldType.MONTH].sorted_values:
        # 2000 is a leap year, so February allows 29
        longest = calendar.monthrange(2000, month)[1]
        if days.first <= longest:
            return None

    return Diagnostic(
        DiagnosticCode.IMPOSSIBLE_DATE,
        "No selected day-of-month exists in any selected month; "
        "this schedule never fires.",
    )
