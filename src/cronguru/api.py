"""Main API functions for cronguru."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from urllib.parse import parse_qs, urlencode

from cronguru.config import CronGuruConfig
from cronguru.humanize import describe
from cronguru.scheduling.cron import CronDialect, CronExpression, normalize_expression, validate
from cronguru.scheduling.diagnostics import Diagnostic, diagnose
from cronguru.scheduling.errors import (
    CronValidationError,
    InvalidTimezoneError,
    NoOccurrenceFoundError,
)
from cronguru.scheduling.iterator import Occurrence, next_runs

logger = logging.getLogger(__name__)


@dataclass
class ExplainResult:
    """Everything a front-end shows for one expression.

    ``error`` is set when validation, timezone resolution or the occurrence
    search failed; ``error_kind`` is one of ``empty``, ``validation``,
    ``timezone`` or ``no_occurrence``.
    """

    normalized: str
    timezone: str
    dialect: CronDialect
    expression: CronExpression | None = None
    description: str | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    occurrences: list[Occurrence] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "normalized": self.normalized,
            "canonical": self.expression.canonical if self.expression else None,
            "timezone": self.timezone,
            "dialect": self.dialect.value,
            "description": self.description,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "occurrences": [o.to_dict() for o in self.occurrences],
            "error": self.error,
            "error_kind": self.error_kind,
        }


def explain(
    text: str,
    *,
    timezone: str | None = None,
    dialect: CronDialect | str | None = None,
    count: int | None = None,
    locale: str | None = None,
    after: datetime | None = None,
    config: CronGuruConfig | None = None,
) -> ExplainResult:
    """Validate, describe, diagnose and schedule an expression in one call.

    Errors are captured on the result rather than raised, so a front-end
    can always render something. The description is best-effort and is
    attempted even when the occurrence search fails.

    Args:
        text: Raw cron expression.
        timezone: IANA zone key (default: config default_timezone).
        dialect: Cron dialect (default: config dialect).
        count: Number of occurrences, clamped to the config bounds.
        locale: Locale tag for the description.
        after: Start instant (default: now).
        config: Settings; defaults are used when omitted.

    Returns:
        ExplainResult.
    """
    config = config or CronGuruConfig()
    timezone = timezone or config.default_timezone
    resolved_dialect = CronDialect.coerce(dialect) if dialect else config.dialect
    normalized = normalize_expression(text)

    result = ExplainResult(
        normalized=normalized,
        timezone=timezone,
        dialect=resolved_dialect,
    )

    if not normalized:
        result.error = "Expression cannot be empty."
        result.error_kind = "empty"
        return result

    try:
        expression = validate(normalized, resolved_dialect)
    except CronValidationError as e:
        result.error = str(e)
        result.error_kind = "validation"
        return result

    result.expression = expression
    result.diagnostics = sorted(diagnose(expression), key=lambda d: d.code.value)
    result.description = describe(
        expression, locale or config.locale, use_24hour=config.use_24hour
    )

    try:
        result.occurrences = next_runs(
            expression,
            timezone,
            config.clamp(count),
            after,
            min_count=config.min_count,
            max_count=config.max_count,
            horizon_years=config.horizon_years,
        )
    except InvalidTimezoneError as e:
        result.error = str(e)
        result.error_kind = "timezone"
    except NoOccurrenceFoundError as e:
        result.error = str(e)
        result.error_kind = "no_occurrence"

    if result.error:
        logger.debug("explain(%r) failed: %s", normalized, result.error)
    return result


# =============================================================================
# Shareable State
# =============================================================================


@dataclass(frozen=True)
class ShareState:
    """User-adjustable parameters, encodable in a URL query string."""

    expression: str
    timezone: str = "UTC"
    dialect: CronDialect = CronDialect.CLASSIC5
    count: int | None = None
    locale: str | None = None

    def to_query(self) -> str:
        params = {
            "expr": normalize_expression(self.expression),
            "tz": self.timezone,
            "dialect": self.dialect.value,
        }
        if self.count is not None:
            params["n"] = str(self.count)
        if self.locale:
            params["lang"] = self.locale
        return urlencode(params)

    @classmethod
    def from_query(
        cls,
        query: str,
        config: CronGuruConfig | None = None,
    ) -> "ShareState":
        """Decode a query string; missing parameters take config defaults.

        Raises:
            ValueError: If ``dialect`` or ``n`` is malformed.
        """
        config = config or CronGuruConfig()
        params = parse_qs(query.lstrip("?"))

        def first(name: str) -> str | None:
            values = params.get(name)
            return values[0] if values else None

        dialect = first("dialect")
        count = first("n")
        return cls(
            expression=first("expr") or "",
            timezone=first("tz") or config.default_timezone,
            dialect=CronDialect.from_string(dialect) if dialect else config.dialect,
            count=int(count) if count else None,
            locale=first("lang"),
        )

    def explain(self, config: CronGuruConfig | None = None, **kwargs: Any) -> ExplainResult:
        return explain(
            self.expression,
            timezone=self.timezone,
            dialect=self.dialect,
            count=self.count,
            locale=self.locale,
            config=config,
            **kwargs,
        )
