"""Exceptions raised by the cron engine.

Every error is a ``CronError`` (itself a ``ValueError``), so callers that
only care about "bad input" can catch a single class. The concrete classes
carry structured attributes so that front-ends can point at the offending
field or token without parsing messages.

Hierarchy:
    CronError
     +-- CronParseError          one field's pattern is invalid
     +-- FieldCountMismatchError wrong number of fields for the dialect
     +-- CronValidationError     wraps the first of the two above
     +-- InvalidTimezoneError    unknown zone identifier
     +-- NoOccurrenceFoundError  search horizon exhausted
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cronguru.scheduling.cron import CronFieldType


class CronError(ValueError):
    """Base class for all cron engine errors."""

    def __init__(self, message: str, expression: str = "") -> None:
        self.expression = expression
        super().__init__(message)


class ParseErrorReason(str, Enum):
    """Why a single field failed to parse."""

    MALFORMED_TOKEN = "malformed_token"
    OUT_OF_BOUNDS = "out_of_bounds"
    NON_POSITIVE_STEP = "non_positive_step"
    INVERTED_RANGE = "inverted_range"


class CronParseError(CronError):
    """Raised when a single field pattern is invalid.

    Attributes:
        field_type: The field the token belongs to.
        token: The offending token (the list member, not the whole field).
        reason: Machine-readable failure reason.
    """

    def __init__(
        self,
        message: str,
        field_type: "CronFieldType",
        token: str,
        reason: ParseErrorReason,
        expression: str = "",
    ) -> None:
        self.field_type = field_type
        self.token = token
        self.reason = reason
        super().__init__(message, expression)


class FieldCountMismatchError(CronError):
    """Raised when the field count does not match the dialect arity."""

    def __init__(self, expected: int, actual: int, expression: str = "") -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Expected {expected} fields but got {actual}",
            expression,
        )


class CronValidationError(CronError):
    """Raised by ``validate`` with the first failure it encountered.

    Attributes:
        cause: The underlying ``CronParseError`` or ``FieldCountMismatchError``.
        field_type: Failing field, or None for a field count mismatch.
        position: Zero-based field position, or -1 for a count mismatch.
    """

    def __init__(
        self,
        cause: CronParseError | FieldCountMismatchError,
        position: int = -1,
    ) -> None:
        self.cause = cause
        self.position = position
        self.field_type = getattr(cause, "field_type", None)
        if self.field_type is not None:
            message = f"Invalid {self.field_type.label} field: {cause}"
        else:
            message = str(cause)
        super().__init__(message, cause.expression)


class InvalidTimezoneError(CronError):
    """Raised when a timezone identifier cannot be resolved."""

    def __init__(self, timezone: str) -> None:
        self.timezone = timezone
        super().__init__(f"Unknown timezone: {timezone!r}")


class NoOccurrenceFoundError(CronError):
    """Raised when no fire time exists within the search horizon."""

    def __init__(self, expression: str, horizon_years: int) -> None:
        self.horizon_years = horizon_years
        super().__init__(
            f"No occurrence of {expression!r} within {horizon_years} years",
            expression,
        )
