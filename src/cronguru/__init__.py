"""cronguru - Validate, explain and schedule cron expressions."""

from cronguru.api import ExplainResult, ShareState, explain
from cronguru.config import CronGuruConfig, load_config
from cronguru.humanize import describe
from cronguru.scheduling import (
    CronDialect,
    CronExpression,
    CronValidationError,
    Occurrence,
    diagnose,
    iterate,
    next_runs,
    validate,
)

__version__ = "0.1.0"

__all__ = [
    "ExplainResult",
    "ShareState",
    "explain",
    "CronGuruConfig",
    "load_config",
    "describe",
    "CronDialect",
    "CronExpression",
    "CronValidationError",
    "Occurrence",
    "diagnose",
    "iterate",
    "next_runs",
    "validate",
]
