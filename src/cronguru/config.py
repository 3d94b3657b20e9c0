"""Configuration for cronguru.

Settings are layered from ordered sources, later sources overriding
earlier ones:

    defaults
       |
       +---> FileConfigSource (YAML, JSON or TOML file)
       +---> EnvConfigSource  (CRONGURU_* environment variables)
       |
       v
    CronGuruConfig (validated, typed)

Usage:
    >>> from cronguru.config import load_config
    >>> config = load_config("cronguru.yaml")
    >>> config.default_timezone
    'Europe/Berlin'

Environment variables use the field name in upper case, e.g.
``CRONGURU_DEFAULT_TIMEZONE=Asia/Tokyo`` or ``CRONGURU_MAX_COUNT=20``.
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from cronguru.scheduling.cron import CronDialect
from cronguru.scheduling.errors import InvalidTimezoneError
from cronguru.scheduling.timezones import resolve_timezone

logger = logging.getLogger(__name__)

ENV_PREFIX = "CRONGURU"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(Exception):
    """Base configuration error."""

    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(f"Configuration validation failed: {', '.join(errors)}")


class ConfigSourceError(ConfigError):
    """Configuration source error."""

    pass


# =============================================================================
# Configuration Sources
# =============================================================================


class ConfigSource(ABC):
    """A provider of raw configuration key-value pairs."""

    @abstractmethod
    def load(self) -> dict[str, Any]:
        pass


class FileConfigSource(ConfigSource):
    """File-based configuration source.

    Supports YAML, JSON, and TOML formats, detected from the file
    extension. Settings may sit at the top level or under a ``cronguru``
    key.
    """

    def __init__(self, path: str | Path, *, required: bool = False) -> None:
        self._path = Path(path)
        self._required = required

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any]:
        if not self._path.exists():
            if self._required:
                raise ConfigSourceError(f"Configuration file not found: {self._path}")
            return {}

        content = self._path.read_text(encoding="utf-8")
        suffix = self._path.suffix.lower()

        try:
            if suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content) or {}
            elif suffix == ".json":
                data = json.loads(content)
            elif suffix == ".toml":
                data = tomllib.loads(content)
            else:
                raise ConfigSourceError(f"Unsupported file format: {suffix}")
        except (yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
            raise ConfigSourceError(f"Failed to load config {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigSourceError(
                f"Configuration root must be a mapping: {self._path}"
            )
        section = data.get("cronguru", data)
        if not isinstance(section, dict):
            raise ConfigSourceError(
                f"'cronguru' section must be a mapping: {self._path}"
            )

        logger.debug("Loaded %d settings from %s", len(section), self._path)
        return dict(section)


class EnvConfigSource(ConfigSource):
    """Environment variable configuration source.

    Example:
        CRONGURU_DEFAULT_TIMEZONE=Asia/Tokyo
        CRONGURU_COUNT=20

        Will produce:
        {"default_timezone": "Asia/Tokyo", "count": "20"}

    Values stay strings; CronGuruConfig converts them per field. Only the
    names in ``keys`` are read, so unrelated ``CRONGURU_*`` variables (such
    as the CLI's config file path) are left alone.
    """

    def __init__(
        self,
        keys: tuple[str, ...],
        prefix: str = ENV_PREFIX,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._keys = keys
        self._prefix = f"{prefix}_"
        self._environ = environ

    def load(self) -> dict[str, Any]:
        environ = os.environ if self._environ is None else self._environ
        result: dict[str, Any] = {}
        for key in self._keys:
            value = environ.get(f"{self._prefix}{key.upper()}")
            if value is not None:
                result[key] = value
        return result


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class CronGuruConfig:
    """Engine and front-end defaults.

    Attributes:
        default_timezone: Zone used when a request names none.
        dialect: Default cron dialect.
        count: Default number of occurrences to list.
        min_count: Lower clamp for requested counts.
        max_count: Upper clamp for requested counts.
        horizon_years: Civil years an occurrence search may scan.
        locale: Locale tag for descriptions.
        use_24hour: Render description times on a 24-hour clock.
        log_level: Level the CLI configures logging with.
    """

    default_timezone: str = "UTC"
    dialect: CronDialect = CronDialect.CLASSIC5
    count: int = 10
    min_count: int = 1
    max_count: int = 50
    horizon_years: int = 5
    locale: str = "en"
    use_24hour: bool = True
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        errors = self.validate()
        if errors:
            raise ConfigValidationError(errors)

    def validate(self) -> list[str]:
        errors = []
        try:
            resolve_timezone(self.default_timezone)
        except InvalidTimezoneError as e:
            errors.append(str(e))
        if self.min_count < 1:
            errors.append(f"min_count must be at least 1, got {self.min_count}")
        if self.max_count < self.min_count:
            errors.append(
                f"max_count ({self.max_count}) is below min_count ({self.min_count})"
            )
        if self.horizon_years < 1:
            errors.append(f"horizon_years must be at least 1, got {self.horizon_years}")
        if self.log_level not in _LOG_LEVELS:
            errors.append(f"Unknown log_level: {self.log_level!r}")
        return errors

    def clamp(self, count: int | None) -> int:
        """Clamp a requested count, falling back to the default count."""
        wanted = self.count if count is None else count
        return max(self.min_count, min(wanted, self.max_count))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CronGuruConfig":
        """Build a config from raw values, converting each to its field type.

        Raises:
            ConfigValidationError: On unknown keys or unconvertible values.
        """
        known = {f.name for f in fields(cls)}
        errors = [f"Unknown setting: {key!r}" for key in data if key not in known]
        values: dict[str, Any] = {}

        for key, raw in data.items():
            if key not in known:
                continue
            try:
                values[key] = _convert(key, raw)
            except (TypeError, ValueError) as e:
                errors.append(f"Invalid value for {key}: {e}")

        if errors:
            raise ConfigValidationError(errors)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["dialect"] = self.dialect.value
        return data


_INT_FIELDS = ("count", "min_count", "max_count", "horizon_years")


def _convert(key: str, raw: Any) -> Any:
    if key == "dialect":
        return CronDialect.coerce(raw if isinstance(raw, CronDialect) else str(raw))
    if key in _INT_FIELDS:
        if isinstance(raw, bool):
            raise TypeError(f"expected an integer, got {raw!r}")
        return int(raw)
    if key == "use_24hour":
        return _to_bool(raw)
    if key == "log_level":
        return str(raw).upper()
    return str(raw)


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in ("true", "yes", "1", "on"):
        return True
    if text in ("false", "no", "0", "off"):
        return False
    raise ValueError(f"expected a boolean, got {raw!r}")


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> CronGuruConfig:
    """Load configuration from defaults, an optional file, and the environment.

    Args:
        path: Config file; must exist when given.
        environ: Environment mapping (default: ``os.environ``).

    Raises:
        ConfigSourceError: If the file is missing or unreadable.
        ConfigValidationError: If a setting is unknown or invalid.
    """
    sources: list[ConfigSource] = []
    if path is not None:
        sources.append(FileConfigSource(path, required=True))
    keys = tuple(f.name for f in fields(CronGuruConfig))
    sources.append(EnvConfigSource(keys, environ=environ))

    merged: dict[str, Any] = {}
    for source in sources:
        merged.update(source.load())
    return CronGuruConfig.from_dict(merged)
