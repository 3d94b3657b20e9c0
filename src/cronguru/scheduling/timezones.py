"""Timezone resolution and civil-time mapping.

Zone data comes from the host's IANA database through ``zoneinfo`` (with
the ``tzdata`` package as a fallback on hosts that ship none). The helpers
here decide how a wall-clock time maps to an absolute instant around DST
transitions:

- a wall-clock time inside a spring-forward gap does not exist;
- a wall-clock time inside a fall-back overlap exists twice, and only the
  later instant (``fold=1``) is used.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from cronguru.scheduling.errors import InvalidTimezoneError


def resolve_timezone(name: str) -> ZoneInfo:
    """Resolve an IANA zone key.

    Raises:
        InvalidTimezoneError: If the key is empty, malformed or unknown.
    """
    if not name or not name.strip():
        raise InvalidTimezoneError(name)
    # Keys naming a tzdata directory ("Europe") surface as OSError
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise InvalidTimezoneError(name) from e


def is_valid_timezone(name: str) -> bool:
    try:
        resolve_timezone(name)
        return True
    except InvalidTimezoneError:
        return False


def localize(civil: datetime, zone: ZoneInfo) -> datetime | None:
    """Attach ``zone`` to a naive wall-clock time.

    Returns:
        The aware datetime, or None when the wall-clock time falls in a
        spring-forward gap. Ambiguous times resolve to the later instant.
    """
    earlier = civil.replace(tzinfo=zone, fold=0)
    later = civil.replace(tzinfo=zone, fold=1)

    round_trip = earlier.astimezone(timezone.utc).astimezone(zone)
    if round_trip.replace(tzinfo=None) != civil:
        return None

    if earlier.utcoffset() != later.utcoffset():
        return later
    return earlier


def is_ambiguous(civil: datetime, zone: ZoneInfo) -> bool:
    if localize(civil, zone) is None:
        return False
    earlier = civil.replace(tzinfo=zone, fold=0)
    later = civil.replace(tzinfo=zone, fold=1)
    return earlier.utcoffset() != later.utcoffset()


def is_nonexistent(civil: datetime, zone: ZoneInfo) -> bool:
    return localize(civil, zone) is None


# =============================================================================
# Common Zones
# =============================================================================


@dataclass(frozen=True)
class TimezoneInfo:
    """A catalogued zone with its region grouping."""

    key: str
    region: str

    def utc_offset(self, at: datetime | None = None) -> timedelta:
        """Offset of the zone at ``at`` (default: now)."""
        moment = at or datetime.now(timezone.utc)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        offset = moment.astimezone(ZoneInfo(self.key)).utcoffset()
        return offset or timedelta(0)

    def offset_label(self, at: datetime | None = None) -> str:
        """Offset formatted as ``UTC+8``, ``UTC-3:30`` or ``UTC+0``."""
        total = int(self.utc_offset(at).total_seconds()) // 60
        sign = "-" if total < 0 else "+"
        hours, minutes = divmod(abs(total), 60)
        if minutes:
            return f"UTC{sign}{hours}:{minutes:02d}"
        return f"UTC{sign}{hours}"


COMMON_TIMEZONES: tuple[TimezoneInfo, ...] = (
    TimezoneInfo("Asia/Shanghai", "Asia"),
    TimezoneInfo("Asia/Hong_Kong", "Asia"),
    TimezoneInfo("Asia/Tokyo", "Asia"),
    TimezoneInfo("Asia/Seoul", "Asia"),
    TimezoneInfo("Asia/Singapore", "Asia"),
    TimezoneInfo("Asia/Kolkata", "Asia"),
    TimezoneInfo("Asia/Dubai", "Asia"),
    TimezoneInfo("Asia/Bangkok", "Asia"),
    TimezoneInfo("Europe/London", "Europe"),
    TimezoneInfo("Europe/Paris", "Europe"),
    TimezoneInfo("Europe/Berlin", "Europe"),
    TimezoneInfo("Europe/Moscow", "Europe"),
    TimezoneInfo("Europe/Rome", "Europe"),
    TimezoneInfo("Europe/Madrid", "Europe"),
    TimezoneInfo("America/New_York", "Americas"),
    TimezoneInfo("America/Chicago", "Americas"),
    TimezoneInfo("America/Denver", "Americas"),
    TimezoneInfo("America/Los_Angeles", "Americas"),
    TimezoneInfo("America/Toronto", "Americas"),
    TimezoneInfo("America/Sao_Paulo", "Americas"),
    TimezoneInfo("America/Mexico_City", "Americas"),
    TimezoneInfo("Australia/Sydney", "Oceania"),
    TimezoneInfo("Australia/Melbourne", "Oceania"),
    TimezoneInfo("Australia/Perth", "Oceania"),
    TimezoneInfo("Pacific/Auckland", "Oceania"),
    TimezoneInfo("Africa/Cairo", "Africa"),
    TimezoneInfo("Africa/Johannesburg", "Africa"),
    TimezoneInfo("Africa/Lagos", "Africa"),
    TimezoneInfo("UTC", "UTC"),
)


def get_timezones_by_region(
    region: str,
    zones: Iterable[TimezoneInfo] = COMMON_TIMEZONES,
) -> list[TimezoneInfo]:
    """Zones in ``region``, matched case-insensitively."""
    wanted = region.strip().lower()
    return [tz for tz in zones if tz.region.lower() == wanted]


def list_timezone_keys() -> list[str]:
    """Every zone key the host database knows, sorted."""
    return sorted(available_timezones())
