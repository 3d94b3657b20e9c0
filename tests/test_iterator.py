"""Tests for occurrence iteration.

Covers ordering, the day-of-month / day-of-week OR rule, timezone
conversion, DST gaps and overlaps, the search horizon and count clamping.
"""

from datetime import datetime, timedelta, timezone
from itertools import islice
from zoneinfo import ZoneInfo

import pytest

from cronguru.scheduling import (
    COMMON_TIMEZONES,
    CronDialect,
    CronIterator,
    InvalidTimezoneError,
    NoOccurrenceFoundError,
    Occurrence,
    TimezoneInfo,
    clamp_count,
    get_timezones_by_region,
    is_ambiguous,
    is_nonexistent,
    is_valid_timezone,
    iterate,
    list_timezone_keys,
    next_runs,
    validate,
)

UTC = timezone.utc


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


# =============================================================================
# Basic Iteration Tests
# =============================================================================


class TestBasicIteration:
    """Tests for plain, DST-free iteration."""

    def test_every_five_minutes(self):
        """Test */5 from midnight yields 00:05, 00:10, 00:15."""
        runs = next_runs(validate("*/5 * * * *"), "UTC", 3, after=utc(2024, 1, 1))
        assert [r.instant for r in runs] == [
            utc(2024, 1, 1, 0, 5),
            utc(2024, 1, 1, 0, 10),
            utc(2024, 1, 1, 0, 15),
        ]

    @pytest.mark.parametrize(
        "text",
        ["* * * * *", "*/7 3-5 * * *", "0 0 1 * *", "15 9 * * MON-FRI", "0 12 1,15 * 0"],
    )
    def test_exact_count_strictly_increasing(self, text):
        """Test N requested gives N occurrences in increasing order."""
        runs = next_runs(validate(text), "UTC", 20, after=utc(2024, 5, 17, 13, 42))
        assert len(runs) == 20
        instants = [r.instant for r in runs]
        assert all(a < b for a, b in zip(instants, instants[1:]))

    def test_after_is_exclusive(self):
        """Test an occurrence equal to 'after' is not emitted."""
        runs = next_runs(validate("0 * * * *"), "UTC", 1, after=utc(2024, 1, 1, 10))
        assert runs[0].instant == utc(2024, 1, 1, 11)

    def test_after_with_seconds_and_microseconds(self):
        """Test partial minutes round up to the next minute."""
        after = utc(2024, 1, 1, 10, 0, 30, 500000)
        runs = next_runs(validate("* * * * *"), "UTC", 1, after=after)
        assert runs[0].instant == utc(2024, 1, 1, 10, 1)

    def test_naive_after_is_utc(self):
        """Test naive datetimes are taken as UTC."""
        runs = next_runs(validate("0 * * * *"), "UTC", 1, after=datetime(2024, 1, 1, 10, 30))
        assert runs[0].instant == utc(2024, 1, 1, 11)

    def test_after_in_other_zone(self):
        """Test aware datetimes in any zone are converted first."""
        after = datetime(2024, 1, 1, 9, 0, tzinfo=ZoneInfo("Asia/Tokyo"))
        runs = next_runs(validate("0 * * * *"), "UTC", 1, after=after)
        assert runs[0].instant == utc(2024, 1, 1, 1)

    def test_seconds_dialect(self):
        """Test the 6-field dialect steps by seconds."""
        expr = validate("*/15 * * * * *", CronDialect.CLASSIC6)
        runs = next_runs(expr, "UTC", 4, after=utc(2024, 1, 1))
        assert [r.instant for r in runs] == [
            utc(2024, 1, 1, 0, 0, 15),
            utc(2024, 1, 1, 0, 0, 30),
            utc(2024, 1, 1, 0, 0, 45),
            utc(2024, 1, 1, 0, 1, 0),
        ]

    def test_seconds_dialect_specific_second(self):
        expr = validate("30 0 9 * * *", CronDialect.CLASSIC6)
        runs = next_runs(expr, "UTC", 2, after=utc(2024, 1, 1, 9, 0, 30))
        assert [r.instant for r in runs] == [
            utc(2024, 1, 2, 9, 0, 30),
            utc(2024, 1, 3, 9, 0, 30),
        ]

    def test_month_end(self):
        """Test day 31 only fires in 31-day months."""
        runs = next_runs(validate("0 0 31 * *"), "UTC", 4, after=utc(2024, 1, 31, 12))
        assert [r.instant.date().isoformat() for r in runs] == [
            "2024-03-31", "2024-05-31", "2024-07-31", "2024-08-31",
        ]

    def test_leap_day(self):
        """Test Feb 29 is found years ahead."""
        runs = next_runs(validate("0 0 29 2 *"), "UTC", 1, after=utc(2024, 3, 1))
        assert runs[0].instant == utc(2028, 2, 29)

    def test_year_wrap(self):
        runs = next_runs(validate("0 0 1 JAN *"), "UTC", 2, after=utc(2024, 6, 1))
        assert [r.instant for r in runs] == [utc(2025, 1, 1), utc(2026, 1, 1)]

    def test_lazy_iteration(self):
        """Test a long lazy run stays exactly one minute apart."""
        iterator = iterate(validate("* * * * *"), "UTC", utc(2024, 12, 31, 23, 0))
        runs = list(islice(iterator, 1000))
        assert len(runs) == 1000
        gaps = {b.instant - a.instant for a, b in zip(runs, runs[1:])}
        assert gaps == {timedelta(minutes=1)}


# =============================================================================
# Day-of-Month / Day-of-Week Tests
# =============================================================================


class TestDayRule:
    """Tests for the OR rule during iteration."""

    def test_or_semantics(self):
        """Test either the 1st or a Monday fires."""
        runs = next_runs(validate("0 9 1 * 1"), "UTC", 6, after=utc(2024, 1, 1, 9))
        assert [r.instant.date().isoformat() for r in runs] == [
            "2024-01-08", "2024-01-15", "2024-01-22", "2024-01-29",
            "2024-02-01", "2024-02-05",
        ]

    def test_day_of_week_only(self):
        runs = next_runs(validate("0 9 * * SAT,SUN"), "UTC", 3, after=utc(2024, 1, 1))
        assert [r.instant.weekday() for r in runs] == [5, 6, 5]

    def test_day_of_month_only(self):
        runs = next_runs(validate("0 0 15 * *"), "UTC", 2, after=utc(2024, 1, 1))
        assert [r.instant.day for r in runs] == [15, 15]


# =============================================================================
# Timezone Tests
# =============================================================================


class TestTimezones:
    """Tests for zone conversion and DST handling."""

    def test_local_fire_time(self):
        """Test fields are matched against local wall-clock time."""
        runs = next_runs(validate("0 9 * * *"), "Asia/Tokyo", 1, after=utc(2024, 1, 1))
        assert runs[0].local.hour == 9
        assert runs[0].local.date().isoformat() == "2024-01-02"
        assert runs[0].instant == utc(2024, 1, 2, 0)
        assert runs[0].timezone == "Asia/Tokyo"

    def test_instant_is_utc(self):
        runs = next_runs(validate("0 9 * * *"), "Europe/Berlin", 1, after=utc(2024, 1, 1))
        assert runs[0].instant.tzinfo is UTC
        assert runs[0].instant == utc(2024, 1, 1, 8)

    def test_spring_forward_skips_missing_time(self):
        """Test 02:30 on the New York spring-forward day is skipped."""
        runs = next_runs(
            validate("30 2 * * *"), "America/New_York", 2, after=utc(2024, 3, 9, 12)
        )
        assert [r.local.date().isoformat() for r in runs] == ["2024-03-11", "2024-03-12"]
        assert all(r.local.hour == 2 and r.local.minute == 30 for r in runs)

    def test_spring_forward_half_hourly(self):
        """Test no nonexistent civil time is emitted across the gap."""
        runs = next_runs(
            validate("*/30 * * * *"), "America/New_York", 3, after=utc(2024, 3, 10, 6)
        )
        assert [r.local.strftime("%H:%M") for r in runs] == ["01:30", "03:00", "03:30"]
        assert [r.instant for r in runs] == [
            utc(2024, 3, 10, 6, 30),
            utc(2024, 3, 10, 7, 0),
            utc(2024, 3, 10, 7, 30),
        ]

    def test_spring_forward_berlin(self):
        runs = next_runs(
            validate("0 2 * * *"), "Europe/Berlin", 2, after=utc(2024, 3, 30, 12)
        )
        assert [r.local.date().isoformat() for r in runs] == ["2024-04-01", "2024-04-02"]

    def test_fall_back_emits_each_instant_once(self):
        """Test the repeated hour uses only its later instant."""
        runs = next_runs(
            validate("*/30 * * * *"), "America/New_York", 4, after=utc(2024, 11, 3, 4)
        )
        assert [r.local.strftime("%H:%M") for r in runs] == ["00:30", "01:00", "01:30", "02:00"]
        assert [r.instant for r in runs] == [
            utc(2024, 11, 3, 4, 30),
            utc(2024, 11, 3, 6, 0),
            utc(2024, 11, 3, 6, 30),
            utc(2024, 11, 3, 7, 0),
        ]
        assert runs[1].local.fold == 1
        assert runs[1].local.utcoffset() == timedelta(hours=-5)

    def test_fall_back_hourly_no_duplicates(self):
        runs = next_runs(
            validate("0 * * * *"), "America/New_York", 3, after=utc(2024, 11, 3, 3, 30)
        )
        instants = [r.instant for r in runs]
        assert instants == [utc(2024, 11, 3, 4), utc(2024, 11, 3, 6), utc(2024, 11, 3, 7)]
        assert len(set(instants)) == len(instants)

    def test_fall_back_after_inside_overlap(self):
        """Test starting in the first pass of the overlap keeps the repeated hour."""
        after = utc(2024, 11, 3, 5, 15)  # 01:15 EDT
        runs = next_runs(validate("*/30 * * * *"), "America/New_York", 3, after=after)
        assert [r.instant for r in runs] == [
            utc(2024, 11, 3, 6, 0),
            utc(2024, 11, 3, 6, 30),
            utc(2024, 11, 3, 7, 0),
        ]
        assert all(r.instant > after for r in runs)

    @pytest.mark.parametrize(
        "after",
        [
            utc(2024, 11, 3, 5, 0),   # 01:00 EDT
            utc(2024, 11, 3, 5, 45),  # 01:45 EDT
            utc(2024, 11, 3, 6, 15),  # 01:15 EST
        ],
    )
    def test_restart_matches_continuing(self, after):
        """Test restarting at any instant yields the tail of a continuous run."""
        expr = validate("*/10 * * * *")
        continuous = list(islice(iterate(expr, "America/New_York", utc(2024, 11, 3, 4)), 40))
        expected = [o.instant for o in continuous if o.instant > after][:5]
        restarted = next_runs(expr, "America/New_York", 5, after=after)
        assert [o.instant for o in restarted] == expected
        assert expected[0] <= utc(2024, 11, 3, 6, 20)

    def test_dst_year_is_strictly_increasing(self):
        """Test a full year of hourly runs never repeats or goes back."""
        iterator = iterate(validate("0 * * * *"), "America/New_York", utc(2024, 1, 1))
        instants = [r.instant for r in islice(iterator, 24 * 366)]
        assert all(a < b for a, b in zip(instants, instants[1:]))

    def test_invalid_timezone_fails_immediately(self):
        """Test an unknown zone raises at iterate(), before next()."""
        with pytest.raises(InvalidTimezoneError) as exc:
            iterate(validate("* * * * *"), "Mars/Olympus_Mons")
        assert exc.value.timezone == "Mars/Olympus_Mons"

    @pytest.mark.parametrize("name", ["", "   ", "../etc/passwd", "Europe", "America"])
    def test_malformed_timezone(self, name):
        with pytest.raises(InvalidTimezoneError):
            iterate(validate("* * * * *"), name)


class TestTimezoneHelpers:
    """Tests for civil-time and catalogue helpers."""

    def test_is_ambiguous(self):
        zone = ZoneInfo("America/New_York")
        assert is_ambiguous(datetime(2024, 11, 3, 1, 30), zone)
        assert not is_ambiguous(datetime(2024, 11, 3, 2, 30), zone)
        assert not is_ambiguous(datetime(2024, 3, 10, 2, 30), zone)

    def test_is_nonexistent(self):
        zone = ZoneInfo("Europe/Berlin")
        assert is_nonexistent(datetime(2024, 3, 31, 2, 30), zone)
        assert not is_nonexistent(datetime(2024, 3, 31, 3, 30), zone)
        assert not is_nonexistent(datetime(2024, 10, 27, 2, 30), zone)

    @pytest.mark.parametrize(
        "name,valid",
        [("UTC", True), ("Asia/Tokyo", True), (" Europe/Berlin ", True),
         ("Europe", False), ("Nowhere/City", False), ("", False)],
    )
    def test_is_valid_timezone(self, name, valid):
        assert is_valid_timezone(name) is valid

    def test_get_timezones_by_region(self):
        keys = [tz.key for tz in get_timezones_by_region("europe")]
        assert "Europe/Berlin" in keys
        assert all(key.startswith("Europe/") for key in keys)
        assert get_timezones_by_region("Atlantis") == []

    def test_get_timezones_by_region_custom_zones(self):
        zones = [TimezoneInfo("Asia/Tokyo", "Asia"), TimezoneInfo("UTC", "UTC")]
        assert get_timezones_by_region("ASIA", zones) == zones[:1]

    def test_list_timezone_keys(self):
        keys = list_timezone_keys()
        assert keys == sorted(keys)
        assert {"America/New_York", "Asia/Tokyo"} <= set(keys)
        assert all(tz.key in keys for tz in COMMON_TIMEZONES if tz.key != "UTC")

    def test_offset_label(self):
        assert TimezoneInfo("Asia/Kolkata", "Asia").offset_label(utc(2024, 1, 1)) == "UTC+5:30"
        assert TimezoneInfo("America/New_York", "Americas").offset_label(utc(2024, 7, 1)) == "UTC-4"


# =============================================================================
# Horizon Tests
# =============================================================================


class TestHorizon:
    """Tests for the bounded search."""

    def test_impossible_date_raises(self):
        """Test Feb 31 fails instead of scanning forever."""
        iterator = iterate(validate("0 0 31 2 *"), "UTC", utc(2024, 1, 1))
        with pytest.raises(NoOccurrenceFoundError) as exc:
            next(iterator)
        assert exc.value.horizon_years == 5

    def test_next_runs_raises_when_nothing_found(self):
        with pytest.raises(NoOccurrenceFoundError):
            next_runs(validate("0 0 30 2 *"), "UTC", 5, after=utc(2024, 1, 1))

    def test_short_horizon(self):
        """Test a custom horizon shorter than the next match."""
        with pytest.raises(NoOccurrenceFoundError):
            next_runs(
                validate("0 0 29 2 *"), "UTC", 1,
                after=utc(2024, 3, 1), horizon_years=1,
            )

    def test_truncates_after_first_result(self):
        """Test later exhaustion returns what was found."""
        runs = next_runs(
            validate("0 0 29 2 *"), "UTC", 3,
            after=utc(2024, 1, 1), horizon_years=4,
        )
        assert [r.instant for r in runs] == [utc(2024, 2, 29)]

    def test_invalid_horizon(self):
        with pytest.raises(ValueError):
            iterate(validate("* * * * *"), "UTC", horizon_years=0)


# =============================================================================
# Count Tests
# =============================================================================


class TestCount:
    """Tests for count clamping."""

    def test_clamp_count(self):
        assert clamp_count(0) == 1
        assert clamp_count(-3) == 1
        assert clamp_count(10) == 10
        assert clamp_count(500) == 50
        assert clamp_count(500, max_count=100) == 100

    def test_clamp_count_invalid_bounds(self):
        with pytest.raises(ValueError):
            clamp_count(5, min_count=10, max_count=2)
        with pytest.raises(ValueError):
            clamp_count(5, min_count=0)

    def test_next_runs_clamps(self):
        """Test non-positive and absurd counts are clamped to [1, 50]."""
        expr = validate("* * * * *")
        assert len(next_runs(expr, "UTC", 0, after=utc(2024, 1, 1))) == 1
        assert len(next_runs(expr, "UTC", 500, after=utc(2024, 1, 1))) == 50

    def test_next_runs_custom_bounds(self):
        expr = validate("* * * * *")
        runs = next_runs(expr, "UTC", 500, after=utc(2024, 1, 1), max_count=120)
        assert len(runs) == 120


# =============================================================================
# CronIterator Tests
# =============================================================================


class TestCronIterator:
    """Tests for the iterator object."""

    def test_iterator_with_limit(self):
        """Test iterator respects limit."""
        iterator = CronIterator(validate("* * * * *"), "UTC", utc(2024, 1, 1), limit=10)
        assert len(list(iterator)) == 10

    def test_iterator_no_limit(self):
        """Test iterator without limit works with a manual break."""
        iterator = iterate(validate("0 0 1 * *"), "UTC", utc(2024, 1, 1))
        count = 0
        for _ in iterator:
            count += 1
            if count >= 5:
                break
        assert count == 5

    def test_restartable(self):
        """Test a fresh iterator restarts from a new instant."""
        expr = validate("0 * * * *")
        first = next(iterate(expr, "UTC", utc(2024, 1, 1)))
        again = next(iterate(expr, "UTC", utc(2024, 1, 1)))
        later = next(iterate(expr, "UTC", utc(2024, 6, 1)))
        assert first == again
        assert later.instant == utc(2024, 6, 1, 1)

    def test_default_after_is_now(self):
        before = datetime.now(UTC)
        occurrence = next(iterate(validate("* * * * *"), "UTC"))
        assert occurrence.instant > before

    def test_timezone_property(self):
        assert iterate(validate("* * * * *"), " UTC ").timezone == "UTC"

    def test_expression_convenience_methods(self):
        """Test next/next_n/iter on CronExpression."""
        expr = validate("0 9 * * *")
        after = utc(2024, 1, 1)
        assert expr.next(after).instant == utc(2024, 1, 1, 9)
        assert len(expr.next_n(3, after, timezone="Europe/Berlin")) == 3
        assert len(list(expr.iter(after, limit=4))) == 4


# =============================================================================
# Occurrence Tests
# =============================================================================


class TestOccurrence:
    """Tests for the occurrence value."""

    def test_to_dict(self):
        occurrence = next_runs(validate("0 9 * * *"), "Asia/Tokyo", 1, after=utc(2024, 1, 1))[0]
        assert occurrence.to_dict() == {
            "instant": "2024-01-02T00:00:00+00:00",
            "local": "2024-01-02T09:00:00+09:00",
            "timezone": "Asia/Tokyo",
        }
        assert occurrence.isoformat() == "2024-01-02T09:00:00+09:00"

    def test_frozen(self):
        occurrence = Occurrence(utc(2024, 1, 1), utc(2024, 1, 1), "UTC")
        with pytest.raises(AttributeError):
            occurrence.timezone = "Asia/Tokyo"
