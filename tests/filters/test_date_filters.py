"""Tests for date and time filter translators."""

from datetime import date, datetime, timedelta, timezone

import pytest

from mongobuilder.filters.date_filters import (
    date_match,
    date_range_match,
    end_of_day,
    fall_within_date_range,
    fall_within_time_range,
    fields_date_range_match,
    greater_than_date_match,
    greater_than_or_equal_date_match,
    less_than_date_match,
    less_than_or_equal_date_match,
    ms_of_day,
    parse_date,
    parse_time_of_day,
    resolve_timezone,
    start_of_day,
    time_range_match,
)

UTC = timezone.utc


class TestResolveTimezone:
    """Test timezone resolution."""

    def test_utc(self):
        """The name UTC resolves to the UTC singleton."""
        assert resolve_timezone("UTC") is UTC

    def test_iana_name(self):
        """IANA names resolve to ZoneInfo."""
        zone = resolve_timezone("America/New_York")
        assert datetime(2023, 7, 1, tzinfo=zone).utcoffset() == timedelta(hours=-4)

    def test_tzinfo_passes_through(self):
        """tzinfo objects are returned unchanged."""
        assert resolve_timezone(UTC) is UTC

    def test_unknown(self):
        """Unknown names are configuration errors."""
        with pytest.raises(ValueError, match="Unknown timezone"):
            resolve_timezone("Mars/Olympus_Mons")


class TestParseDate:
    """Test date parsing."""

    def test_iso_date_is_local_midnight(self):
        """A bare date is midnight in the given zone."""
        parsed = parse_date("2023-05-17", "Europe/Berlin")
        assert parsed == datetime(2023, 5, 16, 22, 0, tzinfo=UTC)

    def test_iso_with_offset_is_honored(self):
        """An explicit offset wins over the zone."""
        parsed = parse_date("2023-05-17T10:00:00+02:00", "UTC")
        assert parsed == datetime(2023, 5, 17, 8, 0, tzinfo=UTC)

    def test_zulu_suffix(self):
        """A trailing Z is read as UTC."""
        assert parse_date("2023-05-17T10:00:00Z", "UTC") == datetime(2023, 5, 17, 10, tzinfo=UTC)

    def test_custom_format(self):
        """A strptime format is honored."""
        parsed = parse_date("17/05/2023", "UTC", "%d/%m/%Y")
        assert parsed == datetime(2023, 5, 17, tzinfo=UTC)

    def test_date_object(self):
        """date objects become local midnight."""
        assert parse_date(date(2023, 5, 17), "UTC") == datetime(2023, 5, 17, tzinfo=UTC)

    def test_naive_datetime_localized(self):
        """Naive datetimes are read in the given zone."""
        parsed = parse_date(datetime(2023, 5, 17, 12), "Asia/Tokyo")
        assert parsed == datetime(2023, 5, 17, 3, tzinfo=UTC)

    @pytest.mark.parametrize("raw", ["not a date", "2023-13-45", 12345, ["2023-01-01"]])
    def test_invalid(self, raw):
        """Unparseable values return None."""
        assert parse_date(raw, "UTC") is None

    def test_format_mismatch(self):
        """Text not matching the format returns None."""
        assert parse_date("2023-05-17", "UTC", "%d/%m/%Y") is None


class TestDayBoundaries:
    """Test start/end of day arithmetic."""

    def test_start_of_day_in_zone(self):
        """Start of day follows the local calendar."""
        moment = datetime(2023, 5, 17, 2, 30, tzinfo=UTC)
        # 2023-05-16 22:30 in New York
        assert start_of_day(moment, "America/New_York") == datetime(2023, 5, 16, 4, 0, tzinfo=UTC)

    def test_end_of_day_millisecond_precision(self):
        """End of day stops at the last millisecond."""
        moment = datetime(2023, 5, 17, 12, tzinfo=UTC)
        assert end_of_day(moment, "UTC") == datetime(2023, 5, 17, 23, 59, 59, 999000, tzinfo=UTC)


class TestDateMatch:
    """Test exact date matches."""

    def test_iso_value(self):
        """An ISO date matches local midnight."""
        result = date_match({"createdAt": "2023-05-17"}, "createdAt", "UTC")
        assert result.stages == ({"$match": {"createdAt": datetime(2023, 5, 17, tzinfo=UTC)}},)
        assert result.consumed == {"createdAt"}

    def test_emitted_value_is_utc(self):
        """Emitted datetimes are in UTC."""
        result = date_match({"createdAt": "2023-05-17"}, "createdAt", "America/New_York")
        value = result.stages[0]["$match"]["createdAt"]
        assert value.utcoffset() == timedelta(0)
        assert value == datetime(2023, 5, 17, 4, tzinfo=UTC)

    def test_invalid_is_silent(self):
        """Unparseable dates are consumed without a stage."""
        result = date_match({"createdAt": "yesterday"}, "createdAt", "UTC")
        assert result.stages == ()
        assert result.consumed == {"createdAt"}

    def test_override_with_format(self):
        """A static value with a format bypasses the dictionary."""
        result = date_match({}, "createdAt", "UTC", "05-17-2023", "%m-%d-%Y")
        assert result.stages == ({"$match": {"createdAt": datetime(2023, 5, 17, tzinfo=UTC)}},)
        assert result.consumed == frozenset()


class TestDateRangeMatch:
    """Test -from/-to day ranges."""

    def test_full_range_utc(self):
        """from is floored, to is ceiled."""
        filters = {"createdAt-from": "2023-05-01", "createdAt-to": "2023-05-07"}
        result = date_range_match(filters, "createdAt", "UTC")
        assert result.stages == (
            {
                "$match": {
                    "createdAt": {
                        "$gte": datetime(2023, 5, 1, 0, 0, 0, tzinfo=UTC),
                        "$lte": datetime(2023, 5, 7, 23, 59, 59, 999000, tzinfo=UTC),
                    }
                }
            },
        )
        assert result.consumed == {"createdAt-from", "createdAt-to"}

    def test_range_in_other_zone(self):
        """Day boundaries shift with the zone."""
        filters = {"createdAt-from": "2023-05-01", "createdAt-to": "2023-05-01"}
        bounds = date_range_match(filters, "createdAt", "America/New_York").stages[0]["$match"][
            "createdAt"
        ]
        assert bounds["$gte"] == datetime(2023, 5, 1, 4, 0, tzinfo=UTC)
        assert bounds["$lte"] == datetime(2023, 5, 2, 3, 59, 59, 999000, tzinfo=UTC)

    def test_from_only(self):
        """A lone -from gives a one-sided range, never an empty stage."""
        result = date_range_match({"createdAt-from": "2023-05-01"}, "createdAt", "UTC")
        assert result.stages == (
            {"$match": {"createdAt": {"$gte": datetime(2023, 5, 1, tzinfo=UTC)}}},
        )

    def test_invalid_bounds(self):
        """Unparseable bounds emit nothing."""
        filters = {"createdAt-from": "nope", "createdAt-to": ""}
        result = date_range_match(filters, "createdAt", "UTC")
        assert result.stages == ()
        assert result.consumed == {"createdAt-from", "createdAt-to"}


class TestDateComparisons:
    """Test day-snapped comparisons."""

    def test_gt_uses_end_of_day(self):
        """-gtDate compares against the end of the day."""
        result = greater_than_date_match({"eventDate-gtDate": "2023-05-10"}, "eventDate", "UTC")
        assert result.stages == (
            {"$match": {"eventDate": {"$gt": datetime(2023, 5, 10, 23, 59, 59, 999000, tzinfo=UTC)}}},
        )
        assert result.consumed == {"eventDate-gtDate"}

    def test_gte_uses_start_of_day(self):
        """-gteDate compares against the start of the day."""
        result = greater_than_or_equal_date_match(
            {"startDate-gteDate": "2023-05-10"}, "startDate", "UTC"
        )
        assert result.stages == (
            {"$match": {"startDate": {"$gte": datetime(2023, 5, 10, tzinfo=UTC)}}},
        )

    def test_lt_uses_start_of_day(self):
        """-ltDate compares against the start of the day."""
        result = less_than_date_match({"eventDate-ltDate": "2023-05-10T15:00:00"}, "eventDate", "UTC")
        assert result.stages == (
            {"$match": {"eventDate": {"$lt": datetime(2023, 5, 10, tzinfo=UTC)}}},
        )

    def test_lte_uses_end_of_day(self):
        """-lteDate compares against the end of the day."""
        result = less_than_or_equal_date_match({"endDate-lteDate": "2023-05-10"}, "endDate", "UTC")
        assert result.stages == (
            {"$match": {"endDate": {"$lte": datetime(2023, 5, 10, 23, 59, 59, 999000, tzinfo=UTC)}}},
        )

    def test_invalid_consumed(self):
        """Invalid dates are consumed without a stage."""
        result = greater_than_date_match({"eventDate-gtDate": "bad"}, "eventDate", "UTC")
        assert result.stages == ()
        assert result.consumed == {"eventDate-gtDate"}


class TestTimeOfDay:
    """Test time-of-day helpers."""

    @pytest.mark.parametrize(
        "raw, expected_ms",
        [
            ("00:00:00", 0),
            ("09:00:00", 32_400_000),
            ("09:30", 34_200_000),
            ("23:59:59", 86_399_000),
        ],
    )
    def test_ms_of_day(self, raw, expected_ms):
        """Milliseconds since local midnight."""
        assert ms_of_day(parse_time_of_day(raw)) == expected_ms

    def test_fraction_included(self):
        """Fractional seconds are kept."""
        assert ms_of_day(parse_time_of_day("00:00:01.250")) == 1_250
        assert ms_of_day(parse_time_of_day("00:00:01.250"), include_ms=False) == 1_000

    @pytest.mark.parametrize("raw", ["25:00:00", "9am", "", 900])
    def test_invalid(self, raw):
        """Malformed times return None."""
        assert parse_time_of_day(raw) is None


class TestFallWithinDateRange:
    """Test the "today between two fields" match."""

    def test_gated_off(self):
        """Without the flag nothing is emitted; the flag key is still consumed."""
        result = fall_within_date_range({"range-within-date": "false"}, "startDate", "endDate", "UTC")
        assert result.stages == ()
        assert result.consumed == {"range-within-date"}

    def test_flag_absent(self):
        """Without the gate nothing is emitted."""
        result = fall_within_date_range({}, "startDate", "endDate", "UTC")
        assert result.stages == ()
        assert result.consumed == frozenset()

    def test_today_in_zone(self, fixed_now):
        """'Today' is the start of the current day in the builder's timezone."""
        result = fall_within_date_range(
            {"range-within-date": "true"}, "startDate", "endDate", "Asia/Tokyo", now=fixed_now
        )
        # 2024-03-15 18:30 UTC is 2024-03-16 03:30 in Tokyo
        today = datetime(2024, 3, 15, 15, 0, tzinfo=UTC)
        assert result.stages == (
            {
                "$match": {
                    "$expr": {
                        "$and": [
                            {"$lte": ["$startDate", today]},
                            {"$gte": ["$endDate", today]},
                        ]
                    }
                }
            },
        )
        assert result.consumed == {"range-within-date"}

    def test_boolean_flag(self, fixed_now):
        """A boolean True opens the gate."""
        result = fall_within_date_range(
            {"range-within-date": True}, "startDate", "endDate", "UTC", now=fixed_now
        )
        assert result.emitted


class TestFallWithinTimeRange:
    """Test the "time of day between two fields" match."""

    def test_explicit_time(self):
        """An explicit time replaces the current one."""
        result = fall_within_time_range(
            {"range-within-time": "true"}, "openAt", "closeAt", "UTC", time_str="09:30:00"
        )
        assert result.stages == (
            {
                "$match": {
                    "$expr": {
                        "$and": [
                            {"$lte": [{"$add": [0, {"$ifNull": ["$openAt", 0]}]}, 34_200_000]},
                            {"$gte": [{"$add": [0, {"$ifNull": ["$closeAt", 0]}]}, 34_200_000]},
                        ]
                    }
                }
            },
        )

    def test_current_time_in_zone(self, fixed_now):
        """Now is converted to the zone before taking the time of day."""
        result = fall_within_time_range(
            {"range-within-time": "true"}, "openAt", "closeAt", "Europe/Berlin", now=fixed_now
        )
        # 18:30:45.250 UTC is 19:30:45.250 in Berlin (CET)
        expected = 19 * 3_600_000 + 30 * 60_000 + 45_000 + 250
        condition = result.stages[0]["$match"]["$expr"]["$and"][0]
        assert condition["$lte"][1] == expected

    def test_invalid_time(self):
        """A malformed time emits nothing."""
        result = fall_within_time_range(
            {"range-within-time": "true"}, "openAt", "closeAt", "UTC", time_str="noon"
        )
        assert result.stages == ()
        assert result.consumed == {"range-within-time"}

    def test_gated_off(self):
        """Without the gate nothing is emitted."""
        result = fall_within_time_range({"range-within-time": "no"}, "openAt", "closeAt", "UTC")
        assert result.stages == ()
        assert result.consumed == {"range-within-time"}


class TestTimeRangeMatch:
    """Test -time-from/-time-to bounds."""

    def test_both_bounds(self):
        """Both bounds go into one $expr stage."""
        filters = {"shiftStart-time-from": "09:00:00", "shiftEnd-time-to": "17:00:00"}
        result = time_range_match(filters, "shiftStart", "shiftEnd", "UTC")
        assert result.stages == (
            {
                "$match": {
                    "$expr": {
                        "$and": [
                            {"$gte": [{"$ifNull": ["$shiftStart", 0]}, 32_400_000]},
                            {"$lte": [{"$ifNull": ["$shiftEnd", 0]}, 61_200_999]},
                        ]
                    }
                }
            },
        )
        assert result.consumed == {"shiftStart-time-from", "shiftEnd-time-to"}

    def test_only_valid_bound_kept(self):
        """An invalid bound is left out."""
        filters = {"shiftStart-time-from": "bogus", "shiftEnd-time-to": "17:00"}
        result = time_range_match(filters, "shiftStart", "shiftEnd", "UTC")
        conditions = result.stages[0]["$match"]["$expr"]["$and"]
        assert conditions == [{"$lte": [{"$ifNull": ["$shiftEnd", 0]}, 61_200_999]}]
        assert result.consumed == {"shiftStart-time-from", "shiftEnd-time-to"}

    def test_nothing_present(self):
        """No keys, no stage."""
        assert time_range_match({}, "shiftStart", "shiftEnd", "UTC").stages == ()


class TestFieldsDateRangeMatch:
    """Test date ranges spread over two fields."""

    def test_gated_range(self):
        """With the gate on, both fields are bounded."""
        filters = {
            "range-within-date": "true",
            "startDate-from": "2023-01-01",
            "endDate-to": "2023-12-31",
        }
        result = fields_date_range_match(filters, "startDate", "endDate", "UTC")
        assert result.stages == (
            {
                "$match": {
                    "$expr": {
                        "$and": [
                            {"$gte": ["$startDate", datetime(2023, 1, 1, tzinfo=UTC)]},
                            {
                                "$lte": [
                                    "$endDate",
                                    datetime(2023, 12, 31, 23, 59, 59, 999000, tzinfo=UTC),
                                ]
                            },
                        ]
                    }
                }
            },
        )
        assert result.consumed == {"range-within-date", "startDate-from", "endDate-to"}

    def test_gate_off_leaves_bounds(self):
        """Without the gate only the gate key is consumed."""
        filters = {"range-within-date": "false", "startDate-from": "2023-01-01"}
        result = fields_date_range_match(filters, "startDate", "endDate", "UTC")
        assert result.stages == ()
        assert result.consumed == {"range-within-date"}

    def test_gate_on_without_bounds(self):
        """The gate alone emits nothing."""
        result = fields_date_range_match({"range-within-date": "true"}, "startDate", "endDate", "UTC")
        assert result.stages == ()
        assert result.consumed == {"range-within-date"}
