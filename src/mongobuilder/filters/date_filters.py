"""
Date and time filter translators.

All calendar arithmetic happens in the builder's timezone; the resulting
datetimes are emitted as timezone-aware UTC values (BSON dates have
millisecond precision, so "end of day" is 23:59:59.999).

Supported keys:
    <field>                      exact date
    <field>-from / <field>-to    inclusive day range (start of day / end of day)
    <field>-gtDate, -gteDate     after end of day / from start of day
    <field>-ltDate, -lteDate     before start of day / up to end of day
    range-within-date            gate for "today between two fields" and
                                 cross-field date ranges
    range-within-time            gate for "time of day between two fields"
    <field>-time-from / -time-to time-of-day bounds (millisecond of day)

Example (timezone UTC):
    {"createdAt-from": "2023-05-01", "createdAt-to": "2023-05-07"}
    ->
    {"$match": {"createdAt": {
        "$gte": datetime(2023, 5, 1, 0, 0, tzinfo=UTC),
        "$lte": datetime(2023, 5, 7, 23, 59, 59, 999000, tzinfo=UTC),
    }}}
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone, tzinfo
from functools import lru_cache
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .base import (
    Filters,
    Translation,
    field_ref,
    is_flag_set,
    is_present,
    match_stage,
    resolve,
)
from .keys import (
    RANGE_WITHIN_DATE_KEY,
    RANGE_WITHIN_TIME_KEY,
    FilterOperator,
    format_filter_key,
)

logger = logging.getLogger("mongobuilder.filters.date")

MS_PER_HOUR = 3_600_000
MS_PER_MINUTE = 60_000
MS_PER_SECOND = 1_000

TIME_FORMATS = ("%H:%M:%S", "%H:%M:%S.%f", "%H:%M")

TimezoneLike = str | tzinfo

# operator -> (mongo operator, snap to end of day?)
_DATE_COMPARISONS = {
    FilterOperator.GT_DATE: ("$gt", True),
    FilterOperator.GTE_DATE: ("$gte", False),
    FilterOperator.LT_DATE: ("$lt", False),
    FilterOperator.LTE_DATE: ("$lte", True),
}


@lru_cache(maxsize=64)
def _zone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name!r}") from e


def resolve_timezone(tz: TimezoneLike) -> tzinfo:
    """
    Resolve an IANA timezone name (or pass a tzinfo through).

    Raises:
        ValueError: if the name is not a known timezone
    """
    if isinstance(tz, tzinfo):
        return tz
    return _zone(tz)


def parse_date(value: Any, tz: TimezoneLike, fmt: str | None = None) -> datetime | None:
    """
    Parse a filter value into an aware datetime in the given timezone.

    - datetime: naive values are taken as local time in tz
    - date: local midnight in tz
    - str: strptime(fmt) when a format is given, ISO 8601 otherwise;
      naive results are local time in tz, offsets are honored

    Returns:
        Aware datetime expressed in tz, or None if the value can't be parsed
    """
    zone = resolve_timezone(tz)

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=zone)
    elif isinstance(value, str):
        text = value.strip()
        try:
            parsed = datetime.strptime(text, fmt) if fmt else datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=zone)
    return parsed.astimezone(zone)


def parse_time_of_day(value: Any) -> time | None:
    """Parse "HH:MM:SS", "HH:MM:SS.ffffff" or "HH:MM"."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        return None
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    return None


def ms_of_day(moment: time | datetime, include_ms: bool = True) -> int:
    """Milliseconds elapsed since local midnight."""
    ms = moment.hour * MS_PER_HOUR + moment.minute * MS_PER_MINUTE + moment.second * MS_PER_SECOND
    if include_ms:
        ms += moment.microsecond // 1000
    return ms


def start_of_day(moment: datetime, tz: TimezoneLike) -> datetime:
    local = moment.astimezone(resolve_timezone(tz))
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime, tz: TimezoneLike) -> datetime:
    local = moment.astimezone(resolve_timezone(tz))
    return local.replace(hour=23, minute=59, second=59, microsecond=999000)


def to_utc(moment: datetime) -> datetime:
    return moment.astimezone(timezone.utc)


def _now(tz: TimezoneLike, now: datetime | None) -> datetime:
    zone = resolve_timezone(tz)
    if now is None:
        return datetime.now(zone)
    if now.tzinfo is None:
        return now.replace(tzinfo=zone)
    return now.astimezone(zone)


def date_match(
    filters: Filters,
    field: str,
    tz: TimezoneLike,
    value: datetime | date | str | None = None,
    fmt: str | None = None,
) -> Translation:
    """
    Exact date equality on a bare key.

    Args:
        filters: Filter dictionary
        field: Field to match, also the dictionary key
        tz: Timezone for naive values
        value: Optional static value used instead of the dictionary
        fmt: Optional strptime format (ISO 8601 when omitted)

    Returns:
        Translation with at most one $match stage
    """
    raw, consumed = resolve(filters, field, value)
    if not is_present(raw):
        return Translation.skip(*consumed)

    parsed = parse_date(raw, tz, fmt)
    if parsed is None:
        logger.debug(f"Ignoring unparsable date for '{field}': {raw!r}")
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: to_utc(parsed)})], consumed)


def date_range_match(filters: Filters, field: str, tz: TimezoneLike) -> Translation:
    """
    Inclusive day range from "<field>-from" and "<field>-to".

    -from is floored to the start of its day, -to is ceiled to the end of its
    day. A single valid boundary yields a one-sided range; none yields no stage.
    """
    from_key = format_filter_key(field, FilterOperator.FROM)
    to_key = format_filter_key(field, FilterOperator.TO)
    consumed = {key for key in (from_key, to_key) if key in filters}

    bounds: dict[str, datetime] = {}
    if is_present(filters.get(from_key)):
        start = parse_date(filters[from_key], tz)
        if start is not None:
            bounds["$gte"] = to_utc(start_of_day(start, tz))
    if is_present(filters.get(to_key)):
        end = parse_date(filters[to_key], tz)
        if end is not None:
            bounds["$lte"] = to_utc(end_of_day(end, tz))

    if not bounds:
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: bounds})], consumed)


def date_comparison_match(
    filters: Filters,
    field: str,
    tz: TimezoneLike,
    operator: FilterOperator,
) -> Translation:
    """Single-sided date comparison snapped to a day boundary."""
    mongo_operator, snap_to_end = _DATE_COMPARISONS[operator]
    key = format_filter_key(field, operator)
    raw, consumed = resolve(filters, key)
    if not is_present(raw):
        return Translation.skip(*consumed)

    parsed = parse_date(raw, tz)
    if parsed is None:
        logger.debug(f"Ignoring unparsable date for '{key}': {raw!r}")
        return Translation.skip(*consumed)

    boundary = end_of_day(parsed, tz) if snap_to_end else start_of_day(parsed, tz)
    return Translation.of([match_stage({field: {mongo_operator: to_utc(boundary)}})], consumed)


def greater_than_date_match(filters: Filters, field: str, tz: TimezoneLike) -> Translation:
    return date_comparison_match(filters, field, tz, FilterOperator.GT_DATE)


def greater_than_or_equal_date_match(filters: Filters, field: str, tz: TimezoneLike) -> Translation:
    return date_comparison_match(filters, field, tz, FilterOperator.GTE_DATE)


def less_than_date_match(filters: Filters, field: str, tz: TimezoneLike) -> Translation:
    return date_comparison_match(filters, field, tz, FilterOperator.LT_DATE)


def less_than_or_equal_date_match(filters: Filters, field: str, tz: TimezoneLike) -> Translation:
    return date_comparison_match(filters, field, tz, FilterOperator.LTE_DATE)


def fall_within_date_range(
    filters: Filters,
    start_field: str,
    end_field: str,
    tz: TimezoneLike,
    now: datetime | None = None,
) -> Translation:
    """
    Match documents whose [start_field, end_field] span contains today.

    Gated by "range-within-date"; the gate key is always consumed.
    """
    consumed = {RANGE_WITHIN_DATE_KEY} if RANGE_WITHIN_DATE_KEY in filters else set()
    if not is_flag_set(filters.get(RANGE_WITHIN_DATE_KEY)):
        return Translation.skip(*consumed)

    today = to_utc(start_of_day(_now(tz, now), tz))
    stage = match_stage(
        {
            "$expr": {
                "$and": [
                    {"$lte": [field_ref(start_field), today]},
                    {"$gte": [field_ref(end_field), today]},
                ]
            }
        }
    )
    return Translation.of([stage], consumed)


def fall_within_time_range(
    filters: Filters,
    start_field: str,
    end_field: str,
    tz: TimezoneLike,
    time_str: str | None = None,
    now: datetime | None = None,
) -> Translation:
    """
    Match documents whose time-of-day span (stored as millisecond of day)
    contains the given time, or the current time in tz.

    Gated by "range-within-time"; the gate key is always consumed.
    """
    consumed = {RANGE_WITHIN_TIME_KEY} if RANGE_WITHIN_TIME_KEY in filters else set()
    if not is_flag_set(filters.get(RANGE_WITHIN_TIME_KEY)):
        return Translation.skip(*consumed)

    if time_str:
        moment = parse_time_of_day(time_str)
        if moment is None:
            logger.debug(f"Ignoring invalid time of day: {time_str!r}")
            return Translation.skip(*consumed)
    else:
        moment = _now(tz, now)

    ms = ms_of_day(moment)
    stage = match_stage(
        {
            "$expr": {
                "$and": [
                    {"$lte": [{"$add": [0, {"$ifNull": [field_ref(start_field), 0]}]}, ms]},
                    {"$gte": [{"$add": [0, {"$ifNull": [field_ref(end_field), 0]}]}, ms]},
                ]
            }
        }
    )
    return Translation.of([stage], consumed)


def time_range_match(filters: Filters, field1: str, field2: str, tz: TimezoneLike) -> Translation:
    """
    Time-of-day bounds from "<field1>-time-from" and "<field2>-time-to".

    The lower bound is compared against field1, the upper bound (inclusive
    to the end of its second) against field2. Times are wall-clock values,
    so tz only matters for validation of the zone itself.
    """
    resolve_timezone(tz)
    from_key = format_filter_key(field1, FilterOperator.TIME_FROM)
    to_key = format_filter_key(field2, FilterOperator.TIME_TO)
    consumed = {key for key in (from_key, to_key) if key in filters}

    conditions: list[dict[str, Any]] = []
    if is_present(filters.get(from_key)):
        start = parse_time_of_day(filters[from_key])
        if start is not None:
            start_ms = ms_of_day(start, include_ms=False)
            conditions.append({"$gte": [{"$ifNull": [field_ref(field1), 0]}, start_ms]})
    if is_present(filters.get(to_key)):
        end = parse_time_of_day(filters[to_key])
        if end is not None:
            # inclusive to the end of the second
            end_ms = ms_of_day(end, include_ms=False) + 999
            conditions.append({"$lte": [{"$ifNull": [field_ref(field2), 0]}, end_ms]})

    if not conditions:
        return Translation.skip(*consumed)
    return Translation.of([match_stage({"$expr": {"$and": conditions}})], consumed)


def fields_date_range_match(
    filters: Filters,
    start_field: str,
    end_field: str,
    tz: TimezoneLike,
) -> Translation:
    """
    Date range spread over two fields: "<start_field>-from" bounds start_field
    from below, "<end_field>-to" bounds end_field from above.

    Gated by "range-within-date". The gate key is always consumed; the
    boundary keys are only read (and consumed) when the gate is set.
    """
    consumed = {RANGE_WITHIN_DATE_KEY} if RANGE_WITHIN_DATE_KEY in filters else set()
    if not is_flag_set(filters.get(RANGE_WITHIN_DATE_KEY)):
        return Translation.skip(*consumed)

    from_key = format_filter_key(start_field, FilterOperator.FROM)
    to_key = format_filter_key(end_field, FilterOperator.TO)
    consumed |= {key for key in (from_key, to_key) if key in filters}

    conditions: list[dict[str, Any]] = []
    if is_present(filters.get(from_key)):
        start = parse_date(filters[from_key], tz)
        if start is not None:
            conditions.append({"$gte": [field_ref(start_field), to_utc(start_of_day(start, tz))]})
    if is_present(filters.get(to_key)):
        end = parse_date(filters[to_key], tz)
        if end is not None:
            conditions.append({"$lte": [field_ref(end_field), to_utc(end_of_day(end, tz))]})

    if not conditions:
        return Translation.skip(*consumed)
    return Translation.of([match_stage({"$expr": {"$and": conditions}})], consumed)
