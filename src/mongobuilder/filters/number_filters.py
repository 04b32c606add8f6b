"""
Number filter translators.

Bare keys are coerced to numbers before matching. Comparison keys
(-gt, -lt, -gte, -lte) and range keys (-from, -to) pass their raw value
through untouched:

    {"age": "30"}                    ->  {"$match": {"age": 30}}
    {"price-gt": 10}                 ->  {"$match": {"price": {"$gt": 10}}}
    {"price-from": 5, "price-to": 9} ->  {"$match": {"price": {"$gte": 5, "$lte": 9}}}
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any

from .base import Filters, Translation, is_present, match_stage, resolve
from .keys import FilterOperator, format_filter_key

logger = logging.getLogger("mongobuilder.filters.number")

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# Plain ASCII decimal literals only: no digit separators, no inf/nan words
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

_COMPARISONS = {
    FilterOperator.GT: "$gt",
    FilterOperator.LT: "$lt",
    FilterOperator.GTE: "$gte",
    FilterOperator.LTE: "$lte",
}


def to_number(value: Any) -> int | float | None:
    """
    Locale-free numeric coercion.

    Integers and floats pass through, booleans count as 0/1, text must be a
    plain decimal literal ("30", "-7", "3.5", "1e3"). Returns None for
    anything else, including NaN and infinities. Integers outside the
    signed 64-bit range become floats, since BSON cannot store them.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value if INT64_MIN <= value <= INT64_MAX else _to_finite_float(value)
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if _INTEGER_RE.fullmatch(text):
        try:
            return to_number(int(text))
        except ValueError:
            # beyond the interpreter's int string conversion limit
            return None
    if _DECIMAL_RE.fullmatch(text):
        return _to_finite_float(text)
    return None


def _to_finite_float(value: int | str) -> float | None:
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def number_match(filters: Filters, field: str, value: int | float | None = None) -> Translation:
    """
    Exact numeric equality on a bare key.

    Args:
        filters: Filter dictionary
        field: Field to match, also the dictionary key
        value: Optional static value used instead of the dictionary

    Returns:
        Translation with at most one $match stage
    """
    raw, consumed = resolve(filters, field, value)
    if not is_present(raw):
        return Translation.skip(*consumed)

    number = to_number(raw)
    if number is None:
        logger.debug(f"Ignoring non-numeric value for '{field}': {raw!r}")
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: number})], consumed)


def comparison_match(filters: Filters, field: str, operator: FilterOperator) -> Translation:
    """Single-sided comparison from "<field>-gt|lt|gte|lte"."""
    key = format_filter_key(field, operator)
    raw, consumed = resolve(filters, key)
    if not is_present(raw):
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: {_COMPARISONS[operator]: raw}})], consumed)


def greater_than_match(filters: Filters, field: str) -> Translation:
    return comparison_match(filters, field, FilterOperator.GT)


def less_than_match(filters: Filters, field: str) -> Translation:
    return comparison_match(filters, field, FilterOperator.LT)


def greater_than_or_equal_match(filters: Filters, field: str) -> Translation:
    return comparison_match(filters, field, FilterOperator.GTE)


def less_than_or_equal_match(filters: Filters, field: str) -> Translation:
    return comparison_match(filters, field, FilterOperator.LTE)


def range_match(filters: Filters, field: str, other_field: str | None = None) -> Translation:
    """
    Inclusive range from "<field>-from" and "<field>-to".

    Either boundary may be missing; the stage is emitted only if at least one
    is present. With other_field the same bounds are applied to both fields
    in one stage.

    Args:
        filters: Filter dictionary
        field: Field whose -from/-to keys are read
        other_field: Optional second field receiving identical bounds

    Returns:
        Translation with at most one $match stage
    """
    from_key = format_filter_key(field, FilterOperator.FROM)
    to_key = format_filter_key(field, FilterOperator.TO)
    consumed = {key for key in (from_key, to_key) if key in filters}

    bounds: dict[str, Any] = {}
    if is_present(filters.get(from_key)):
        bounds["$gte"] = filters[from_key]
    if is_present(filters.get(to_key)):
        bounds["$lte"] = filters[to_key]

    if not bounds:
        return Translation.skip(*consumed)

    query = {field: bounds}
    if other_field:
        query[other_field] = dict(bounds)
    return Translation.of([match_stage(query)], consumed)
