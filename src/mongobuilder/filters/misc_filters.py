"""
Flag-driven filter translators: null checks, booleans and existence.

Flags are honored only when set to True or "true" ("-exists" also accepts
False / "false" to require the field to be absent):

    {"deletedAt-isnull": "true"}  ->  {"$match": {"deletedAt": None}}
    {"email-notnull": True}       ->  {"$match": {"email": {"$ne": None}}}
    {"active-false": "true"}      ->  {"$match": {"active": False}}
    {"phone-exists": "false"}     ->  {"$match": {"phone": {"$exists": False}}}
"""

from __future__ import annotations

import logging
from typing import Any

from .base import (
    Filters,
    Translation,
    is_flag_cleared,
    is_flag_set,
    is_present,
    match_stage,
    resolve,
)
from .keys import FilterOperator, format_filter_key

logger = logging.getLogger("mongobuilder.filters.misc")


def _flag_match(filters: Filters, field: str, operator: FilterOperator, query: Any) -> Translation:
    key = format_filter_key(field, operator)
    raw, consumed = resolve(filters, key)
    if not is_flag_set(raw):
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: query})], consumed)


def null_match(filters: Filters, field: str) -> Translation:
    """{field: None} when "<field>-isnull" is set."""
    return _flag_match(filters, field, FilterOperator.IS_NULL, None)


def not_null_match(filters: Filters, field: str) -> Translation:
    """{field: {"$ne": None}} when "<field>-notnull" is set."""
    return _flag_match(filters, field, FilterOperator.NOT_NULL, {"$ne": None})


def boolean_match(filters: Filters, field: str) -> Translation:
    """
    Boolean match from "<field>-true" / "<field>-false".

    The keys are mutually exclusive: "-true" wins when both are set. Both
    keys are consumed.
    """
    true_key = format_filter_key(field, FilterOperator.TRUE)
    false_key = format_filter_key(field, FilterOperator.FALSE)
    consumed = {key for key in (true_key, false_key) if key in filters}

    if is_flag_set(filters.get(true_key)):
        return Translation.of([match_stage({field: True})], consumed)
    if is_flag_set(filters.get(false_key)):
        return Translation.of([match_stage({field: False})], consumed)
    return Translation.skip(*consumed)


def exists_match(filters: Filters, field: str) -> Translation:
    """$exists match from "<field>-exists" (true or false)."""
    key = format_filter_key(field, FilterOperator.EXISTS)
    raw, consumed = resolve(filters, key)
    if is_flag_set(raw):
        return Translation.of([match_stage({field: {"$exists": True}})], consumed)
    if is_flag_cleared(raw):
        return Translation.of([match_stage({field: {"$exists": False}})], consumed)
    return Translation.skip(*consumed)


def field_exists(
    filters: Filters,
    field: str,
    should_exist: bool = True,
    filter_key: str | None = None,
) -> Translation:
    """
    Existence check, unconditional or driven by a custom flag key.

    Without filter_key the stage is always emitted (and a stray
    "<field>-exists" key is consumed). With filter_key the stage is emitted
    only when that key is set; the key is consumed either way.

    Examples:
        field_exists(filters, "email")                  -> {"email": {"$exists": True}}
        field_exists(filters, "deletedAt", False)       -> {"deletedAt": {"$exists": False}}
        field_exists(filters, "email", True, "hasEmail") with {"hasEmail": "true"}
                                                        -> {"email": {"$exists": True}}
    """
    key = filter_key or format_filter_key(field, FilterOperator.EXISTS)
    raw, consumed = resolve(filters, key)
    if filter_key is not None and not is_flag_set(raw):
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: {"$exists": should_exist}})], consumed)


def not_deleted(filters: Filters, field: str = "deletedAt") -> Translation:
    """Soft-delete guard: {field: None}. Consumes a bare field key if present."""
    consumed = {field} if field in filters else set()
    return Translation.of([match_stage({field: None})], consumed)


def to_boolean(value: Any) -> bool | None:
    """
    Coerce a filter value to a boolean.

    "true"/"false" (any case) map to True/False, other text is invalid (None),
    booleans pass through and anything else uses its truthiness.
    """
    if isinstance(value, str):
        lowered = value.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        return None
    if isinstance(value, bool):
        return value
    return bool(value)


def boolean_value_match(filters: Filters, field: str, value: bool | str | None = None) -> Translation:
    """Boolean equality on a bare key holding a boolean or "true"/"false"."""
    raw, consumed = resolve(filters, field, value)
    if not is_present(raw):
        return Translation.skip(*consumed)

    flag = to_boolean(raw)
    if flag is None:
        logger.debug(f"Ignoring invalid boolean for '{field}': {raw!r}")
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: flag})], consumed)
