"""
Array and identifier filter translators.

    {"status-in": ["new", "open"]}  ->  {"$match": {"status": {"$in": ["new", "open"]}}}
    {"category-nin": "demo"}        ->  {"$match": {"category": {"$nin": ["demo"]}}}
    {"userId": "64b7..."}           ->  {"$match": {"userId": ObjectId("64b7...")}}
    {"tags-nt-empty": "true"}       ->  {"$match": {"tags": {"$exists": True, "$not": {"$size": 0}}}}

Identifier variants validate every candidate and silently drop the invalid
ones; a stage is only emitted if at least one valid identifier remains.
"""

from __future__ import annotations

import logging
from typing import Any

from bson import ObjectId

from .base import Filters, Translation, is_flag_set, is_present, match_stage, resolve
from .keys import FilterOperator, format_filter_key

logger = logging.getLogger("mongobuilder.filters.array")


def as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    return [value]


def is_object_id(value: Any) -> bool:
    """Identifier-format predicate: ObjectId instances or their 24-hex form."""
    if isinstance(value, ObjectId):
        return True
    return isinstance(value, str) and ObjectId.is_valid(value)


def to_object_ids(values: list[Any]) -> list[ObjectId]:
    """Convert the valid identifiers, dropping the rest."""
    valid = [ObjectId(v) for v in values if is_object_id(v)]
    dropped = len(values) - len(valid)
    if dropped:
        logger.debug(f"Dropped {dropped} invalid identifier(s)")
    return valid


def _membership_match(
    filters: Filters,
    field: str,
    operator: FilterOperator,
    mongo_operator: str,
    static_values: list[Any] | None,
) -> Translation:
    key = format_filter_key(field, operator)
    raw, consumed = resolve(filters, key, static_values)
    if not is_present(raw):
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: {mongo_operator: as_list(raw)}})], consumed)


def in_match(filters: Filters, field: str, static_values: list[Any] | None = None) -> Translation:
    """
    $in match from "<field>-in" (or static values).

    Args:
        filters: Filter dictionary
        field: Target field
        static_values: Values used instead of the dictionary

    Returns:
        Translation with at most one $match stage
    """
    return _membership_match(filters, field, FilterOperator.IN, "$in", static_values)


def not_in_match(filters: Filters, field: str, static_values: list[Any] | None = None) -> Translation:
    """$nin match from "<field>-nin" (or static values)."""
    return _membership_match(filters, field, FilterOperator.NIN, "$nin", static_values)


def in_match_with_object_ids(
    filters: Filters,
    field: str,
    static_values: list[Any] | None = None,
) -> Translation:
    """
    $in match of ObjectIds from "<field>-in" (or static values).

    Invalid identifiers are dropped. No stage is emitted if none are valid.
    """
    key = format_filter_key(field, FilterOperator.IN)
    raw, consumed = resolve(filters, key, static_values)
    if not is_present(raw):
        return Translation.skip(*consumed)

    object_ids = to_object_ids(as_list(raw))
    if not object_ids:
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: {"$in": object_ids}})], consumed)


def object_id_match(filters: Filters, field: str) -> Translation:
    """Exact ObjectId match on a bare key."""
    raw, consumed = resolve(filters, field)
    if not is_present(raw):
        return Translation.skip(*consumed)
    if not is_object_id(raw):
        logger.debug(f"Ignoring invalid identifier for '{field}': {raw!r}")
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: ObjectId(raw)})], consumed)


def object_ids_match(filters: Filters, field: str) -> Translation:
    """$in match of ObjectIds on a bare key holding one id or a list of ids."""
    raw, consumed = resolve(filters, field)
    if not is_present(raw):
        return Translation.skip(*consumed)

    object_ids = to_object_ids(as_list(raw))
    if not object_ids:
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: {"$in": object_ids}})], consumed)


def array_not_empty_match(filters: Filters, field: str) -> Translation:
    """Require field to exist and hold a non-empty array ("<field>-nt-empty" gate)."""
    key = format_filter_key(field, FilterOperator.NOT_EMPTY)
    raw, consumed = resolve(filters, key)
    if not is_flag_set(raw):
        return Translation.skip(*consumed)
    return Translation.of(
        [match_stage({field: {"$exists": True, "$not": {"$size": 0}}})],
        consumed,
    )
