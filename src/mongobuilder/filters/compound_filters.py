"""
Logical compound filter translators.

    {"or": [{"status": "new"}, {"priority": "high"}]}
    ->  {"$match": {"$or": [{"status": "new"}, {"priority": "high"}]}}

The conditions are passed through verbatim; only non-empty lists are accepted.
"""

from __future__ import annotations

import logging

from .base import Filters, Translation, match_stage, resolve
from .keys import AND_KEY, OR_KEY, FilterOperator, format_filter_key

logger = logging.getLogger("mongobuilder.filters.compound")


def _logical_match(filters: Filters, key: str, mongo_operator: str) -> Translation:
    conditions, consumed = resolve(filters, key)
    if not isinstance(conditions, list) or not conditions:
        if conditions is not None:
            logger.debug(f"Ignoring '{key}': expected a non-empty list, got {conditions!r}")
        return Translation.skip(*consumed)
    return Translation.of([match_stage({mongo_operator: conditions})], consumed)


def or_match(filters: Filters) -> Translation:
    """$or match from the "or" key."""
    return _logical_match(filters, OR_KEY, "$or")


def and_match(filters: Filters) -> Translation:
    """$and match from the "and" key."""
    return _logical_match(filters, AND_KEY, "$and")


def or_match_with_prefix(filters: Filters, prefix: str) -> Translation:
    """$or match from a namespaced "<prefix>-or" key."""
    return _logical_match(filters, format_filter_key(prefix, FilterOperator.OR), "$or")
