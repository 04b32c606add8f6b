"""
String filter translators.

Bare keys produce equality matches, "-not" keys produce $ne matches, and
regex matches escape the raw value so user input is always matched literally:

    {"username": "a.b"}  ->  {"$match": {"username": {"$regex": "a\\.b", "$options": "i"}}}
"""

from __future__ import annotations

import logging
import re

from .base import Filters, Translation, is_present, match_stage, resolve
from .keys import FilterOperator, format_filter_key

logger = logging.getLogger("mongobuilder.filters.string")


def string_match(filters: Filters, field: str, value: str | None = None) -> Translation:
    """
    Exact string equality on a bare key.

    Non-text values are ignored (the key is still consumed).

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
    if not isinstance(raw, str):
        logger.debug(f"Ignoring non-text value for string match on '{field}': {raw!r}")
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: raw})], consumed)


def regex_match(filters: Filters, field: str, options: str = "i") -> Translation:
    """
    Literal (escaped) regex match on a bare key.

    Args:
        filters: Filter dictionary
        field: Field to match, also the dictionary key
        options: Regex options, "i" (case-insensitive) by default

    Returns:
        Translation with at most one $match stage
    """
    raw, consumed = resolve(filters, field)
    if not is_present(raw):
        return Translation.skip(*consumed)

    pattern = re.escape(str(raw))
    return Translation.of(
        [match_stage({field: {"$regex": pattern, "$options": options}})],
        consumed,
    )


def not_equal_match(filters: Filters, field: str) -> Translation:
    """$ne match from the "<field>-not" key."""
    key = format_filter_key(field, FilterOperator.NOT)
    raw, consumed = resolve(filters, key)
    if not is_present(raw):
        return Translation.skip(*consumed)
    return Translation.of([match_stage({field: {"$ne": raw}})], consumed)
