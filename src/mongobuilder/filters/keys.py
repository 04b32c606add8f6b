"""
Filter key grammar.

Filter dictionaries use a flat namespace where the operator is encoded as a
suffix of the key:

    {
        "status": "active",            # bare key -> equality
        "age-gt": 18,                  # field "age", operator GT
        "createdAt-from": "2024-01-01",
        "shift-start-time-from": "09:00:00",  # field "shift-start", TIME_FROM
    }

Keys are parsed once into a FilterKey (field + operator kind). Translators
compose the keys they read with format_filter_key instead of concatenating
suffixes by hand.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

SEPARATOR = "-"

# Bare keys that carry meaning for a translator and never become equality matches
OR_KEY = "or"
AND_KEY = "and"
RANGE_WITHIN_DATE_KEY = "range-within-date"
RANGE_WITHIN_TIME_KEY = "range-within-time"

RESERVED_KEYS = frozenset(
    {
        OR_KEY,
        AND_KEY,
        RANGE_WITHIN_DATE_KEY,
        RANGE_WITHIN_TIME_KEY,
        "notnull",
        "exists",
    }
)


class FilterOperator(str, Enum):
    """Operator kinds, valued by the suffix that encodes them."""

    EQ = ""
    NOT = "not"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    FROM = "from"
    TO = "to"
    GT_DATE = "gtDate"
    GTE_DATE = "gteDate"
    LT_DATE = "ltDate"
    LTE_DATE = "lteDate"
    IN = "in"
    NIN = "nin"
    NOT_EMPTY = "nt-empty"
    IS_NULL = "isnull"
    NOT_NULL = "notnull"
    TRUE = "true"
    FALSE = "false"
    EXISTS = "exists"
    OR = "or"
    TIME_FROM = "time-from"
    TIME_TO = "time-to"

    @property
    def suffix(self) -> str:
        return self.value


# Longest suffixes first so "time-from" is never read as "from"
_SUFFIXED_OPERATORS = sorted(
    (op for op in FilterOperator if op is not FilterOperator.EQ),
    key=lambda op: len(op.value),
    reverse=True,
)


@dataclass(frozen=True)
class FilterKey:
    """A filter dictionary key split into target field and operator kind."""

    field: str
    operator: FilterOperator = FilterOperator.EQ

    @property
    def is_bare(self) -> bool:
        return self.operator is FilterOperator.EQ


def format_filter_key(field: str, operator: FilterOperator = FilterOperator.EQ) -> str:
    """
    Compose the dictionary key for a field and operator.

    Examples:
        format_filter_key("age", FilterOperator.GT) -> "age-gt"
        format_filter_key("status") -> "status"
    """
    if operator is FilterOperator.EQ:
        return field
    return f"{field}{SEPARATOR}{operator.suffix}"


def parse_filter_key(key: str) -> FilterKey | None:
    """
    Parse a dictionary key into a FilterKey.

    Keys without a separator are bare equality keys. For suffixed keys the
    longest known suffix wins. Returns None when the key carries a separator
    but no known operator suffix (e.g. "foo-unknown").
    """
    if SEPARATOR not in key:
        return FilterKey(key)

    for operator in _SUFFIXED_OPERATORS:
        tail = f"{SEPARATOR}{operator.suffix}"
        if key.endswith(tail) and len(key) > len(tail):
            return FilterKey(key[: -len(tail)], operator)

    return None
