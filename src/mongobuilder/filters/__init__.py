"""
Operator translators for mongobuilder.

Each module owns one family of key suffixes and turns raw filter values into
MongoDB stages:
1. String - equality, $ne, escaped $regex
2. Number - coerced equality, $gt/$lt/$gte/$lte, -from/-to ranges
3. Date - day-boundary ranges and comparisons, time-of-day windows
4. Array - $in/$nin, ObjectId matches, non-empty arrays
5. Compound - $or/$and
6. Misc - null, boolean, $exists flags
7. Lookup - loose and strict $lookup stages

Translators never mutate the filter dictionary; they return a Translation
(stages + consumed keys) that FilterStageBuilder applies.
"""

from .array_filters import (
    array_not_empty_match,
    in_match,
    in_match_with_object_ids,
    is_object_id,
    not_in_match,
    object_id_match,
    object_ids_match,
)
from .base import Stage, Translation
from .compound_filters import and_match, or_match, or_match_with_prefix
from .date_filters import (
    date_match,
    date_range_match,
    fall_within_date_range,
    fall_within_time_range,
    fields_date_range_match,
    greater_than_date_match,
    greater_than_or_equal_date_match,
    less_than_date_match,
    less_than_or_equal_date_match,
    parse_date,
    resolve_timezone,
    time_range_match,
)
from .keys import (
    RESERVED_KEYS,
    FilterKey,
    FilterOperator,
    format_filter_key,
    parse_filter_key,
)
from .lookup_filters import (
    lookup_from_other_collection,
    strict_lookup_from_other_collection,
)
from .misc_filters import (
    boolean_match,
    boolean_value_match,
    exists_match,
    field_exists,
    not_deleted,
    not_null_match,
    null_match,
)
from .number_filters import (
    greater_than_match,
    greater_than_or_equal_match,
    less_than_match,
    less_than_or_equal_match,
    number_match,
    range_match,
    to_number,
)
from .string_filters import not_equal_match, regex_match, string_match

__all__ = [
    # Types and key grammar
    "Stage",
    "Translation",
    "FilterKey",
    "FilterOperator",
    "RESERVED_KEYS",
    "format_filter_key",
    "parse_filter_key",
    # String
    "string_match",
    "regex_match",
    "not_equal_match",
    # Number
    "number_match",
    "to_number",
    "greater_than_match",
    "less_than_match",
    "greater_than_or_equal_match",
    "less_than_or_equal_match",
    "range_match",
    # Date
    "parse_date",
    "resolve_timezone",
    "date_match",
    "date_range_match",
    "greater_than_date_match",
    "greater_than_or_equal_date_match",
    "less_than_date_match",
    "less_than_or_equal_date_match",
    "fall_within_date_range",
    "fall_within_time_range",
    "time_range_match",
    "fields_date_range_match",
    # Array / identifiers
    "in_match",
    "not_in_match",
    "in_match_with_object_ids",
    "object_id_match",
    "object_ids_match",
    "array_not_empty_match",
    "is_object_id",
    # Compound
    "or_match",
    "and_match",
    "or_match_with_prefix",
    # Misc
    "null_match",
    "not_null_match",
    "boolean_match",
    "boolean_value_match",
    "exists_match",
    "field_exists",
    "not_deleted",
    # Lookup
    "lookup_from_other_collection",
    "strict_lookup_from_other_collection",
]
