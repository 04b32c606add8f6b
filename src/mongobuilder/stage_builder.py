"""
FilterStageBuilder: compiles a filter dictionary into $match (and $lookup) stages.

The builder owns one filter dictionary for its lifetime. Each add_* call
runs one translator against it, appends the produced stages in call order
and deletes the keys the translator consumed, so no key is compiled twice.
build() then sweeps the remaining bare keys into equality matches and
drains the dictionary.

Example:
    filters = {"status": "active", "age": "30", "createdAt-from": "2023-05-01"}
    stages = (
        FilterStageBuilder(filters)
        .add_string_match("status")
        .add_number_match("age")
        .add_date_range_match("createdAt")
        .build()
    )
    # [
    #     {"$match": {"status": "active"}},
    #     {"$match": {"age": 30}},
    #     {"$match": {"createdAt": {"$gte": datetime(2023, 5, 1, tzinfo=UTC)}}},
    # ]
    # filters == {}
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

from .config import Settings, get_settings
from .filters import array_filters, compound_filters, date_filters, lookup_filters
from .filters import misc_filters, number_filters, string_filters
from .filters.base import Stage, Translation, is_present, match_stage
from .filters.keys import RESERVED_KEYS, parse_filter_key

logger = logging.getLogger("mongobuilder.stage_builder")


class FilterStageBuilder:
    """
    Fluent compiler from a flat filter dictionary to aggregation stages.

    Args:
        filters: Filter dictionary, mutated in place (pass a copy to keep yours)
        timezone: IANA timezone for date boundaries (defaults to settings)
        settings: Settings override (defaults to get_settings())

    Raises:
        ValueError: if the timezone is unknown
    """

    def __init__(
        self,
        filters: dict[str, Any] | None = None,
        *,
        timezone: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.filters: dict[str, Any] = filters if filters is not None else {}
        self._settings = settings or get_settings()
        self._stages: list[Stage] = []
        self._filter_query: dict[str, Any] = {}
        self._unmatched_keys: list[str] = []
        self.set_timezone(timezone or self._settings.timezone)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def timezone(self) -> str:
        return self._timezone

    def set_timezone(self, timezone: str) -> FilterStageBuilder:
        """
        Set the timezone used by every date computation.

        Raises:
            ValueError: if the timezone is unknown
        """
        date_filters.resolve_timezone(timezone)
        self._timezone = timezone
        return self

    @property
    def stages(self) -> list[Stage]:
        """Stages emitted so far (copy)."""
        return list(self._stages)

    @property
    def unmatched_keys(self) -> list[str]:
        """Keys dropped by build() because no rule consumed them and they are not bare."""
        return list(self._unmatched_keys)

    def _apply(self, translation: Translation) -> FilterStageBuilder:
        self._stages.extend(translation.stages)
        for key in translation.consumed:
            self.filters.pop(key, None)
        return self

    # ------------------------------------------------------------------
    # Legacy default filters
    # ------------------------------------------------------------------

    def apply_default_filters(self) -> FilterStageBuilder:
        """
        Snapshot every present value into the raw filter query.

        Consumes nothing and emits nothing; see get_filter_query().
        """
        for key, value in self.filters.items():
            if is_present(value):
                self._filter_query[key] = value
        return self

    def get_filter_query(self) -> dict[str, Any]:
        return dict(self._filter_query)

    # ------------------------------------------------------------------
    # String
    # ------------------------------------------------------------------

    def add_string_match(self, field: str, value: str | None = None) -> FilterStageBuilder:
        """
        Exact string equality.

        filters = {"status": "active"}  ->  {"status": "active"}
        """
        return self._apply(string_filters.string_match(self.filters, field, value))

    def add_regex_match(self, field: str, options: str | None = None) -> FilterStageBuilder:
        """
        Escaped, case-insensitive (by default) regex match.

        filters = {"username": "john"}  ->  {"username": {"$regex": "john", "$options": "i"}}
        """
        if options is None:
            options = self._settings.regex_options
        return self._apply(string_filters.regex_match(self.filters, field, options))

    def add_not_equal_match(self, field: str) -> FilterStageBuilder:
        """filters = {"status-not": "closed"}  ->  {"status": {"$ne": "closed"}}"""
        return self._apply(string_filters.not_equal_match(self.filters, field))

    # ------------------------------------------------------------------
    # Number
    # ------------------------------------------------------------------

    def add_number_match(self, field: str, value: int | float | None = None) -> FilterStageBuilder:
        """
        Exact numeric equality; text is coerced.

        filters = {"type": "1"}  ->  {"type": 1}
        """
        return self._apply(number_filters.number_match(self.filters, field, value))

    def add_greater_than_match(self, field: str) -> FilterStageBuilder:
        return self._apply(number_filters.greater_than_match(self.filters, field))

    def add_less_than_match(self, field: str) -> FilterStageBuilder:
        return self._apply(number_filters.less_than_match(self.filters, field))

    def add_greater_than_or_equal_match(self, field: str) -> FilterStageBuilder:
        return self._apply(number_filters.greater_than_or_equal_match(self.filters, field))

    def add_less_than_or_equal_match(self, field: str) -> FilterStageBuilder:
        return self._apply(number_filters.less_than_or_equal_match(self.filters, field))

    def add_range_match(self, field: str, other_field: str | None = None) -> FilterStageBuilder:
        """
        Raw range from "<field>-from" / "<field>-to".

        With other_field the same bounds are applied to both fields:

        filters = {"price-from": 5, "price-to": 9}
        add_range_match("price", "listPrice")
        ->  {"price": {"$gte": 5, "$lte": 9}, "listPrice": {"$gte": 5, "$lte": 9}}
        """
        return self._apply(number_filters.range_match(self.filters, field, other_field))

    # ------------------------------------------------------------------
    # Boolean
    # ------------------------------------------------------------------

    def add_boolean_value_match(self, field: str, value: bool | str | None = None) -> FilterStageBuilder:
        """
        Boolean equality; "true"/"false" text is coerced.

        filters = {"isActive": "true"}  ->  {"isActive": True}
        """
        return self._apply(misc_filters.boolean_value_match(self.filters, field, value))

    def add_boolean_match(self, field: str) -> FilterStageBuilder:
        """
        filters = {"active-true": True}   ->  {"active": True}
        filters = {"active-false": True}  ->  {"active": False}
        """
        return self._apply(misc_filters.boolean_match(self.filters, field))

    # ------------------------------------------------------------------
    # Date
    # ------------------------------------------------------------------

    def add_date_match(
        self,
        field: str,
        value: datetime | date | str | None = None,
        fmt: str | None = None,
    ) -> FilterStageBuilder:
        """
        Exact date equality.

        filters = {"createdAt": "2023-05-17"}  ->  {"createdAt": datetime(2023, 5, 17, tzinfo=UTC)}

        Args:
            field: Field to match
            value: Optional static value used instead of the dictionary
            fmt: Optional strptime format (ISO 8601 when omitted)
        """
        return self._apply(date_filters.date_match(self.filters, field, self._timezone, value, fmt))

    def add_date_range_match(self, field: str) -> FilterStageBuilder:
        """
        Day range from "<field>-from" (start of day) and "<field>-to" (end of day).

        filters = {"createdAt-from": "2023-05-01", "createdAt-to": "2023-05-07"}
        ->  {"createdAt": {"$gte": 2023-05-01T00:00:00.000Z, "$lte": 2023-05-07T23:59:59.999Z}}
        """
        return self._apply(date_filters.date_range_match(self.filters, field, self._timezone))

    def add_greater_than_date_match(self, field: str) -> FilterStageBuilder:
        """filters = {"eventDate-gtDate": "2023-05-10"}  ->  {"eventDate": {"$gt": 2023-05-10T23:59:59.999Z}}"""
        return self._apply(
            date_filters.greater_than_date_match(self.filters, field, self._timezone)
        )

    def add_greater_than_or_equal_date_match(self, field: str) -> FilterStageBuilder:
        """filters = {"startDate-gteDate": "2023-05-10"}  ->  {"startDate": {"$gte": 2023-05-10T00:00:00.000Z}}"""
        return self._apply(
            date_filters.greater_than_or_equal_date_match(self.filters, field, self._timezone)
        )

    def add_less_than_date_match(self, field: str) -> FilterStageBuilder:
        """filters = {"eventDate-ltDate": "2023-05-10"}  ->  {"eventDate": {"$lt": 2023-05-10T00:00:00.000Z}}"""
        return self._apply(
            date_filters.less_than_date_match(self.filters, field, self._timezone)
        )

    def add_less_than_or_equal_date_match(self, field: str) -> FilterStageBuilder:
        """filters = {"endDate-lteDate": "2023-05-10"}  ->  {"endDate": {"$lte": 2023-05-10T23:59:59.999Z}}"""
        return self._apply(
            date_filters.less_than_or_equal_date_match(self.filters, field, self._timezone)
        )

    def fall_within_date_range(
        self,
        start_field: str,
        end_field: str,
        now: datetime | None = None,
    ) -> FilterStageBuilder:
        """
        Today between start_field and end_field, when "range-within-date" is set.

        ->  {"$expr": {"$and": [{"$lte": ["$startDate", today]}, {"$gte": ["$endDate", today]}]}}
        """
        return self._apply(
            date_filters.fall_within_date_range(
                self.filters, start_field, end_field, self._timezone, now
            )
        )

    def fall_within_time_range(
        self,
        start_field: str,
        end_field: str,
        time_str: str | None = None,
        now: datetime | None = None,
    ) -> FilterStageBuilder:
        """
        Given (or current) time of day between two millisecond-of-day fields,
        when "range-within-time" is set.
        """
        return self._apply(
            date_filters.fall_within_time_range(
                self.filters, start_field, end_field, self._timezone, time_str, now
            )
        )

    def add_time_range_match(self, field1: str, field2: str) -> FilterStageBuilder:
        """
        Time-of-day bounds from "<field1>-time-from" and "<field2>-time-to".

        filters = {"shiftStart-time-from": "09:00:00", "shiftEnd-time-to": "17:00:00"}
        ->  {"$expr": {"$and": [
                {"$gte": [{"$ifNull": ["$shiftStart", 0]}, 32400000]},
                {"$lte": [{"$ifNull": ["$shiftEnd", 0]}, 61200999]},
            ]}}
        """
        return self._apply(
            date_filters.time_range_match(self.filters, field1, field2, self._timezone)
        )

    def add_fields_date_range_match(self, start_field: str, end_field: str) -> FilterStageBuilder:
        """
        Date range spread over two fields, when "range-within-date" is set.

        filters = {"range-within-date": "true", "startDate-from": "2023-01-01", "endDate-to": "2023-12-31"}
        ->  {"$expr": {"$and": [{"$gte": ["$startDate", ...]}, {"$lte": ["$endDate", ...]}]}}
        """
        return self._apply(
            date_filters.fields_date_range_match(
                self.filters, start_field, end_field, self._timezone
            )
        )

    # ------------------------------------------------------------------
    # Array / identifiers
    # ------------------------------------------------------------------

    def add_in_match(self, field: str, static_values: list[Any] | None = None) -> FilterStageBuilder:
        """
        filters = {"status-in": ["new", "open"]}  ->  {"status": {"$in": ["new", "open"]}}
        static_values = ["pending"]               ->  {"status": {"$in": ["pending"]}}
        """
        return self._apply(array_filters.in_match(self.filters, field, static_values))

    def add_not_in_match(self, field: str, static_values: list[Any] | None = None) -> FilterStageBuilder:
        """filters = {"category-nin": ["test", "demo"]}  ->  {"category": {"$nin": ["test", "demo"]}}"""
        return self._apply(array_filters.not_in_match(self.filters, field, static_values))

    def add_in_match_with_object_ids(
        self,
        field: str,
        static_values: list[Any] | None = None,
    ) -> FilterStageBuilder:
        return self._apply(
            array_filters.in_match_with_object_ids(self.filters, field, static_values)
        )

    def add_object_id_match(self, field: str) -> FilterStageBuilder:
        """filters = {"userId": "60c7..."}  ->  {"userId": ObjectId("60c7...")}"""
        return self._apply(array_filters.object_id_match(self.filters, field))

    def add_object_ids_match(self, field: str) -> FilterStageBuilder:
        return self._apply(array_filters.object_ids_match(self.filters, field))

    def add_array_not_empty_match(self, field: str) -> FilterStageBuilder:
        return self._apply(array_filters.array_not_empty_match(self.filters, field))

    # ------------------------------------------------------------------
    # Null / existence
    # ------------------------------------------------------------------

    def add_not_deleted(self) -> FilterStageBuilder:
        """Soft-delete guard: {"deletedAt": None} (field from settings)."""
        return self._apply(
            misc_filters.not_deleted(self.filters, self._settings.soft_delete_field)
        )

    def add_null_match(self, field: str) -> FilterStageBuilder:
        """filters = {"deletedAt-isnull": "true"}  ->  {"deletedAt": None}"""
        return self._apply(misc_filters.null_match(self.filters, field))

    def add_not_null_match(self, field: str) -> FilterStageBuilder:
        """filters = {"deletedAt-notnull": "true"}  ->  {"deletedAt": {"$ne": None}}"""
        return self._apply(misc_filters.not_null_match(self.filters, field))

    def add_exists_match(self, field: str) -> FilterStageBuilder:
        """filters = {"email-exists": "true"}  ->  {"email": {"$exists": True}}"""
        return self._apply(misc_filters.exists_match(self.filters, field))

    def add_field_exists(
        self,
        field: str,
        should_exist: bool = True,
        filter_key: str | None = None,
    ) -> FilterStageBuilder:
        """
        Existence check.

        add_field_exists("email")                      ->  {"email": {"$exists": True}}
        add_field_exists("deletedAt", False)           ->  {"deletedAt": {"$exists": False}}
        add_field_exists("email", filter_key="hasEmail") with {"hasEmail": "true"}
                                                       ->  {"email": {"$exists": True}}
        """
        return self._apply(
            misc_filters.field_exists(self.filters, field, should_exist, filter_key)
        )

    # ------------------------------------------------------------------
    # Compound
    # ------------------------------------------------------------------

    def add_or_match(self) -> FilterStageBuilder:
        """filters = {"or": [{"status": "new"}, {"priority": "high"}]}  ->  {"$or": [...]}"""
        return self._apply(compound_filters.or_match(self.filters))

    def add_or_match_with_prefix(self, prefix: str) -> FilterStageBuilder:
        """filters = {"userStatus-or": [...]}, prefix "userStatus"  ->  {"$or": [...]}"""
        return self._apply(compound_filters.or_match_with_prefix(self.filters, prefix))

    def add_and_match(self) -> FilterStageBuilder:
        """filters = {"and": [{"age": {"$gt": 18}}, {"active": True}]}  ->  {"$and": [...]}"""
        return self._apply(compound_filters.and_match(self.filters))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def add_lookup_from_other_collection(
        self,
        collection: str,
        match_stages: Sequence[Stage],
        local_field: str,
        foreign_field: str,
        as_name: str | None = None,
        unique_foreign_id: str | None = None,
    ) -> FilterStageBuilder:
        """
        Loose $lookup whose nested pipeline is match_stages.

        as_name defaults to the configured lookup alias ("looked_up").
        """
        stages = lookup_filters.lookup_from_other_collection(
            collection,
            match_stages,
            local_field,
            foreign_field,
            as_name or self._settings.lookup_alias,
            unique_foreign_id,
        )
        return self._apply(Translation.of(stages))

    def add_strict_lookup_from_other_collection(
        self,
        collection: str,
        match_stages: Sequence[Stage],
        local_field: str,
        foreign_field: str,
        as_name: str | None = None,
        unique_foreign_id: str | None = None,
    ) -> FilterStageBuilder:
        """Strict $lookup + $unwind: parents without a match are dropped."""
        stages = lookup_filters.strict_lookup_from_other_collection(
            collection, match_stages, local_field, foreign_field, as_name, unique_foreign_id
        )
        return self._apply(Translation.of(stages))

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self) -> list[Stage]:
        """
        Sweep leftovers and return the stages.

        Every remaining bare, non-reserved key with a present value becomes an
        equality match. All remaining keys are deleted; suffixed keys no rule
        consumed are dropped and listed in unmatched_keys.
        """
        dropped: list[str] = []
        for key in list(self.filters):
            value = self.filters.pop(key)
            parsed = parse_filter_key(key)
            is_bare = parsed is not None and parsed.is_bare
            if is_bare and key not in RESERVED_KEYS:
                if is_present(value):
                    self._stages.append(match_stage({key: value}))
            elif is_present(value):
                dropped.append(key)

        if dropped:
            logger.debug(f"Dropped unmatched filter keys: {dropped}")
            self._unmatched_keys.extend(dropped)

        return list(self._stages)
