"""
AggregationPipelineBuilder: assembles a full aggregation pipeline.

Compiled filter stages are combined with hand-written stages ($sort,
$project, $group, $limit, $skip, $unwind, $lookup, ...) in call order.
Nothing is merged, deduplicated or reordered.

Example:
    pipeline = (
        AggregationPipelineBuilder({"status": "active", "age": "30"})
        .match(lambda f: f.add_string_match("status").add_number_match("age"))
        .sort({"createdAt": -1})
        .project({"name": 1, "email": 1})
        .limit(20)
        .build()
    )
    await collection.aggregate(pipeline)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from .config import Settings, get_settings
from .filters import lookup_filters
from .filters.base import Stage, field_ref
from .stage_builder import FilterStageBuilder

logger = logging.getLogger("mongobuilder.pipeline")

FilterCallback = Callable[[FilterStageBuilder], FilterStageBuilder | list[Stage] | None]
NestedPipeline = Sequence[Stage] | FilterCallback


class AggregationPipelineBuilder:
    """
    Fluent builder for MongoDB aggregation pipelines.

    The filters passed in are copied once here and copied again for every
    match() callback, because FilterStageBuilder consumes the dictionary it
    is given. The same base filters can therefore seed several independent
    match calls.

    Args:
        filters: Base filter dictionary (not mutated)
        timezone: Timezone for the FilterStageBuilders created here
        settings: Settings override (defaults to get_settings())
    """

    def __init__(
        self,
        filters: Mapping[str, Any] | None = None,
        *,
        timezone: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._filters: dict[str, Any] = dict(filters or {})
        self._settings = settings or get_settings()
        self._timezone = timezone or self._settings.timezone
        self._pipeline: list[Stage] = []

    @property
    def filters(self) -> dict[str, Any]:
        return dict(self._filters)

    def _filter_builder(self) -> FilterStageBuilder:
        return FilterStageBuilder(
            dict(self._filters), timezone=self._timezone, settings=self._settings
        )

    def _compile(self, callback: FilterCallback) -> list[Stage]:
        """
        Run a callback against a fresh builder.

        The callback may return the builder, None (the builder it was given
        is used) or an already built stage list.

        Raises:
            TypeError: if the callback returns anything else
        """
        builder = self._filter_builder()
        result = callback(builder)
        if result is None:
            return builder.build()
        if isinstance(result, FilterStageBuilder):
            return result.build()
        if isinstance(result, list):
            return list(result)
        raise TypeError(
            "filter callback must return a FilterStageBuilder, a stage list or None, "
            f"got {type(result).__name__}"
        )

    def _nested_pipeline(self, pipeline: NestedPipeline) -> list[Stage]:
        if callable(pipeline):
            return self._compile(pipeline)
        return list(pipeline)

    def match(self, filters: Mapping[str, Any] | FilterCallback) -> AggregationPipelineBuilder:
        """
        Add $match stage(s).

        A mapping is added verbatim as one $match stage. A callable receives a
        FilterStageBuilder seeded with a copy of the base filters; the stages
        it builds are appended if there are any.

        Raises:
            TypeError: if filters is neither a mapping nor a callable, or the
                callable returns something other than a builder, a stage
                list or None
        """
        if callable(filters):
            stages = self._compile(filters)
            if stages:
                self._pipeline.extend(stages)
            else:
                logger.debug("match() callback produced no stages")
        elif isinstance(filters, Mapping):
            self._pipeline.append({"$match": dict(filters)})
        else:
            raise TypeError(
                f"match() expects a mapping or a callable, got {type(filters).__name__}"
            )
        return self

    def sort(self, sort: Mapping[str, int]) -> AggregationPipelineBuilder:
        """Add a $sort stage, e.g. {"createdAt": -1}."""
        self._pipeline.append({"$sort": dict(sort)})
        return self

    def project(self, projection: Mapping[str, Any]) -> AggregationPipelineBuilder:
        self._pipeline.append({"$project": dict(projection)})
        return self

    def group(self, group: Mapping[str, Any]) -> AggregationPipelineBuilder:
        self._pipeline.append({"$group": dict(group)})
        return self

    def limit(self, limit: int) -> AggregationPipelineBuilder:
        self._pipeline.append({"$limit": limit})
        return self

    def skip(self, skip: int) -> AggregationPipelineBuilder:
        self._pipeline.append({"$skip": skip})
        return self

    def unwind(self, field: str | Mapping[str, Any]) -> AggregationPipelineBuilder:
        """
        Add an $unwind stage.

        A field name is expanded to a field path ("tags" -> "$tags"); a
        mapping is used as the full $unwind document.
        """
        if isinstance(field, str):
            self._pipeline.append({"$unwind": field_ref(field)})
        else:
            self._pipeline.append({"$unwind": dict(field)})
        return self

    def lookup(self, lookup: Mapping[str, Any]) -> AggregationPipelineBuilder:
        """Add a raw $lookup stage."""
        self._pipeline.append({"$lookup": dict(lookup)})
        return self

    def lookup_from_other_collection(
        self,
        collection: str,
        pipeline: NestedPipeline,
        local_field: str,
        foreign_field: str,
        as_name: str | None = None,
        unique_foreign_id: str | None = None,
    ) -> AggregationPipelineBuilder:
        """
        Loose $lookup; parents without a match keep an empty array.

        pipeline may be a stage list or a FilterStageBuilder callback, which is
        seeded with a copy of the base filters.
        """
        self._pipeline.extend(
            lookup_filters.lookup_from_other_collection(
                collection,
                self._nested_pipeline(pipeline),
                local_field,
                foreign_field,
                as_name or self._settings.lookup_alias,
                unique_foreign_id,
            )
        )
        return self

    def strict_lookup(
        self,
        collection: str,
        pipeline: NestedPipeline,
        local_field: str,
        foreign_field: str,
        as_name: str | None = None,
        unique_foreign_id: str | None = None,
    ) -> AggregationPipelineBuilder:
        """
        Strict $lookup followed by $unwind (preserveNullAndEmptyArrays: False),
        excluding parents without a match.

        Example:
            builder.strict_lookup("orders", [{"$match": {"status": "active"}}], "userId", "_id", "orders")
        """
        self._pipeline.extend(
            lookup_filters.strict_lookup_from_other_collection(
                collection,
                self._nested_pipeline(pipeline),
                local_field,
                foreign_field,
                as_name,
                unique_foreign_id,
            )
        )
        return self

    def add_stage(self, stage: Stage) -> AggregationPipelineBuilder:
        """Add a custom stage verbatim."""
        self._pipeline.append(stage)
        return self

    def build(self) -> list[Stage]:
        """Return the pipeline (copy), in call order."""
        return list(self._pipeline)
