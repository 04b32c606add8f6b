"""
Cross-collection $lookup stage builders.

The nested pipeline is a regular stage list, usually produced by another
FilterStageBuilder. Two variants:

- loose: only the $lookup stage; parents without a match keep an empty array
- strict: $lookup followed by an $unwind that drops parents without a match

Example (strict):
    [
        {"$lookup": {
            "from": "orders",
            "localField": "userId",
            "foreignField": "_id",
            "let": {"foreign_id": "$_id"},
            "as": "orders_looked_up",
            "pipeline": [{"$match": {"status": "active"}}],
        }},
        {"$unwind": {"path": "$orders_looked_up", "preserveNullAndEmptyArrays": False}},
    ]
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .base import Stage, field_ref

logger = logging.getLogger("mongobuilder.filters.lookup")

DEFAULT_LOOKUP_ALIAS = "looked_up"


def build_lookup_stage(
    collection: str,
    pipeline: Sequence[Stage],
    local_field: str,
    foreign_field: str,
    as_name: str,
    unique_foreign_id: str | None = None,
) -> Stage:
    """Build a single $lookup stage with a nested pipeline."""
    return {
        "$lookup": {
            "from": collection,
            "localField": local_field,
            "foreignField": foreign_field,
            "let": {"foreign_id": unique_foreign_id or "$_id"},
            "as": as_name,
            "pipeline": list(pipeline),
        }
    }


def lookup_from_other_collection(
    collection: str,
    pipeline: Sequence[Stage],
    local_field: str,
    foreign_field: str,
    as_name: str = DEFAULT_LOOKUP_ALIAS,
    unique_foreign_id: str | None = None,
) -> list[Stage]:
    """
    Loose lookup: join without dropping unmatched parents.

    Args:
        collection: Collection to join ("from")
        pipeline: Stages applied to the joined documents
        local_field: Field on the input documents
        foreign_field: Field on the joined documents
        as_name: Output array field
        unique_foreign_id: Expression exposed as the "foreign_id" variable
            (defaults to "$_id")

    Returns:
        [lookup stage], or [] when no collection is given
    """
    if not collection:
        logger.debug("Skipping lookup: no collection given")
        return []
    return [
        build_lookup_stage(
            collection, pipeline, local_field, foreign_field, as_name, unique_foreign_id
        )
    ]


def strict_lookup_from_other_collection(
    collection: str,
    pipeline: Sequence[Stage],
    local_field: str,
    foreign_field: str,
    as_name: str | None = None,
    unique_foreign_id: str | None = None,
) -> list[Stage]:
    """
    Strict lookup: join and drop parents without a match.

    as_name defaults to "<collection>_looked_up".

    Returns:
        [lookup stage, unwind stage], or [] when no collection is given
    """
    if not collection:
        logger.debug("Skipping strict lookup: no collection given")
        return []

    alias = as_name or f"{collection}_looked_up"
    return [
        build_lookup_stage(
            collection, pipeline, local_field, foreign_field, alias, unique_foreign_id
        ),
        {"$unwind": {"path": field_ref(alias), "preserveNullAndEmptyArrays": False}},
    ]
