#!/usr/bin/env python3
"""
mongobuilder Quickstart Example
===============================

This example demonstrates the basic usage of mongobuilder:
1. Compile a filter dictionary with FilterStageBuilder
2. Assemble a full pipeline with AggregationPipelineBuilder
3. Inspect the leftover sweep

Prerequisites:
    pip install -e .

Run:
    python examples/01_quickstart.py
"""

# Add src to path for development
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bson import json_util

from mongobuilder import AggregationPipelineBuilder, FilterStageBuilder


def show(title: str, stages: list) -> None:
    print(f"\n{title}")
    print(json_util.dumps(stages, indent=2))


def main() -> None:
    """Basic mongobuilder usage example."""
    print("=" * 60)
    print("mongobuilder Quickstart")
    print("=" * 60)

    # 1. Compile a filter dictionary
    filters = {
        "status": "active",
        "age": "30",
        "createdAt-from": "2023-01-01",
    }

    pipeline = (
        AggregationPipelineBuilder(filters)
        .match(
            lambda f: f.add_string_match("status")
            .add_number_match("age")
            .add_date_range_match("createdAt")
        )
        .sort({"createdAt": -1})
        .project({"name": 1, "email": 1})
        .build()
    )
    show("1. Pipeline:", pipeline)

    # 2. Time zones move day boundaries
    berlin = (
        FilterStageBuilder(
            {"createdAt-from": "2023-05-01", "createdAt-to": "2023-05-07"},
            timezone="Europe/Berlin",
        )
        .add_date_range_match("createdAt")
        .build()
    )
    show("2. Europe/Berlin date range:", berlin)

    # 3. Nested lookups
    orders = FilterStageBuilder({"status-in": ["paid", "shipped"]}).add_in_match("status").build()
    joined = (
        AggregationPipelineBuilder()
        .strict_lookup("orders", orders, "_id", "userId", "orders")
        .limit(10)
        .build()
    )
    show("3. Strict lookup:", joined)

    # 4. Leftover sweep
    builder = FilterStageBuilder({"region": "eu", "score-unknown": 5})
    show("4. Swept leftovers:", builder.build())
    print(f"   Dropped keys: {builder.unmatched_keys}")

    print("\n" + "=" * 60)
    print("Quickstart complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
