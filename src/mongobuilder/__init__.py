"""
mongobuilder - compile flat filter dictionaries into MongoDB aggregation pipelines.

Callers pass plain values and suffix-encoded operator keys ("age-gt",
"status-in", "createdAt-from"); the builder turns each recognized key into a
stage, deletes what it consumed and sweeps leftover bare keys into equality
matches.

Quick Start:
    ```python
    from mongobuilder import AggregationPipelineBuilder

    pipeline = (
        AggregationPipelineBuilder({"status": "active", "createdAt-from": "2023-01-01"})
        .match(lambda f: f.add_string_match("status").add_date_range_match("createdAt"))
        .sort({"createdAt": -1})
        .build()
    )
    ```
"""

from .config.settings import Settings, get_settings
from .filters.base import Stage, Translation
from .filters.keys import FilterKey, FilterOperator, format_filter_key, parse_filter_key
from .pipeline import AggregationPipelineBuilder
from .stage_builder import FilterStageBuilder

__version__ = "0.1.0"
__all__ = [
    # Builders
    "FilterStageBuilder",
    "AggregationPipelineBuilder",
    # Config
    "Settings",
    "get_settings",
    # Key grammar
    "FilterKey",
    "FilterOperator",
    "format_filter_key",
    "parse_filter_key",
    # Types
    "Stage",
    "Translation",
]
