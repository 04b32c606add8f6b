"""
Shared types and helpers for the operator translators.

Every translator is a plain function over a read-only view of the filter
dictionary. Instead of pushing stages into a shared list it returns a
Translation: the stages it produced and the dictionary keys it consumed.
FilterStageBuilder applies the result (append stages, delete keys).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

Stage = dict[str, Any]
Filters = Mapping[str, Any]


@dataclass(frozen=True)
class Translation:
    """Result of one translator call."""

    stages: tuple[Stage, ...] = ()
    consumed: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, stages: Iterable[Stage] = (), consumed: Iterable[str] = ()) -> Translation:
        return cls(tuple(stages), frozenset(consumed))

    @classmethod
    def skip(cls, *consumed: str) -> Translation:
        """No stage, optionally consuming keys."""
        return cls((), frozenset(consumed))

    @property
    def emitted(self) -> bool:
        return bool(self.stages)


def is_present(value: Any) -> bool:
    """A value triggers emission only if it is not None and not an empty string."""
    return value is not None and value != ""


def is_flag_set(value: Any) -> bool:
    """Boolean gates accept True or the string "true" only."""
    return value is True or value == "true"


def is_flag_cleared(value: Any) -> bool:
    return value is False or value == "false"


def match_stage(query: Mapping[str, Any]) -> Stage:
    return {"$match": dict(query)}


def field_ref(field_name: str) -> str:
    """Field path as used inside aggregation expressions ("$field")."""
    return field_name if field_name.startswith("$") else f"${field_name}"


def resolve(filters: Filters, key: str, override: Any = None) -> tuple[Any, frozenset[str]]:
    """
    Read a value, preferring an explicit override.

    Returns the value and the keys consumed by reading it: the key itself
    when it came from the dictionary, nothing when an override was used.
    """
    if override is not None:
        return override, frozenset()
    if key in filters:
        return filters[key], frozenset({key})
    return None, frozenset()
