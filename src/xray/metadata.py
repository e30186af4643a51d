"""Lookups into open-ended event metadata.

Metadata is an untyped JSON tree. Nothing in it is assumed present: every
accessor here returns None (or False) when a key is missing or has an
unexpected shape.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

METADATA_PREFIX = "metadata."


def has_metadata_key(metadata: Any, key: str) -> bool:
    return isinstance(metadata, dict) and key in metadata


def get_metadata_value(metadata: Any, key: str, default: Any = None) -> Any:
    if not isinstance(metadata, dict):
        return default
    return metadata.get(key, default)


def metadata_text(value: Any) -> str | None:
    """Project a metadata value to the text form used for matching and grouping.

    Strings are returned unchanged, JSON null stays None, booleans become
    "true"/"false" and everything else is rendered as JSON.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def selected_items(metadata: Any) -> list[Any] | None:
    value = get_metadata_value(metadata, "selected_items")
    return value if isinstance(value, list) else None


def rejected_items(metadata: Any) -> list[Any] | None:
    value = get_metadata_value(metadata, "rejected_items")
    return value if isinstance(value, list) else None


def search_context(metadata: Any) -> dict[str, Any] | None:
    value = get_metadata_value(metadata, "search_context")
    return value if isinstance(value, dict) else None


@dataclass(frozen=True, slots=True)
class MetadataFilter:
    """Exact string match against the value at one top-level metadata key."""

    key: str
    value: str

    def matches(self, metadata: Any) -> bool:
        if not has_metadata_key(metadata, self.key):
            return False
        return metadata_text(metadata[self.key]) == self.value

    @classmethod
    def from_query(cls, params: Iterable[tuple[str, str]]) -> list["MetadataFilter"]:
        """Collect `metadata.<key>=<value>` pairs from query parameters.

        Example:
            >>> MetadataFilter.from_query([("metadata.domain", "fraud"), ("limit", "5")])
            [MetadataFilter(key='domain', value='fraud')]
        """
        filters = []
        for name, value in params:
            if name.startswith(METADATA_PREFIX) and len(name) > len(METADATA_PREFIX):
                filters.append(cls(key=name[len(METADATA_PREFIX) :], value=value))
        return filters
