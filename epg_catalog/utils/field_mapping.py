"""
Declarative field mapping tables

Each source schema declares, per canonical field, the ordered list of source
aliases to try. The first alias yielding a non-empty value wins.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable


_SEGMENT_RE = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
_INDEX_RE = re.compile(r"\[(\d+)\]")

Getter = Callable[[Any, str], Any]


def lookup_path(record: Any, path: str) -> Any:
    """
    Resolve a dotted path such as 'Nodes.Items[0].Content' against a JSON tree

    Returns None as soon as any segment is missing or has the wrong shape.
    """
    current = record
    for segment in path.split("."):
        match = _SEGMENT_RE.match(segment)
        if not match:
            return None
        key, indexes = match.groups()

        if key:
            if not isinstance(current, Mapping):
                return None
            current = current.get(key)

        for index in _INDEX_RE.findall(indexes):
            if not isinstance(current, list) or int(index) >= len(current):
                return None
            current = current[int(index)]

        if current is None:
            return None
    return current


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


@dataclass(frozen=True, slots=True)
class FieldMapping:
    """Canonical field name plus its ordered source aliases"""
    field: str
    aliases: tuple[str, ...]

    def lookup(self, record: Any, getter: Getter = lookup_path) -> Any:
        for alias in self.aliases:
            value = getter(record, alias)
            if not _is_empty(value):
                return value
        return None


def map_fields(record: Any, mappings: tuple[FieldMapping, ...], getter: Getter = lookup_path) -> dict[str, Any]:
    """Apply a mapping table to one record"""
    return {mapping.field: mapping.lookup(record, getter) for mapping in mappings}


# XMLTV attributes (looked up with get_attribute, so any prefix convention works)
XMLTV_CHANNEL_ATTRIBUTES = (
    FieldMapping("identifier", ("id",)),
)

XMLTV_PROGRAMME_ATTRIBUTES = (
    FieldMapping("channel", ("channel",)),
    FieldMapping("start", ("start",)),
    FieldMapping("end", ("stop", "end")),
)

# Channel list documents (<channels><channel site_id=... xmltv_id=...>Name</channel>)
CHANNEL_LIST_ATTRIBUTES = (
    FieldMapping("site_id", ("site_id",)),
    FieldMapping("xmltv_id", ("xmltv_id",)),
    FieldMapping("lang", ("lang",)),
)

# JSON catalog API responses
CATALOG_ITEM_COLLECTIONS = FieldMapping(
    "items",
    (
        "Nodes.Items[0].Content.Nodes.Items",
        "Nodes.Items[0].Nodes.Items",
        "Data[0].Programs",
    ),
)

CATALOG_ITEM_FIELDS = (
    FieldMapping("start", ("Availabilities[0].AvailabilityStart", "AvailabilityStart", "Start")),
    FieldMapping("end", ("Availabilities[0].AvailabilityEnd", "AvailabilityEnd", "End")),
    FieldMapping("title", ("Content.Description.Title", "Description.Title", "Title")),
    FieldMapping(
        "description",
        (
            "Content.Description.Summary",
            "Content.Description.ShortSummary",
            "Description.Summary",
            "Description.ShortSummary",
            "Summary",
        ),
    ),
    FieldMapping("poster_url", ("Content.Description.Poster", "Content.Description.Image", "Poster")),
)

# Previously produced unified catalogs, including legacy key names
UNIFIED_CHANNEL_FIELDS = (
    FieldMapping("identifier", ("identifier", "id", "xmltv_id", "site_id")),
    FieldMapping("display_name", ("displayName", "display_name", "name")),
    FieldMapping("canonical_name", ("canonicalName", "canonical_name", "alias")),
    FieldMapping("logo_url", ("logoUrl", "logo_url", "logo", "icon")),
    FieldMapping("programs", ("programs",)),
)

UNIFIED_PROGRAM_FIELDS = (
    FieldMapping("title", ("title",)),
    FieldMapping("description", ("description", "desc")),
    FieldMapping("start", ("start",)),
    FieldMapping("end", ("end", "stop")),
    FieldMapping("poster_url", ("posterUrl", "poster_url", "poster", "icon")),
)
