"""
JSON catalog adapter

Translates per-channel responses of JSON catalog APIs (nested Nodes/Items
trees carrying Availabilities and Description blocks) into canonical channels.
"""
import logging
from collections.abc import Mapping
from typing import Any

from epg_catalog.errors import RecordMalformed, SourceMalformed
from epg_catalog.models import Channel, ChannelListEntry, Program
from epg_catalog.utils.field_mapping import (
    CATALOG_ITEM_COLLECTIONS,
    CATALOG_ITEM_FIELDS,
    lookup_path,
    map_fields,
)
from epg_catalog.utils.identity import resolve_alias
from epg_catalog.utils.text_values import extract_text
from epg_catalog.utils.timezone import parse_timestamp


logger = logging.getLogger(__name__)

DEFAULT_MAX_PROGRAMS = 50


def build_channel_url(api_base: str, site_id: str, start_param: str, end_param: str) -> str:
    """Build the per-channel listing URL of a catalog API"""
    return (
        f"{api_base.rstrip('/')}/catalog/tv/channels/list/"
        f"(ids={site_id};start={start_param};end={end_param};level=normal)"
    )


def locate_items(document: Any) -> list:
    """
    Find the broadcast items collection in a catalog response

    Raises:
        SourceMalformed: If no known collection path resolves to a list
    """
    for path in CATALOG_ITEM_COLLECTIONS.aliases:
        items = lookup_path(document, path)
        if isinstance(items, list):
            return items
    raise SourceMalformed("Catalog response has no broadcast items collection")


def parse_catalog_item(item: Any, preferred_language: str | None = None) -> Program:
    """
    Parse one broadcast item into a program candidate

    Raises:
        RecordMalformed: If the item is not an object
    """
    if not isinstance(item, Mapping):
        raise RecordMalformed(f"broadcast item is {type(item).__name__}, expected object")

    fields = map_fields(item, CATALOG_ITEM_FIELDS)
    return Program(
        title=extract_text(fields["title"], preferred_language) or "",
        description=extract_text(fields["description"], preferred_language),
        start=parse_timestamp(fields["start"]),
        end=parse_timestamp(fields["end"]),
        poster_url=fields["poster_url"] if isinstance(fields["poster_url"], str) else None,
    )


def parse_catalog_response(
    document: Any,
    entry: ChannelListEntry,
    *,
    preferred_language: str | None = None,
    max_programs: int = DEFAULT_MAX_PROGRAMS,
    aliases: Mapping[str, str] | None = None,
) -> Channel | None:
    """
    Build the channel described by ``entry`` from its catalog response

    The channel is identified by the entry's xmltv_id when it has one, so it
    can meet XMLTV feeds by identifier, and by its site_id otherwise. Its
    canonical name is the configured alias for the entry name, if any. Text is
    resolved in the entry's own language, or in ``preferred_language`` when
    the entry names none.

    Returns None when the response holds no broadcast items.

    Raises:
        SourceMalformed: If the response has no items collection at all
    """
    items = locate_items(document)
    if not items:
        logger.warning("No programs found for %s (%s)", entry.name, entry.site_id)
        return None

    language = entry.lang or preferred_language
    programs = []
    for item in items[:max_programs]:
        try:
            programs.append(parse_catalog_item(item, language))
        except RecordMalformed as e:
            logger.warning("Skipping broadcast item for %s: %s", entry.name, e)

    return Channel(
        identifier=entry.xmltv_id or entry.site_id,
        display_name=entry.name,
        canonical_name=resolve_alias(entry.name, aliases or {}) or entry.name,
        programs=tuple(programs),
    )
