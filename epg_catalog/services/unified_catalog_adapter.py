"""
Unified catalog adapter

Reads a previously produced unified catalog (JSON array of channels) so it can
seed a new run as the base catalog. Legacy key names written by older builds
are accepted alongside the canonical ones.
"""
import json
import logging
from collections.abc import Mapping
from typing import Any

from epg_catalog.errors import RecordMalformed, SourceMalformed
from epg_catalog.models import Channel, Program
from epg_catalog.utils.field_mapping import (
    UNIFIED_CHANNEL_FIELDS,
    UNIFIED_PROGRAM_FIELDS,
    map_fields,
)
from epg_catalog.utils.text_values import extract_text
from epg_catalog.utils.timezone import parse_timestamp


logger = logging.getLogger(__name__)


def load_json_document(content: bytes | str | Any) -> Any:
    """Decode raw JSON content; already decoded trees pass through"""
    if not isinstance(content, (bytes, str)):
        return content
    try:
        return json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SourceMalformed(f"Document is not valid JSON: {e}") from e


def parse_unified_catalog(content: bytes | str | Any, preferred_language: str | None = None) -> list[Channel]:
    """
    Parse a unified catalog document into channels

    Raises:
        SourceMalformed: If the document is not a JSON array
    """
    document = load_json_document(content)
    if not isinstance(document, list):
        raise SourceMalformed("Unified catalog must be a JSON array of channels")

    channels = []
    for position, record in enumerate(document):
        try:
            channels.append(_parse_channel_record(record, preferred_language))
        except RecordMalformed as e:
            logger.warning("Skipping catalog entry #%s: %s", position, e)

    logger.info(
        "Unified catalog parsed: %s channels, %s programs",
        len(channels),
        sum(len(channel.programs) for channel in channels),
    )
    return channels


def _parse_channel_record(record: Any, preferred_language: str | None) -> Channel:
    if not isinstance(record, Mapping):
        raise RecordMalformed(f"entry is {type(record).__name__}, expected object")

    fields = map_fields(record, UNIFIED_CHANNEL_FIELDS)
    identifier = str(fields["identifier"]) if fields["identifier"] is not None else None
    display_name = extract_text(fields["display_name"], preferred_language) or identifier
    if not display_name:
        raise RecordMalformed("entry has neither a name nor an identifier")

    raw_programs = fields["programs"] or []
    if not isinstance(raw_programs, list):
        raise RecordMalformed(f"programs of '{display_name}' is not an array")

    programs = []
    for raw in raw_programs:
        if not isinstance(raw, Mapping):
            logger.warning("Skipping non-object program on '%s'", display_name)
            continue
        program_fields = map_fields(raw, UNIFIED_PROGRAM_FIELDS)
        poster = program_fields["poster_url"]
        programs.append(Program(
            title=extract_text(program_fields["title"], preferred_language) or "",
            description=extract_text(program_fields["description"], preferred_language),
            start=parse_timestamp(program_fields["start"]),
            end=parse_timestamp(program_fields["end"]),
            poster_url=poster if isinstance(poster, str) else None,
        ))

    logo = fields["logo_url"]
    return Channel(
        identifier=identifier,
        display_name=display_name,
        canonical_name=extract_text(fields["canonical_name"]) or display_name,
        logo_url=logo if isinstance(logo, str) else None,
        programs=tuple(programs),
    )
