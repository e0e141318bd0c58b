"""
Data merging utilities

This module handles validation and merging of programs, and merging of
channel-level fields, for channels matched across sources.
"""
import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import timedelta

from epg_catalog.models import Channel, Program

logger = logging.getLogger(__name__)

DEFAULT_PROGRAM_DURATION = timedelta(hours=1)


def validate_programs(
    candidates: Sequence[Program],
    logo_url: str | None = None,
    default_duration: timedelta = DEFAULT_PROGRAM_DURATION,
) -> list[Program]:
    """
    Turn program candidates into retainable programs.

    Candidates without a start are dropped. A missing end (or one earlier than
    the start) becomes start + default_duration. A missing poster falls back
    to the owning channel's logo.

    Args:
        candidates: Program candidates as produced by an adapter
        logo_url: Logo of the owning channel
        default_duration: Slot length used when no end is known

    Returns:
        Validated programs in input order
    """
    validated = []
    dropped = 0

    for program in candidates:
        if program.start is None:
            dropped += 1
            continue

        end = program.end
        if end is None or end < program.start:
            end = program.start + default_duration

        validated.append(replace(
            program,
            end=end,
            poster_url=program.poster_url or logo_url or None,
        ))

    if dropped:
        logger.debug("Dropped %s program(s) without a start time", dropped)

    return validated


def merge_programs(
    existing_programs: Sequence[Program],
    new_programs: Sequence[Program],
    *,
    channel_key: str = "",
    logo_url: str | None = None,
    default_duration: timedelta = DEFAULT_PROGRAM_DURATION,
    dedupe: bool = True,
) -> tuple[Program, ...]:
    """
    Merge incoming program candidates into a channel's program list.

    Incoming candidates are validated, optionally deduplicated against the
    existing list and against each other, concatenated after the existing
    programs and stably sorted by start, so existing entries stay ahead of
    incoming ones sharing a start time.

    Args:
        existing_programs: Programs already in the catalog (already validated)
        new_programs: Incoming candidates from a matched source
        channel_key: Identity key of the owning channel, part of the dedup key
        logo_url: Logo of the owning channel for poster fallback
        default_duration: Slot length used when no end is known
        dedupe: Drop incoming programs whose dedup key is already present

    Returns:
        The merged, chronologically ordered programs
    """
    incoming = validate_programs(new_programs, logo_url, default_duration)

    if dedupe:
        seen = {create_program_key(channel_key, program) for program in existing_programs}
        unique = []
        for program in incoming:
            program_key = create_program_key(channel_key, program)
            if program_key in seen:
                logger.debug(
                    "Skipping duplicate program: %s on %s",
                    program.title,
                    channel_key,
                )
                continue
            seen.add(program_key)
            unique.append(program)
        incoming = unique

    merged = [*existing_programs, *incoming]
    merged.sort(key=lambda program: program.start)
    return tuple(merged)


def merge_channel_fields(existing: Channel, incoming: Channel) -> Channel:
    """
    Fill gaps in an existing channel's fields from an incoming record.

    The first non-empty value wins and the existing entry takes precedence.
    Programs are left untouched.
    """
    return replace(
        existing,
        identifier=existing.identifier or incoming.identifier,
        display_name=existing.display_name or incoming.display_name,
        canonical_name=existing.canonical_name or incoming.canonical_name,
        logo_url=existing.logo_url or incoming.logo_url,
    )


def create_program_key(channel_key: str, program: Program) -> str:
    """
    Create a unique key for a program based on channel, time, and title.

    Args:
        channel_key: Identity key of the owning channel
        program: Program instance

    Returns:
        Unique program key string
    """
    start = program.start.isoformat() if program.start else ""
    return f"{channel_key}_{start}_{program.title}"
