"""
Catalog Builder

Applies identity resolution and program merging to adapter output, one
channel at a time, in a fixed order: the base catalog first, then every source
in declared order, then channels in the order each source produced them.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import timedelta

from epg_catalog.errors import CatalogUnavailable
from epg_catalog.models import CatalogSnapshot, Channel
from epg_catalog.utils.data_merging import (
    DEFAULT_PROGRAM_DURATION,
    merge_channel_fields,
    merge_programs,
)
from epg_catalog.utils.identity import find_matching_channel, identity_key


logger = logging.getLogger(__name__)


class Catalog:
    """
    Accumulator for one build.

    Owned by build_catalog for the duration of a run; only the immutable
    snapshot leaves it.
    """

    def __init__(
        self,
        *,
        default_duration: timedelta = DEFAULT_PROGRAM_DURATION,
        dedupe: bool = True,
    ) -> None:
        self._entries: list[Channel] = []
        self._default_duration = default_duration
        self._dedupe = dedupe
        self.channels_added = 0
        self.channels_merged = 0

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, incoming: Channel) -> None:
        """Merge ``incoming`` into its matching entry or append it as new"""
        index = find_matching_channel(self._entries, incoming)

        if index is None:
            programs = merge_programs(
                (),
                incoming.programs,
                channel_key=identity_key(incoming),
                logo_url=incoming.logo_url,
                default_duration=self._default_duration,
                dedupe=self._dedupe,
            )
            self._entries.append(replace(incoming, programs=programs))
            self.channels_added += 1
            return

        existing = merge_channel_fields(self._entries[index], incoming)
        programs = merge_programs(
            existing.programs,
            incoming.programs,
            channel_key=identity_key(existing),
            logo_url=existing.logo_url,
            default_duration=self._default_duration,
            dedupe=self._dedupe,
        )
        self._entries[index] = replace(existing, programs=programs)
        self.channels_merged += 1
        logger.debug(
            "Merged '%s' into '%s' (%s programs)",
            incoming.display_name,
            existing.display_name,
            len(programs),
        )

    def extend(self, channels: Iterable[Channel]) -> None:
        for channel in channels:
            self.add(channel)

    def snapshot(self) -> CatalogSnapshot:
        return tuple(self._entries)


def build_catalog(
    base: Sequence[Channel] | None,
    sources: Sequence[Sequence[Channel] | None],
    *,
    default_duration: timedelta = DEFAULT_PROGRAM_DURATION,
    dedupe: bool = True,
) -> CatalogSnapshot:
    """
    Build the unified catalog.

    Args:
        base: Channels of the base catalog, or None if it was unavailable
        sources: Adapter output per source in priority order; None marks a
            source that failed
        default_duration: Slot length for programs without an end
        dedupe: Drop repeated programs while merging

    Returns:
        Immutable snapshot in first-introduction order

    Raises:
        CatalogUnavailable: If neither the base nor any source produced data
    """
    if not base and not any(sources):
        raise CatalogUnavailable("No base catalog and no source produced data")

    catalog = Catalog(default_duration=default_duration, dedupe=dedupe)

    if base is None:
        logger.warning("No base catalog, starting from an empty catalog")
    else:
        catalog.extend(base)
        logger.info("Seeded catalog with %s base channels", len(catalog))

    for position, channels in enumerate(sources, start=1):
        if channels is None:
            continue
        before = len(catalog)
        catalog.extend(channels)
        logger.info(
            "[Source %s/%s] Applied %s channels (%s new)",
            position,
            len(sources),
            len(channels),
            len(catalog) - before,
        )

    snapshot = catalog.snapshot()
    logger.info(
        "Catalog built: %s channels (%s added, %s merged)",
        len(snapshot),
        catalog.channels_added,
        catalog.channels_merged,
    )
    return snapshot
