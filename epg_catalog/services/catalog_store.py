"""
Catalog snapshot store

Holds the latest built catalog in memory and persists it as the published
JSON array. On startup the previously written file is loaded so the catalog
is served before the first build of the process completes.
"""
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from epg_catalog.errors import SourceMalformed
from epg_catalog.schemas import serialize_catalog
from epg_catalog.models import CatalogSnapshot
from epg_catalog.services.unified_catalog_adapter import parse_unified_catalog
from epg_catalog.utils.data_merging import merge_programs
from epg_catalog.utils.file_operations import read_text_file, write_text_file
from epg_catalog.utils.identity import identity_key


logger = logging.getLogger(__name__)


class CatalogStore:
    """Latest catalog snapshot plus its on-disk copy"""

    def __init__(self) -> None:
        self._snapshot: CatalogSnapshot | None = None
        self._built_at: datetime | None = None

    @property
    def snapshot(self) -> CatalogSnapshot | None:
        return self._snapshot

    @property
    def built_at(self) -> datetime | None:
        return self._built_at

    async def save(self, snapshot: CatalogSnapshot, file_path: Path | str) -> Path:
        """Publish a new snapshot and write it to ``file_path``"""
        written = await write_text_file(file_path, serialize_catalog(snapshot))
        self._snapshot = snapshot
        self._built_at = datetime.now(timezone.utc)
        return written

    async def load(self, file_path: Path | str) -> bool:
        """
        Load a previously written catalog file

        Returns:
            True if a snapshot was loaded, False if the file is missing or unreadable
        """
        content = await read_text_file(file_path)
        if content is None:
            logger.info("No catalog file at %s yet", file_path)
            return False

        try:
            channels = parse_unified_catalog(content)
        except SourceMalformed as e:
            logger.warning("Ignoring unreadable catalog file %s: %s", file_path, e)
            return False

        # Legacy or hand-edited files may carry untimed or unordered programs
        self._snapshot = tuple(
            replace(channel, programs=merge_programs(
                (),
                channel.programs,
                channel_key=identity_key(channel),
                logo_url=channel.logo_url,
            ))
            for channel in channels
        )
        self._built_at = datetime.fromtimestamp(Path(file_path).stat().st_mtime, tz=timezone.utc)
        logger.info("Loaded %s channels from %s", len(channels), file_path)
        return True

    def reset(self) -> None:
        """Forget the current snapshot (mainly for testing)."""
        self._snapshot = None
        self._built_at = None


catalog_store = CatalogStore()
