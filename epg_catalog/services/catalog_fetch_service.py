"""
Catalog Fetching Service

Coordinates fetching, adapting and merging of EPG data from multiple sources.

Fetches run concurrently, bounded by a semaphore. Their results are collected
first and then applied to the catalog in configured source order, so the
output does not depend on network completion order.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

import httpx

from epg_catalog.config import SourceConfig, settings
from epg_catalog.errors import CatalogError, CatalogUnavailable
from epg_catalog.services.catalog_builder import build_catalog
from epg_catalog.services.catalog_store import catalog_store
from epg_catalog.models import (
    CatalogSnapshot,
    Channel,
    ChannelListEntry,
    SourceResult,
)
from epg_catalog.services.fetch_coordinator import get_fetch_coordinator
from epg_catalog.services.json_catalog_adapter import build_channel_url, parse_catalog_response
from epg_catalog.services.unified_catalog_adapter import load_json_document, parse_unified_catalog
from epg_catalog.services.xmltv_adapter import parse_channel_list, parse_xmltv_document
from epg_catalog.services.xmltv_filter import filter_xmltv_document, load_allow_list
from epg_catalog.utils.file_operations import (
    fetch_document,
    sanitize_url_for_logging,
    write_text_file,
)
from epg_catalog.utils.logging_helpers import (
    log_merge_summary,
    log_run_end,
    log_run_start,
    log_source_processing,
    log_source_summary,
)
from epg_catalog.utils.timezone import format_catalog_window


logger = logging.getLogger(__name__)


class CatalogFetchPipeline:
    """Coordinates download, adapt, and merge stages for one build."""

    def __init__(
        self,
        sources: Sequence[SourceConfig],
        *,
        base_catalog_url: str | None = None,
        allow_list: Sequence[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        now: datetime | None = None,
    ) -> None:
        self.sources = [source for source in sources if source.enabled]
        self.total_sources = len(self.sources)
        self.base_catalog_url = base_catalog_url
        # An empty allow-list is a real restriction: flagged sources keep nothing
        self.allow_list = list(allow_list) if allow_list is not None else None
        self._transport = transport
        self._now = now
        self._semaphore = asyncio.Semaphore(settings.fetch_concurrency)
        self._client: httpx.AsyncClient | None = None

    async def run(self) -> tuple[CatalogSnapshot, dict]:
        started_at = datetime.now(timezone.utc)

        async with self._build_client() as client:
            self._client = client
            try:
                (base, base_status), results = await asyncio.gather(
                    self._load_base_catalog(),
                    self._collect_sources(),
                )
            finally:
                self._client = None

        log_source_summary(logger, results)
        snapshot = build_catalog(
            base,
            [result.channels if result.status == "success" else None for result in results],
            default_duration=timedelta(minutes=settings.default_program_duration_min),
            dedupe=settings.catalog_dedupe_programs,
        )
        result = self._build_result(started_at, base_status, snapshot, results)
        log_merge_summary(logger, result["channels"], result["programs"], base_status)
        return snapshot, result

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=settings.fetch_timeout_sec,
            headers={"User-Agent": settings.fetch_user_agent},
            follow_redirects=True,
            transport=self._transport,
        )

    async def _fetch(self, url: str) -> bytes:
        """Fetch one document; a concurrency slot is held per request, not across backoff"""
        if self._client is None:
            raise RuntimeError("Pipeline client is not open")
        return await fetch_document(
            self._client,
            url,
            max_retries=settings.fetch_max_retries,
            backoff_factor=settings.fetch_backoff_factor,
            limiter=self._semaphore,
        )

    async def _load_base_catalog(self) -> tuple[list[Channel] | None, str]:
        if not self.base_catalog_url:
            return None, "not configured"

        sanitized_url = sanitize_url_for_logging(self.base_catalog_url)
        logger.info("Loading base catalog: %s", sanitized_url)
        try:
            content = await self._fetch(self.base_catalog_url)
            channels = parse_unified_catalog(content, settings.preferred_language)
        except CatalogError as exc:
            logger.warning("Base catalog unavailable (%s): %s", sanitized_url, exc)
            return None, "unavailable"

        return channels, "loaded"

    async def _collect_sources(self) -> list[SourceResult]:
        if not self.sources:
            logger.warning("No sources configured - only the base catalog will be used")
            return []

        tasks = [
            asyncio.create_task(self._process_source(index, source))
            for index, source in enumerate(self.sources, start=1)
        ]

        results = await asyncio.gather(*tasks)
        results.sort(key=lambda result: result.index)
        return results

    async def _process_source(self, index: int, source: SourceConfig) -> SourceResult:
        sanitized_url = sanitize_url_for_logging(source.url)
        started_at = datetime.now(timezone.utc)
        log_source_processing(logger, index, self.total_sources, source.name, sanitized_url)

        try:
            if source.kind == "xmltv":
                channels = await self._collect_xmltv(source)
            else:
                channels = await self._collect_json_catalog(source)
        except CatalogError as exc:
            logger.warning(
                "[Source %s/%s] Skipping %s: %s",
                index,
                self.total_sources,
                source.name,
                exc,
            )
            return self._failed_result(index, source, sanitized_url, started_at, exc)
        except Exception as exc:
            logger.error(
                "[Source %s] Failed to process %s: %s",
                index,
                sanitized_url,
                exc,
                exc_info=True,
            )
            return self._failed_result(index, source, sanitized_url, started_at, exc)

        result = SourceResult(
            index=index,
            name=source.name,
            sanitized_url=sanitized_url,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            status="success",
            channels=channels,
        )
        logger.info(
            "[Source %s/%s] Completed %s (%s channels, %s programs)",
            index,
            self.total_sources,
            source.name,
            len(result.channels),
            result.programs_parsed,
        )
        return result

    @staticmethod
    def _failed_result(
        index: int,
        source: SourceConfig,
        sanitized_url: str,
        started_at: datetime,
        exc: Exception,
    ) -> SourceResult:
        return SourceResult(
            index=index,
            name=source.name,
            sanitized_url=sanitized_url,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            status="failed",
            error=str(exc),
        )

    async def _collect_xmltv(self, source: SourceConfig) -> list[Channel]:
        content = await self._fetch(source.url)
        allowed_ids = self.allow_list if source.apply_allow_list else None

        # Large feeds are parsed off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(
                parse_xmltv_document,
                content,
                preferred_language=settings.preferred_language,
                allowed_ids=allowed_ids,
            ),
        )

    async def _load_channel_list(self, source: SourceConfig) -> list[ChannelListEntry]:
        if source.channels:
            return [
                ChannelListEntry(site_id=item.site_id, name=item.name, xmltv_id=item.xmltv_id, lang=item.lang)
                for item in source.channels
            ]
        return parse_channel_list(await self._fetch(source.channel_list_url))

    async def _collect_json_catalog(self, source: SourceConfig) -> list[Channel]:
        entries = await self._load_channel_list(source)
        if source.apply_allow_list and self.allow_list is not None:
            allowed = set(self.allow_list)
            entries = [
                entry for entry in entries
                if entry.site_id in allowed or entry.xmltv_id in allowed
            ]

        now = self._now or datetime.now(timezone.utc)
        start_param, end_param = format_catalog_window(now, start_hour=settings.catalog_window_start_hour)
        logger.info(
            "Fetching %s channel listings from %s (window %s -> %s)",
            len(entries),
            source.name,
            start_param,
            end_param,
        )

        # gather() preserves submission order, so channels keep channel-list order
        channels = await asyncio.gather(*(
            self._fetch_catalog_channel(source, entry, start_param, end_param)
            for entry in entries
        ))
        return [channel for channel in channels if channel is not None]

    async def _fetch_catalog_channel(
        self,
        source: SourceConfig,
        entry: ChannelListEntry,
        start_param: str,
        end_param: str,
    ) -> Channel | None:
        url = build_channel_url(source.url, entry.site_id, start_param, end_param)
        try:
            document = load_json_document(await self._fetch(url))
            channel = parse_catalog_response(
                document,
                entry,
                preferred_language=settings.preferred_language,
                max_programs=settings.max_programs_per_channel,
                aliases=source.aliases,
            )
        except CatalogError as exc:
            logger.warning("%s fetch failed for %s (%s): %s", source.name, entry.name, entry.site_id, exc)
            return None

        if channel is not None:
            logger.debug("%s channel added: %s (%s)", source.name, entry.name, entry.site_id)
        return channel

    def _build_result(
        self,
        started_at: datetime,
        base_status: str,
        snapshot: CatalogSnapshot,
        results: list[SourceResult],
    ) -> dict:
        successes = sum(1 for result in results if result.status == "success")
        programs = sum(len(channel.programs) for channel in snapshot)

        return {
            "status": "success",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "started_at": started_at.isoformat(),
            "base_catalog": base_status,
            "sources_processed": len(results),
            "sources_succeeded": successes,
            "sources_failed": len(results) - successes,
            "channels": len(snapshot),
            "programs": programs,
            "source_details": [result.to_dict() for result in results],
        }


def resolve_allow_list() -> list[str] | None:
    """Combine the inline allow-list with the allow-list file, or None if neither is set"""
    identifiers = list(settings.channel_allow_list)
    if settings.channel_allow_list_path:
        identifiers.extend(load_allow_list(settings.channel_allow_list_path))
    if not identifiers and not settings.channel_allow_list_path:
        return None
    if not identifiers:
        logger.warning(
            "Channel allow-list file %s is empty - flagged sources keep no channels",
            settings.channel_allow_list_path,
        )
    return list(dict.fromkeys(identifiers))


async def _build_and_store(transport: httpx.AsyncBaseTransport | None = None) -> dict:
    run_started = log_run_start(logger, "build")

    pipeline = CatalogFetchPipeline(
        settings.enabled_sources,
        base_catalog_url=settings.base_catalog_url,
        allow_list=resolve_allow_list(),
        transport=transport,
    )
    try:
        snapshot, result = await pipeline.run()
    except CatalogUnavailable as exc:
        logger.error("Catalog build failed: %s", exc)
        return {"error": str(exc)}

    written = await catalog_store.save(snapshot, settings.catalog_output_path)
    result["output_path"] = str(written)

    log_run_end(logger, "build", run_started)
    return result


async def fetch_and_process(transport: httpx.AsyncBaseTransport | None = None) -> dict:
    """
    Main entry point for catalog builds with concurrency protection.

    Returns:
        Dictionary with build statistics or error/skip message.
    """
    try:
        return await get_fetch_coordinator().execute(
            "build",
            functools.partial(_build_and_store, transport),
        )
    except (OSError, RuntimeError) as exc:
        logger.error("Catalog build failed: %s", exc, exc_info=True)
        return {"error": str(exc)}
    except Exception as exc:  # Catch-all to ensure API stability
        logger.error("Unexpected error during catalog build: %s", exc, exc_info=True)
        return {"error": str(exc)}


async def _filter_and_store(transport: httpx.AsyncBaseTransport | None = None) -> dict:
    if not settings.filter_source_url:
        logger.warning("FILTER_SOURCE_URL not configured - filter aborted")
        return {"error": "FILTER_SOURCE_URL not configured"}

    allow_list = resolve_allow_list()
    if not allow_list:
        logger.warning("Channel allow-list is empty - filter aborted")
        return {"error": "Channel allow-list is empty"}

    run_started = log_run_start(logger, "filter")
    sanitized_url = sanitize_url_for_logging(settings.filter_source_url)
    logger.info("Filtering %s with %s allow-listed channels", sanitized_url, len(allow_list))

    try:
        async with httpx.AsyncClient(
            timeout=settings.fetch_timeout_sec,
            headers={"User-Agent": settings.fetch_user_agent},
            follow_redirects=True,
            transport=transport,
        ) as client:
            content = await fetch_document(
                client,
                settings.filter_source_url,
                max_retries=settings.fetch_max_retries,
                backoff_factor=settings.fetch_backoff_factor,
            )
        filtered = filter_xmltv_document(content, allow_list)
    except CatalogError as exc:
        logger.error("Filter run failed for %s: %s", sanitized_url, exc)
        return {"error": str(exc)}

    written = await write_text_file(settings.filtered_output_path, filtered.decode("utf-8"))
    log_run_end(logger, "filter", run_started)
    return {
        "status": "success",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "source_url": sanitized_url,
        "allow_list_size": len(allow_list),
        "output_path": str(written),
    }


async def filter_and_process(transport: httpx.AsyncBaseTransport | None = None) -> dict:
    """
    Entry point for the filter-only run: subset the filter source by the allow-list.

    Returns:
        Dictionary with run details or error/skip message.
    """
    try:
        return await get_fetch_coordinator().execute(
            "filter",
            functools.partial(_filter_and_store, transport),
        )
    except Exception as exc:  # Catch-all to ensure API stability
        logger.error("Unexpected error during filter run: %s", exc, exc_info=True)
        return {"error": str(exc)}
