"""
Structured logging helpers for catalog runs.

Keeps the per-run and per-source log lines uniform so a run can be followed
by grepping for its name or for ``[Source i/n]``.
"""
import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from epg_catalog.models import SourceResult


def log_run_start(logger: logging.Logger, run_name: str) -> datetime:
    """
    Log the start of a run.

    Args:
        logger: Logger instance
        run_name: Run label ("build" or "filter")

    Returns:
        The start instant, to be passed to log_run_end
    """
    started_at = datetime.now(timezone.utc)
    logger.info(f"Catalog {run_name} started at {started_at.isoformat()}")
    return started_at


def log_run_end(logger: logging.Logger, run_name: str, started_at: datetime) -> None:
    elapsed = (datetime.now(timezone.utc) - started_at).total_seconds()
    logger.info(f"Catalog {run_name} completed in {elapsed:.1f}s")


def log_source_processing(logger: logging.Logger, idx: int, total: int, name: str, url: str) -> None:
    """
    Log source processing header.

    Args:
        logger: Logger instance
        idx: Current source index (1-based)
        total: Total number of sources
        name: Configured source name
        url: Sanitized source URL being processed
    """
    logger.info(f"[Source {idx}/{total}] Processing {name}: {url}")


def log_source_summary(logger: logging.Logger, results: Sequence[SourceResult]) -> None:
    """One line per source with its outcome, in merge order."""
    for result in results:
        if result.status == "success":
            logger.info(
                f"[Source {result.index}/{len(results)}] {result.name}: "
                f"{len(result.channels)} channels, {result.programs_parsed} programs "
                f"in {result.duration_seconds:.1f}s"
            )
        else:
            logger.warning(f"[Source {result.index}/{len(results)}] {result.name}: failed ({result.error})")


def log_merge_summary(
    logger: logging.Logger,
    channels_count: int,
    programs_count: int,
    base_status: str,
) -> None:
    """
    Log merge operation summary.

    Args:
        logger: Logger instance
        channels_count: Channels in the built catalog
        programs_count: Programs in the built catalog
        base_status: Outcome of loading the base catalog
    """
    logger.info(
        f"Merge summary - Channels: {channels_count}, Programs: {programs_count}, "
        f"Base catalog: {base_status}"
    )
