"""
Run coordination

Builds and filter runs share the sources and the output directory, so only one
of them may be active at a time. A run requested while another is active is
skipped, not queued.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable


logger = logging.getLogger(__name__)


class FetchCoordinator:
    """Single-flight guard for catalog runs"""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._active: str | None = None
        self._active_since: datetime | None = None

    async def execute(self, run_name: str, run: Callable[[], Awaitable[Any]]) -> Any:
        """
        Execute ``run`` unless another run is in progress

        Args:
            run_name: Label of the run, reported to callers that get skipped
            run: Async callable performing the run

        Returns:
            The run's result, or a skip response naming the active run
        """
        if self._lock.locked():
            logger.warning("Skipping %s: %s run in progress since %s", run_name, self._active, self._active_since)
            return {
                "status": "skipped",
                "message": f"A {self._active} run is already in progress",
            }

        async with self._lock:
            self._active = run_name
            self._active_since = datetime.now(timezone.utc)
            try:
                return await run()
            finally:
                self._active = None
                self._active_since = None

    def is_fetching(self) -> bool:
        return self._lock.locked()

    @property
    def active_run(self) -> str | None:
        return self._active


_coordinator: FetchCoordinator | None = None


def get_fetch_coordinator() -> FetchCoordinator:
    """Global coordinator, created on first use"""
    global _coordinator
    if _coordinator is None:
        _coordinator = FetchCoordinator()
    return _coordinator


def reset_fetch_coordinator() -> None:
    """Drop the global coordinator (tests only)."""
    global _coordinator
    _coordinator = None
