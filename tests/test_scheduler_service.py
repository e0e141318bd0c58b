"""
Tests for scheduled runs and run coordination
"""
import asyncio

from epg_catalog.config import settings
from epg_catalog.services.fetch_coordinator import FetchCoordinator
from epg_catalog.services.scheduler_service import BUILD_JOB_ID, FILTER_JOB_ID, CatalogScheduler


def registered_jobs():
    async def scenario():
        scheduler = CatalogScheduler()
        scheduler.start()
        try:
            return scheduler.running, set(scheduler.next_run_times()), scheduler.get_next_run_time()
        finally:
            scheduler.shutdown()

    return asyncio.run(scenario())


class TestCatalogScheduler:
    def test_build_job_only_by_default(self, monkeypatch):
        monkeypatch.setattr(settings, "catalog_filter_cron", None)

        running, job_ids, next_build = registered_jobs()

        assert running is True
        assert job_ids == {BUILD_JOB_ID}
        assert next_build is not None

    def test_filter_job_when_scheduled(self, monkeypatch):
        monkeypatch.setattr(settings, "catalog_filter_cron", "30 5 * * *")
        _, job_ids, _ = registered_jobs()
        assert job_ids == {BUILD_JOB_ID, FILTER_JOB_ID}

    def test_not_started(self):
        scheduler = CatalogScheduler()
        assert scheduler.running is False
        assert scheduler.get_next_run_time() is None
        assert scheduler.next_run_times() == {}

    def test_failing_run_is_contained(self):
        async def failing():
            raise RuntimeError("boom")

        asyncio.run(CatalogScheduler._run(BUILD_JOB_ID, failing))


class TestFetchCoordinator:
    def test_second_run_skipped(self):
        async def scenario():
            coordinator = FetchCoordinator()
            release = asyncio.Event()

            async def slow_build():
                await release.wait()
                return {"status": "success"}

            first = asyncio.create_task(coordinator.execute("build", slow_build))
            await asyncio.sleep(0)
            active = coordinator.active_run
            skipped = await coordinator.execute("filter", slow_build)
            release.set()
            return active, skipped, await first, coordinator.is_fetching()

        active, skipped, first, still_running = asyncio.run(scenario())

        assert active == "build"
        assert skipped == {"status": "skipped", "message": "A build run is already in progress"}
        assert first == {"status": "success"}
        assert still_running is False

    def test_active_run_cleared_after_failure(self):
        async def scenario():
            coordinator = FetchCoordinator()

            async def failing():
                raise RuntimeError("boom")

            try:
                await coordinator.execute("build", failing)
            except RuntimeError:
                pass
            return coordinator.active_run, coordinator.is_fetching()

        assert asyncio.run(scenario()) == (None, False)
