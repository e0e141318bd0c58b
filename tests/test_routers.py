"""
Tests for the HTTP surface
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from conftest import utc
from epg_catalog import routers
from epg_catalog.main import app
from epg_catalog.models import Channel, Program
from epg_catalog.services.catalog_store import catalog_store


@pytest.fixture
def client():
    # No context manager: the lifespan (scheduler, catalog file) stays off
    return TestClient(app)


class TestInfoEndpoints:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "EPG Catalog"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["scheduler_running"] is False
        assert body["next_runs"] == {}
        assert body["active_run"] is None
        assert body["catalog_built_at"] is None
        assert body["catalog_channels"] == 0


class TestCatalogEndpoint:
    def test_not_built_yet(self, client):
        assert client.get("/catalog").status_code == 404

    def test_serves_snapshot(self, client, tmp_path):
        snapshot = (Channel(
            identifier="X1",
            display_name="Alpha",
            programs=(Program(title="Show1", start=utc(2024, 1, 1, 10), end=utc(2024, 1, 1, 11)),),
        ),)

        asyncio.run(catalog_store.save(snapshot, tmp_path / "merged_all.json"))

        response = client.get("/catalog")

        assert response.status_code == 200
        [channel] = response.json()
        assert channel["displayName"] == "Alpha"
        assert channel["programs"][0]["posterUrl"] is None


class TestRunEndpoints:
    def test_fetch_success(self, client, monkeypatch):
        async def fake_fetch():
            return {"status": "success", "channels": 1}

        monkeypatch.setattr(routers, "fetch_and_process", fake_fetch)

        response = client.post("/fetch")

        assert response.status_code == 200
        assert response.json()["channels"] == 1

    def test_fetch_error(self, client, monkeypatch):
        async def failing_fetch():
            return {"error": "No base catalog and no source produced data"}

        monkeypatch.setattr(routers, "fetch_and_process", failing_fetch)

        response = client.post("/fetch")

        assert response.status_code == 500
        assert response.json()["detail"] == "No base catalog and no source produced data"

    def test_filter_skipped_is_not_an_error(self, client, monkeypatch):
        async def skipped():
            return {"status": "skipped", "message": "Catalog run already in progress"}

        monkeypatch.setattr(routers, "filter_and_process", skipped)

        assert client.post("/filter").status_code == 200
