from fastapi import APIRouter, HTTPException
import logging

from epg_catalog import __version__
from epg_catalog.schemas import ChannelSchema, to_catalog_schema
from epg_catalog.services import (
    catalog_scheduler,
    catalog_store,
    fetch_and_process,
    filter_and_process,
)
from epg_catalog.services.fetch_coordinator import get_fetch_coordinator


logger = logging.getLogger(__name__)

main_router = APIRouter()

@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    next_run = catalog_scheduler.get_next_run_time()

    return {
        "service": "EPG Catalog",
        "version": __version__,
        "next_scheduled_build": next_run.isoformat() if next_run else None,
        "endpoints": {
            "fetch": "/fetch - Manually trigger a catalog build",
            "filter": "/filter - Manually trigger an allow-list filter run",
            "catalog": "/catalog - Get the unified catalog",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check() -> dict:
    """Health check endpoint"""
    built_at = catalog_store.built_at
    snapshot = catalog_store.snapshot
    return {
        "status": "ok",
        "scheduler_running": catalog_scheduler.running,
        "next_runs": {
            job_id: next_time.isoformat() if next_time else None
            for job_id, next_time in catalog_scheduler.next_run_times().items()
        },
        "active_run": get_fetch_coordinator().active_run,
        "catalog_built_at": built_at.isoformat() if built_at else None,
        "catalog_channels": len(snapshot) if snapshot is not None else 0,
    }


@main_router.post("/fetch")
async def trigger_fetch() -> dict:
    """
    Manually trigger a catalog build

    This will fetch every source, merge them and publish the new catalog
    """
    logger.info("Manual catalog build triggered via API")
    result = await fetch_and_process()

    if "error" in result:
        raise HTTPException(status_code=500, detail=result["error"])

    return result


@main_router.post("/filter")
async def trigger_filter() -> dict:
    """
    Manually trigger a filter-only run

    This will subset the filter source to the allow-listed channels
    """
    logger.info("Manual filter run triggered via API")
    result = await filter_and_process()

    if "error" in result:
        raise HTTPException(status_code=500, detail=result["error"])

    return result


@main_router.get("/catalog", response_model=list[ChannelSchema])
async def get_catalog() -> list[ChannelSchema]:
    """Get the latest unified catalog"""
    snapshot = catalog_store.snapshot
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Catalog has not been built yet")

    logger.debug(f"Serving catalog with {len(snapshot)} channels")
    return to_catalog_schema(snapshot)
