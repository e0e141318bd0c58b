"""
Services package for the EPG catalog

This package contains the source adapters, the catalog builder and the
orchestration around them.
"""
from epg_catalog.services.catalog_builder import build_catalog
from epg_catalog.services.catalog_fetch_service import fetch_and_process, filter_and_process
from epg_catalog.services.catalog_store import catalog_store
from epg_catalog.services.scheduler_service import catalog_scheduler

__all__ = [
    'build_catalog',
    'fetch_and_process',
    'filter_and_process',
    'catalog_store',
    'catalog_scheduler',
]
