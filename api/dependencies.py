"""Shared dependencies for API routers.

Usage in routers:
    from api.dependencies import get_sync_service, get_dispatcher
"""
from __future__ import annotations

from functools import lru_cache

from sheet_mirror.api.auth import require_api_key  # noqa: F401 - re-export
from sheet_mirror.config import Settings, load_settings
from sheet_mirror.sync import SyncDispatcher, SyncService


@lru_cache
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return load_settings()


@lru_cache
def get_sync_service() -> SyncService:
    return SyncService(get_settings())


@lru_cache
def get_dispatcher() -> SyncDispatcher:
    """Return the process-wide dispatcher, started on first use."""
    settings = get_settings()
    dispatcher = SyncDispatcher(
        get_sync_service(),
        workers=settings.workers,
        max_queue=settings.queue_size,
    )
    dispatcher.start()
    return dispatcher


def shutdown_dispatcher() -> None:
    """Drain and stop the dispatcher if one was started."""
    if get_dispatcher.cache_info().currsize:
        get_dispatcher().stop()
        get_dispatcher.cache_clear()
