"""Sync module mirroring primary-store changes into Google Sheets."""
from __future__ import annotations

from .dispatcher import SyncDispatcher
from .layouts import TABLE_LAYOUTS, TableLayout, layout_for, map_record, supported_tables, unmap_row
from .service import (
    BulkSyncResult,
    ChunkResult,
    SyncAction,
    SyncRequest,
    SyncResult,
    SyncService,
    resolve_record_key,
)

__all__ = [
    "BulkSyncResult",
    "ChunkResult",
    "SyncAction",
    "SyncDispatcher",
    "SyncRequest",
    "SyncResult",
    "SyncService",
    "TABLE_LAYOUTS",
    "TableLayout",
    "layout_for",
    "map_record",
    "resolve_record_key",
    "supported_tables",
    "unmap_row",
]
