"""Sync Router - mirror primary-store changes into Google Sheets.

Handles:
- Synchronous sync of one change event (the trigger endpoint)
- Queued sync through the background dispatcher
- Chunked bulk imports
- Read-back of a mirrored row for verification
"""
from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from api.dependencies import get_dispatcher, get_sync_service, require_api_key
from api.models import BulkSyncRequest, SyncRequestModel
from sheet_mirror.sync import SyncDispatcher, SyncService
from sheet_mirror.sync.layouts import layout_for

logger = logging.getLogger(__name__)

# Mounted at /sync
router = APIRouter(dependencies=[Depends(require_api_key)])


@router.post("")
def sync_record(
    request: SyncRequestModel,
    service: SyncService = Depends(get_sync_service),
) -> JSONResponse:
    """Mirror one insert/update/delete into the table's sheet."""
    start_time = time.time()
    logger.info(f"[SYNC] Request: {request.action} {request.table} recordId={request.record_id}")

    result = service.sync(request.to_sync_request())

    elapsed = time.time() - start_time
    if result.success:
        logger.info(f"[SYNC] Completed in {elapsed:.2f}s: {result.message}")
        return JSONResponse(status_code=200, content=result.to_dict())

    status_code = 400 if result.invalid_request else 500
    logger.error(f"[SYNC] Failed after {elapsed:.2f}s ({status_code}): {result.error}")
    return JSONResponse(status_code=status_code, content=result.to_dict())


@router.post("/async")
def sync_record_async(
    request: SyncRequestModel,
    service: SyncService = Depends(get_sync_service),
    dispatcher: SyncDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """Queue a change event and return immediately."""
    sync_request = request.to_sync_request()
    service.validate(sync_request)

    if not dispatcher.submit(sync_request):
        return JSONResponse(
            status_code=503,
            content={"queued": False, "error": "Sync queue is full"},
        )
    return JSONResponse(status_code=202, content={"queued": True})


@router.post("/bulk")
def sync_bulk(
    request: BulkSyncRequest,
    service: SyncService = Depends(get_sync_service),
) -> dict:
    """Append many records in chunks; each chunk reports its own outcome."""
    logger.info(
        f"[SYNC/BULK] {len(request.records)} record(s) into {request.table}, chunk size {request.chunk_size}"
    )
    records = [
        {"recordId": record.record_id, "data": record.data}
        for record in request.records
    ]
    result = service.bulk_insert(request.table, records, chunk_size=request.chunk_size)
    return result.to_dict()


@router.get("/{table}/{record_id}")
def get_synced_record(
    table: str,
    record_id: str,
    service: SyncService = Depends(get_sync_service),
) -> dict:
    """Return the mirrored row for a record."""
    layout_for(table)
    record = service.lookup(table, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found in sheet.")
    return {"table": table, "record": record}


__all__ = ["router"]
