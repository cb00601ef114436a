"""Shared Pydantic models for API routers.

Wire names follow the primary store's trigger payloads (``recordId``,
``chunkSize``); snake_case names are accepted too.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from sheet_mirror.sync import SyncRequest


class SyncRequestModel(BaseModel):
    """Request body for sync endpoints.

    ``action`` and ``table`` are optional here so that missing values are
    reported as a 400 sync error rather than a schema error.
    """
    model_config = ConfigDict(populate_by_name=True)

    action: Optional[str] = None
    table: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    record_id: Optional[str] = Field(None, alias="recordId")

    def to_sync_request(self) -> SyncRequest:
        return SyncRequest(
            action=self.action,
            table=self.table,
            data=self.data,
            record_id=self.record_id,
        )


class BulkRecordModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    record_id: Optional[str] = Field(None, alias="recordId")
    data: Dict[str, Any]


class BulkSyncRequest(BaseModel):
    """Request body for chunked bulk imports."""
    model_config = ConfigDict(populate_by_name=True)

    table: str
    records: List[BulkRecordModel]
    chunk_size: int = Field(100, alias="chunkSize", ge=1, le=1000)
