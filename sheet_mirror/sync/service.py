"""One-way sync service mirroring primary-store records into Google Sheets.

This service handles:
- Validating sync requests before any network call
- Inserting, updating (with append fallback) and deleting mirrored rows
- Chunked bulk imports where each chunk succeeds or fails on its own
- Recording every outcome in the activity log
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..config import Settings
from ..errors import (
    ConfigurationError,
    SheetSyncError,
    UnsupportedTableError,
    ValidationError,
)
from ..logs import log_sync_event
from ..sheets_client import GoogleSheetsClient
from .layouts import TABLE_LAYOUTS, layout_for, map_record, unmap_row

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100


class SyncAction(str, Enum):
    """Mutation applied in the primary store."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(slots=True)
class SyncRequest:
    """A single change event to mirror."""
    action: Optional[str]
    table: Optional[str]
    data: Optional[Dict[str, Any]] = None
    record_id: Optional[str] = None

    @property
    def key(self) -> str:
        return resolve_record_key(self.record_id, self.data)


@dataclass(slots=True)
class SyncResult:
    """Outcome of one sync request."""
    success: bool
    action: Optional[str] = None
    table: Optional[str] = None
    record_id: str = ""
    message: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    row_index: Optional[int] = None
    sequence: Optional[int] = None

    @property
    def invalid_request(self) -> bool:
        """True when the request itself was rejected (bad shape or table)."""
        return self.error_type in (ValidationError.__name__, UnsupportedTableError.__name__)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "message": self.message}
        return {"success": False, "error": self.error}


@dataclass(slots=True)
class ChunkResult:
    """Outcome of one bulk-import chunk."""
    index: int
    size: int
    success: bool
    first_sequence: Optional[int] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


@dataclass(slots=True)
class BulkSyncResult:
    """Outcome of a chunked bulk import."""
    table: str
    chunks: List[ChunkResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(chunk.success for chunk in self.chunks)

    @property
    def error_type(self) -> Optional[str]:
        for chunk in self.chunks:
            if not chunk.success:
                return chunk.error_type
        return None

    @property
    def inserted(self) -> int:
        return sum(chunk.size for chunk in self.chunks if chunk.success)

    @property
    def failed(self) -> int:
        return sum(chunk.size for chunk in self.chunks if not chunk.success)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "table": self.table,
            "inserted": self.inserted,
            "failed": self.failed,
            "chunks": [
                {
                    "index": chunk.index,
                    "size": chunk.size,
                    "success": chunk.success,
                    "firstSequence": chunk.first_sequence,
                    "error": chunk.error,
                }
                for chunk in self.chunks
            ],
        }


def resolve_record_key(record_id: Optional[str], data: Optional[Mapping[str, Any]]) -> str:
    """Return the row key: explicit ``record_id``, else ``data["id"]``, else ``""``."""

    if record_id:
        return str(record_id)
    if data and data.get("id"):
        return str(data["id"])
    return ""


def resolve_sheet_names(overrides: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Merge sheet title overrides into the default table -> title map.

    Raises:
        ConfigurationError: if an override names an unknown table.
    """
    names = {table: layout.sheet_name for table, layout in TABLE_LAYOUTS.items()}
    for table, title in (overrides or {}).items():
        if table not in names:
            raise ConfigurationError(f"Sheet name override for unknown table: {table}")
        names[table] = title
    return names


class SyncService:
    """Mirror primary-store changes into their spreadsheet tabs.

    Design Principles:
    - The primary store is the source of truth; the sheet is a derived view
    - Rows are addressed by the record key in column B, never by position
    - Sequence numbers in column A are for humans and never reused in order
    - Sync failures are reported, never raised to the primary write path
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: Optional[GoogleSheetsClient] = None,
    ) -> None:
        self.settings = settings
        self.client = client or GoogleSheetsClient.from_settings(settings)
        self.sheet_names = resolve_sheet_names(settings.sheet_names)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def sync(self, request: SyncRequest) -> SyncResult:
        """Apply one change event to the sheet.

        Library errors are returned as a failed result rather than raised, and
        every outcome is appended to the activity log.
        """
        key = request.key
        result = SyncResult(
            success=False,
            action=request.action,
            table=request.table,
            record_id=key,
        )

        try:
            action, table = self.validate(request)
            result.action = action.value
            sheet_name = self.sheet_names[table]
            logger.info(f"[SYNC] {action.value} {table} key={key or '-'}")

            if action is SyncAction.DELETE:
                self._apply_delete(sheet_name, table, key, result)
            else:
                self._apply_upsert(action, sheet_name, table, key, request.data or {}, result)
            result.success = True
        except SheetSyncError as exc:
            result.success = False
            result.error = str(exc)
            result.error_type = type(exc).__name__
            logger.error(f"[SYNC] {request.action} {request.table} key={key or '-'} failed: {exc}")

        self._record(result)
        return result

    def bulk_insert(
        self,
        table: str,
        records: Iterable[Mapping[str, Any]],
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> BulkSyncResult:
        """Append many records in chunks of ``chunk_size`` rows.

        Each entry is either ``{"recordId": ..., "data": {...}}`` or a bare
        record dict carrying its own ``id``. A failed chunk is reported and
        skipped; earlier chunks stay written and later chunks still run.
        """
        if chunk_size < 1:
            raise ValidationError("chunk_size must be >= 1")
        layout_for(table)
        sheet_name = self.sheet_names[table]

        rows: List[List[str]] = []
        for record in records:
            if "data" in record and isinstance(record.get("data"), Mapping):
                data = record["data"]
                key = resolve_record_key(record.get("recordId") or record.get("record_id"), data)
            else:
                data = record
                key = resolve_record_key(None, data)
            rows.append(map_record(table, key, data))

        outcome = BulkSyncResult(table=table)
        for index, start in enumerate(range(0, len(rows), chunk_size)):
            chunk = rows[start:start + chunk_size]
            chunk_result = ChunkResult(index=index, size=len(chunk), success=False)
            try:
                first = self.client.next_sequence(sheet_name)
                for offset, row in enumerate(chunk):
                    row[0] = str(first + offset)
                self.client.append_rows(sheet_name, chunk)
                chunk_result.success = True
                chunk_result.first_sequence = first
            except SheetSyncError as exc:
                chunk_result.error = str(exc)
                chunk_result.error_type = type(exc).__name__
                logger.error(f"[SYNC] bulk chunk {index} for {table} failed: {exc}")
            outcome.chunks.append(chunk_result)

        logger.info(
            f"[SYNC] bulk insert {table}: {outcome.inserted} inserted, "
            f"{outcome.failed} failed in {len(outcome.chunks)} chunk(s)"
        )
        log_sync_event(
            action="bulk_insert",
            table=table,
            record_id=None,
            success=outcome.success,
            environment=self.settings.environment,
            message=f"{outcome.inserted} rows inserted" if outcome.success else None,
            error=None if outcome.success else f"{outcome.failed} rows failed",
            error_type=outcome.error_type,
        )
        return outcome

    def lookup(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Return the mirrored row for ``record_id`` as a record dict, if any."""

        layout = layout_for(table)
        sheet_name = self.sheet_names[table]
        row_index = self.client.locate_row(sheet_name, record_id)
        if row_index is None:
            return None
        cells = self.client.read_row(sheet_name, row_index, width=layout.width)
        record = unmap_row(table, cells)
        record["row"] = row_index
        return record

    def validate(self, request: SyncRequest) -> tuple[SyncAction, str]:
        """Check the request shape and table before any sheet call.

        Raises:
            ValidationError: if action, table, key or data is missing or unknown.
            UnsupportedTableError: if the table has no layout.
        """
        if not request.action or not request.table:
            raise ValidationError("Missing required fields: action, table")
        try:
            action = SyncAction(request.action)
        except ValueError as exc:
            raise ValidationError(f"Unsupported action: {request.action}") from exc
        if request.table not in TABLE_LAYOUTS:
            raise UnsupportedTableError(f"Unsupported table: {request.table}")

        if action is SyncAction.DELETE:
            if not request.key:
                raise ValidationError("Missing recordId for delete action")
        elif request.data is None:
            raise ValidationError("Missing data for insert/update action")
        return action, request.table

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _apply_delete(self, sheet_name: str, table: str, key: str, result: SyncResult) -> None:
        removed = self.client.delete_row(sheet_name, key)
        if removed:
            result.message = f"Successfully deleted from Google Sheets ({table})"
        else:
            result.message = f"Record not found in Google Sheets ({table}), nothing to delete"

    def _apply_upsert(
        self,
        action: SyncAction,
        sheet_name: str,
        table: str,
        key: str,
        data: Mapping[str, Any],
        result: SyncResult,
    ) -> None:
        cells = map_record(table, key, data)

        if action is SyncAction.UPDATE:
            row_index = self.client.locate_row(sheet_name, key)
            if row_index is not None:
                written = self.client.update_row(sheet_name, row_index, cells, key)
                result.row_index = row_index
                result.sequence = _as_int(written[0])
                result.message = f"Successfully synced to Google Sheets ({action.value} - {table})"
                return
            logger.info(f"[SYNC] {table} key={key} not found for update, appending")

        result.sequence = self.client.append_row(sheet_name, cells)
        result.message = f"Successfully synced to Google Sheets ({action.value} - {table})"

    def _record(self, result: SyncResult) -> None:
        log_sync_event(
            action=str(result.action or ""),
            table=str(result.table or ""),
            record_id=result.record_id or None,
            success=result.success,
            environment=self.settings.environment,
            message=result.message,
            error=result.error,
            error_type=result.error_type,
        )


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
