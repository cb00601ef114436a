#!/usr/bin/env python3
"""Sheet Mirror CLI."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from sheet_mirror.config import Settings, load_settings
from sheet_mirror.errors import ConfigurationError, SheetSyncError
from sheet_mirror.google_auth import ServiceAccountTokenProvider
from sheet_mirror.logs import fetch_activity_entries
from sheet_mirror.sheets_client import column_letter
from sheet_mirror.sync import SyncAction, SyncRequest, SyncService, supported_tables
from sheet_mirror.sync.layouts import header_row, layout_for


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sheet-mirror",
        description="Mirror primary-store records into Google Sheets.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "check-config",
        help="Validate that the Google service account settings are available.",
    )

    subparsers.add_parser(
        "token",
        help="Exchange a signed assertion for an access token (verifies credentials).",
    )

    layout_parser = subparsers.add_parser(
        "layout",
        help="Show the column layout for a table.",
    )
    layout_parser.add_argument("table", choices=supported_tables())

    sync_parser = subparsers.add_parser(
        "sync",
        help="Mirror a single insert, update or delete.",
    )
    sync_parser.add_argument("action", choices=[action.value for action in SyncAction])
    sync_parser.add_argument("table", help="Primary-store table name.")
    sync_parser.add_argument("--record-id", help="Record key (defaults to data['id']).")
    data_group = sync_parser.add_mutually_exclusive_group()
    data_group.add_argument("--data", help="Record fields as a JSON object.")
    data_group.add_argument("--data-file", type=Path, help="Path to a JSON file with the record.")

    import_parser = subparsers.add_parser(
        "import",
        help="Bulk-append records from a JSON array file.",
    )
    import_parser.add_argument("table", help="Primary-store table name.")
    import_parser.add_argument("file", type=Path, help="JSON file holding a list of records.")
    import_parser.add_argument(
        "--chunk-size",
        type=int,
        default=100,
        help="Rows appended per API call.",
    )

    activity_parser = subparsers.add_parser(
        "activity",
        help="Show recent sync activity.",
    )
    activity_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Maximum number of entries to show.",
    )

    return parser


def _cmd_check_config() -> int:
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Configuration check failed: {exc}", file=sys.stderr)
        return 1

    print(
        "Google Sheets sync is configured",
        f"(service account {settings.service_account_email})",
        f"spreadsheet={settings.spreadsheet_id}",
        f"environment={settings.environment}",
    )
    if settings.sheet_names:
        for table, title in sorted(settings.sheet_names.items()):
            print(f"  {table} -> {title}")
    return 0


def _cmd_token() -> int:
    try:
        settings = load_settings()
        provider = ServiceAccountTokenProvider.from_settings(settings)
        token = provider.request_access_token()
    except SheetSyncError as exc:
        print(f"Token request failed: {exc}", file=sys.stderr)
        return 1

    print(f"Access token issued (preview {token[:8]}...)")
    return 0


def _cmd_layout(table: str) -> int:
    layout = layout_for(table)
    print(f"Table: {layout.table}")
    print(f"Sheet: {layout.sheet_name}")
    for index, header in enumerate(header_row(table)):
        print(f"  {column_letter(index + 1)}  {header}")
    return 0


def _cmd_sync(
    action: str,
    table: str,
    record_id: Optional[str],
    data: Optional[str],
    data_file: Optional[Path],
) -> int:
    try:
        record = _load_record(data, data_file)
    except ValueError as exc:
        print(f"Invalid record data: {exc}", file=sys.stderr)
        return 2

    try:
        service = _build_service()
    except SheetSyncError as exc:
        print(f"Sync unavailable: {exc}", file=sys.stderr)
        return 1

    result = service.sync(
        SyncRequest(action=action, table=table, data=record, record_id=record_id)
    )
    if result.success:
        print(result.message)
        return 0
    print(f"Sync failed: {result.error}", file=sys.stderr)
    return 1


def _cmd_import(table: str, file: Path, chunk_size: int) -> int:
    try:
        records = _load_records(file)
    except ValueError as exc:
        print(f"Invalid import file: {exc}", file=sys.stderr)
        return 2

    try:
        service = _build_service()
        result = service.bulk_insert(table, records, chunk_size=chunk_size)
    except SheetSyncError as exc:
        print(f"Import failed: {exc}", file=sys.stderr)
        return 1

    for chunk in result.chunks:
        status = "ok" if chunk.success else f"FAILED: {chunk.error}"
        print(f"  chunk {chunk.index}: {chunk.size} row(s) {status}")
    print(f"Inserted {result.inserted} row(s), {result.failed} failed.")
    return 0 if result.success else 1


def _cmd_activity(limit: int) -> int:
    entries = fetch_activity_entries(limit)
    if not entries:
        print("No sync activity recorded.")
        return 0
    for entry in entries:
        status = "ok" if entry.get("success") else "failed"
        detail = entry.get("message") if entry.get("success") else entry.get("error")
        print(
            f"{entry.get('ts')}  {entry.get('action')} {entry.get('table')} "
            f"{entry.get('record_id') or '-'}  {status}  {detail or ''}"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "check-config":
        return _cmd_check_config()
    if args.command == "token":
        return _cmd_token()
    if args.command == "layout":
        return _cmd_layout(args.table)
    if args.command == "sync":
        return _cmd_sync(
            action=args.action,
            table=args.table,
            record_id=args.record_id,
            data=args.data,
            data_file=args.data_file,
        )
    if args.command == "import":
        return _cmd_import(table=args.table, file=args.file, chunk_size=args.chunk_size)
    if args.command == "activity":
        return _cmd_activity(limit=args.limit)

    parser.error(f"Unknown command: {args.command}")
    return 2


def _build_service(settings: Optional[Settings] = None) -> SyncService:
    return SyncService(settings or load_settings())


def _load_record(data: Optional[str], data_file: Optional[Path]) -> Optional[Dict[str, Any]]:
    if data_file is not None:
        try:
            data = data_file.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValueError(str(exc)) from exc
    if data is None:
        return None
    try:
        record = json.loads(data)
    except json.JSONDecodeError as exc:
        raise ValueError(str(exc)) from exc
    if not isinstance(record, dict):
        raise ValueError("record must be a JSON object")
    return record


def _load_records(path: Path) -> List[Dict[str, Any]]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(str(exc)) from exc
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ValueError("expected a JSON array of objects")
    return payload


if __name__ == "__main__":
    sys.exit(main())
