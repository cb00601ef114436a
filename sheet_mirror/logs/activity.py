"""Append-only JSONL activity log of sync outcomes."""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = Path(__file__).resolve().parents[2] / "activity_log.jsonl"


def log_sync_event(
    *,
    action: str,
    table: str,
    record_id: Optional[str],
    success: bool,
    environment: str,
    message: Optional[str] = None,
    error: Optional[str] = None,
    error_type: Optional[str] = None,
) -> None:
    entry: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "table": table,
        "record_id": record_id,
        "success": success,
        "environment": environment,
    }
    if success:
        entry["message"] = message
    else:
        entry["error"] = error
        entry["error_type"] = error_type

    try:
        _write_file(entry)
    except OSError as exc:
        logger.warning("[ActivityLog] Failed to write activity entry: %s", exc)


def fetch_activity_entries(limit: int = 50) -> List[Dict[str, Any]]:
    """Return recent activity entries, newest first."""

    return _read_file_entries(limit)


def _write_file(entry: Dict[str, Any]) -> None:
    path = _get_log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(entry))
        handle.write("\n")


def _get_log_path() -> Path:
    override = os.getenv("SHEET_MIRROR_ACTIVITY_LOG")
    if override:
        return Path(override)
    return DEFAULT_LOG_PATH


def _read_file_entries(limit: int) -> List[Dict[str, Any]]:
    path = _get_log_path()
    if not path.exists() or limit <= 0:
        return []
    lines = path.read_text(encoding="utf-8").splitlines()
    entries: List[Dict[str, Any]] = []
    for line in lines[-limit:]:
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return list(reversed(entries))
