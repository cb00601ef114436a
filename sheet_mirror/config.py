"""Configuration helpers for the Sheet Mirror sync engine."""
from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv
import yaml

from .errors import ConfigurationError

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_HTTP_TIMEOUT = 30


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the sync engine."""

    service_account_email: str
    private_key: str
    spreadsheet_id: str
    token_uri: str = DEFAULT_TOKEN_URI
    http_timeout: int = DEFAULT_HTTP_TIMEOUT
    environment: str = "local"
    sheet_names: Dict[str, str] = field(default_factory=dict)
    workers: int = 2
    queue_size: int = 1000


def load_settings(*, env_file: Optional[Path] = None) -> Settings:
    """Load settings from environment variables (and an optional ``.env`` file).

    Args:
        env_file: Explicit dotenv file. When omitted, ``.env`` in the working
            directory is used if present. Existing environment variables win.

    Returns:
        Settings with the resolved credentials and spreadsheet target.

    Raises:
        ConfigurationError: if a required variable is missing or malformed.
    """

    load_dotenv(dotenv_path=env_file, override=False)

    email = (os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL") or "").strip()
    private_key = os.getenv("GOOGLE_PRIVATE_KEY") or ""
    spreadsheet_id = (os.getenv("GOOGLE_SPREADSHEET_ID") or "").strip()

    missing = [
        name
        for name, value in [
            ("GOOGLE_SERVICE_ACCOUNT_EMAIL", email),
            ("GOOGLE_PRIVATE_KEY", private_key.strip()),
            ("GOOGLE_SPREADSHEET_ID", spreadsheet_id),
        ]
        if not value
    ]
    if missing:
        raise ConfigurationError(
            f"Missing Google Sheets sync configuration: {', '.join(missing)}"
        )

    sheet_names_path = os.getenv("SHEET_MIRROR_SHEET_NAMES")
    sheet_names = load_sheet_names(Path(sheet_names_path)) if sheet_names_path else {}

    return Settings(
        service_account_email=email,
        private_key=private_key,
        spreadsheet_id=spreadsheet_id,
        token_uri=(os.getenv("GOOGLE_TOKEN_URI") or DEFAULT_TOKEN_URI).strip(),
        http_timeout=_int_env("SHEET_MIRROR_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        environment=os.getenv("SHEET_MIRROR_ENV", "local"),
        sheet_names=sheet_names,
        workers=_int_env("SHEET_MIRROR_WORKERS", 2),
        queue_size=_int_env("SHEET_MIRROR_QUEUE_SIZE", 1000),
    )


def load_sheet_names(path: Path) -> Dict[str, str]:
    """Return the table -> sheet title overrides stored in a YAML file."""

    if not path.exists():
        raise ConfigurationError(f"Sheet name override file not found at {path}")

    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    sheets = data.get("sheets", data) if isinstance(data, dict) else None
    if not isinstance(sheets, dict):
        raise ConfigurationError(f"{path} must map table names to sheet titles.")

    names: Dict[str, str] = {}
    for table, title in sheets.items():
        title = str(title or "").strip()
        if not title:
            raise ConfigurationError(f"Empty sheet title for table '{table}' in {path}")
        names[str(table)] = title
    return names


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ConfigurationError(f"{name} must be >= 1, got {value}")
    return value
