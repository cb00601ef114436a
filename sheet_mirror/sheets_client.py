"""Google Sheets REST client used by the sync engine.

This module talks to the Sheets v4 REST surface directly. It covers only the
calls the row protocol needs:

* ``GET values/{range}`` for column scans and single-cell reads.
* ``GET {spreadsheetId}`` (metadata) to resolve a sheet title to its grid id.
* ``PUT values/{range}`` to overwrite one row in place.
* ``POST values/{range}:append`` with ``INSERT_ROWS`` to add rows.
* ``POST {spreadsheetId}:batchUpdate`` with ``deleteDimension`` to remove a row.

Every call sends ``Authorization: Bearer <token>`` from the configured token
provider and uses its own timeout. Reads fail with :class:`SheetsAPIError`,
writes with :class:`WriteError`.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence
from urllib import error as urlerror
from urllib import parse as urlparse
from urllib import request as urlrequest

from .config import Settings
from .errors import SheetNotFoundError, SheetsAPIError, WriteError
from .google_auth import ServiceAccountTokenProvider
from .rows import (
    SEQUENCE_COLUMN_LETTER,
    a1_range,
    column_range,
    locate_row,
    next_sequence,
)

logger = logging.getLogger(__name__)

USER_ENTERED = "USER_ENTERED"


class TokenProvider(Protocol):
    def request_access_token(self) -> str: ...

    def invalidate(self) -> None: ...


class GoogleSheetsClient:
    """Small Sheets v4 REST wrapper bound to one spreadsheet."""

    base_url = "https://sheets.googleapis.com/v4/spreadsheets"

    def __init__(
        self,
        spreadsheet_id: str,
        token_provider: TokenProvider,
        *,
        timeout_seconds: int = 30,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.token_provider = token_provider
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        token_provider: Optional[TokenProvider] = None,
    ) -> "GoogleSheetsClient":
        provider = token_provider or ServiceAccountTokenProvider.from_settings(settings)
        return cls(
            settings.spreadsheet_id,
            provider,
            timeout_seconds=settings.http_timeout,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_values(self, range_name: str) -> List[List[Any]]:
        """Return the rows of ``range_name`` (trailing empty cells omitted)."""

        payload = self._request("GET", self._values_path(range_name))
        values = payload.get("values") or []
        return [list(row) for row in values]

    def get_sheet_id(self, sheet_name: str) -> int:
        """Resolve ``sheet_name`` to its numeric grid id via spreadsheet metadata."""

        metadata = self._request(
            "GET",
            f"/{self.spreadsheet_id}",
            params={"fields": "sheets.properties(sheetId,title)"},
        )
        for sheet in metadata.get("sheets") or []:
            properties = sheet.get("properties") or {}
            if properties.get("title") == sheet_name:
                return int(properties.get("sheetId", 0))
        raise SheetNotFoundError(f'Sheet "{sheet_name}" not found')

    def read_row(self, sheet_name: str, row_index: int, *, width: int) -> List[Any]:
        """Return the cells of one row, padded to ``width``."""

        end_column = column_letter(width)
        values = self.get_values(a1_range(sheet_name, f"A{row_index}:{end_column}{row_index}"))
        row = list(values[0]) if values else []
        row.extend([""] * (width - len(row)))
        return row

    def locate_row(self, sheet_name: str, key: str) -> Optional[int]:
        return locate_row(self, sheet_name, key)

    def next_sequence(self, sheet_name: str) -> int:
        return next_sequence(self, sheet_name)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def update_row(
        self,
        sheet_name: str,
        row_index: int,
        cells: Sequence[Any],
        key: str,
    ) -> List[Any]:
        """Overwrite row ``row_index`` with ``cells``, keeping its sequence number.

        Returns the row as written.
        """
        existing = self.get_values(a1_range(sheet_name, f"{SEQUENCE_COLUMN_LETTER}{row_index}"))
        sequence = existing[0][0] if existing and existing[0] else ""
        if sequence in (None, ""):
            sequence = row_index - 1

        row = list(cells)
        row[0] = str(sequence)

        try:
            self._request(
                "PUT",
                self._values_path(a1_range(sheet_name, f"A{row_index}")),
                params={"valueInputOption": USER_ENTERED},
                body={"values": [row]},
            )
        except SheetsAPIError as exc:
            raise WriteError(f"Failed to update row {row_index} for {key}: {exc}", status=exc.status) from exc

        logger.info("[SHEETS] Updated row %s in %s", row_index, sheet_name)
        return row

    def append_row(self, sheet_name: str, cells: Sequence[Any]) -> int:
        """Append ``cells`` as a new row with the next sequence number.

        Returns the sequence number assigned.
        """
        sequence = self.next_sequence(sheet_name)
        row = list(cells)
        row[0] = str(sequence)
        self.append_rows(sheet_name, [row])
        return sequence

    def append_rows(self, sheet_name: str, rows: Sequence[Sequence[Any]]) -> None:
        """Append fully-formed rows below the sheet's data, inserting new rows."""

        if not rows:
            return
        try:
            self._request(
                "POST",
                self._values_path(column_range(sheet_name, SEQUENCE_COLUMN_LETTER), suffix=":append"),
                params={
                    "valueInputOption": USER_ENTERED,
                    "insertDataOption": "INSERT_ROWS",
                },
                body={"values": [list(row) for row in rows]},
            )
        except SheetsAPIError as exc:
            raise WriteError(f"Failed to append row: {exc}", status=exc.status) from exc

        logger.info("[SHEETS] Appended %s row(s) to %s", len(rows), sheet_name)

    def delete_row(self, sheet_name: str, key: str) -> bool:
        """Remove the row holding ``key``.

        Returns ``False`` without touching the sheet when no row holds the
        key, so repeated or late deletes are harmless.
        """
        row_index = self.locate_row(sheet_name, key)
        if row_index is None:
            logger.info("[SHEETS] Row with key %s not found in %s, skipping delete", key, sheet_name)
            return False

        grid_id = self.get_sheet_id(sheet_name)
        body = {
            "requests": [
                {
                    "deleteDimension": {
                        "range": {
                            "sheetId": grid_id,
                            "dimension": "ROWS",
                            "startIndex": row_index - 1,
                            "endIndex": row_index,
                        }
                    }
                }
            ]
        }
        try:
            self._request("POST", f"/{self.spreadsheet_id}:batchUpdate", body=body)
        except SheetsAPIError as exc:
            raise WriteError(f"Failed to delete row: {exc}", status=exc.status) from exc

        logger.info("[SHEETS] Deleted row %s from %s", row_index, sheet_name)
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _values_path(self, range_name: str, *, suffix: str = "") -> str:
        encoded = urlparse.quote(range_name, safe="")
        return f"/{self.spreadsheet_id}/values/{encoded}{suffix}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        if params:
            url = f"{url}?{urlparse.urlencode(params)}"

        data: Optional[bytes] = None
        headers = {
            "Authorization": f"Bearer {self.token_provider.request_access_token()}",
            "Accept": "application/json",
        }
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = urlrequest.Request(url, data=data, method=method, headers=headers)

        try:
            with urlrequest.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except urlerror.HTTPError as exc:  # pragma: no cover - network path
            detail = exc.read().decode("utf-8", errors="ignore")
            if exc.code == 401:
                self.token_provider.invalidate()
            raise SheetsAPIError(
                f"Sheets API {method} {path} failed with status {exc.code}: {detail}",
                status=exc.code,
            ) from exc
        except (urlerror.URLError, OSError) as exc:
            raise SheetsAPIError(f"Network error calling Google Sheets: {exc}") from exc

        if not raw.strip():
            return {}
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise SheetsAPIError(f"Sheets API {method} {path} returned a non-JSON body") from exc


def column_letter(index: int) -> str:
    """Return the A1 column letters for a 1-based column ``index``."""

    if index < 1:
        raise ValueError("Column index must be >= 1")
    letters: List[str] = []
    while index:
        index, remainder = divmod(index - 1, 26)
        letters.append(chr(65 + remainder))
    return "".join(reversed(letters))


__all__ = [
    "GoogleSheetsClient",
    "TokenProvider",
    "USER_ENTERED",
    "column_letter",
]
