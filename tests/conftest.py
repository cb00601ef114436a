"""Shared fixtures: an in-memory spreadsheet standing in for the Sheets REST API."""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import patch
from urllib import parse as urlparse

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from sheet_mirror.config import Settings
from sheet_mirror.errors import SheetsAPIError
from sheet_mirror.sheets_client import GoogleSheetsClient
from sheet_mirror.sync import SyncService
from sheet_mirror.sync.layouts import TABLE_LAYOUTS

SPREADSHEET_ID = "sheet-123"

_COLUMN_RANGE = re.compile(r"^([A-Z]+):([A-Z]+)$")
_ROW_RANGE = re.compile(r"^([A-Z]+)(\d+)(?::([A-Z]+)(\d+))?$")


def _column_index(letters: str) -> int:
    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - 64)
    return index - 1


def _trim(row: List[str]) -> List[str]:
    trimmed = list(row)
    while trimmed and trimmed[-1] == "":
        trimmed.pop()
    return trimmed


class FakeSpreadsheet:
    """Minimal emulation of the Sheets v4 calls the client makes."""

    def __init__(self, titles: Optional[List[str]] = None) -> None:
        titles = titles or [layout.sheet_name for layout in TABLE_LAYOUTS.values()]
        self.sheets: Dict[str, List[List[str]]] = {}
        self.grid_ids: Dict[str, int] = {}
        for index, title in enumerate(titles):
            self.add_sheet(title, grid_id=1000 + index)
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]], Optional[Dict[str, Any]]]] = []
        self._failures: List[Tuple[str, str, int]] = []

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------
    def add_sheet(self, title: str, *, grid_id: int, header: Optional[List[str]] = None) -> None:
        header = header or self._default_header(title)
        self.sheets[title] = [list(header)]
        self.grid_ids[title] = grid_id

    def rows(self, title: str) -> List[List[str]]:
        return self.sheets[title]

    def seed(self, title: str, rows: List[List[str]]) -> None:
        self.sheets[title].extend([list(row) for row in rows])

    def fail_next(self, method: str, *, contains: str = "", status: int = 500) -> None:
        """Make the next ``method`` call whose path contains ``contains`` fail."""
        self._failures.append((method, contains, status))

    def calls_for(self, method: str) -> List[Tuple[str, str, Any, Any]]:
        return [call for call in self.calls if call[0] == method]

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------
    def handle(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        self.calls.append((method, path, params, body))

        for failure in list(self._failures):
            fail_method, contains, status = failure
            if fail_method == method and contains in urlparse.unquote(path):
                self._failures.remove(failure)
                raise SheetsAPIError(f"Sheets API {method} {path} failed with status {status}", status=status)

        prefix = f"/{SPREADSHEET_ID}"
        assert path.startswith(prefix), path
        rest = path[len(prefix):]

        if rest == "" and method == "GET":
            return {
                "sheets": [
                    {"properties": {"sheetId": grid_id, "title": title}}
                    for title, grid_id in self.grid_ids.items()
                ]
            }
        if rest == ":batchUpdate" and method == "POST":
            return self._batch_update(body or {})
        if rest.startswith("/values/"):
            encoded = rest[len("/values/"):]
            append = encoded.endswith(":append")
            if append:
                encoded = encoded[: -len(":append")]
            title, cells = self._parse_range(urlparse.unquote(encoded))
            if method == "GET":
                return self._get(title, cells)
            if method == "PUT":
                return self._put(title, cells, body or {})
            if method == "POST" and append:
                self.sheets[title].extend([list(row) for row in (body or {}).get("values", [])])
                return {"updates": {"updatedRows": len((body or {}).get("values", []))}}
        raise AssertionError(f"Unexpected request {method} {path}")

    def _parse_range(self, range_name: str) -> Tuple[str, str]:
        sheet_part, cells = range_name.rsplit("!", 1)
        assert sheet_part.startswith("'") and sheet_part.endswith("'"), range_name
        title = sheet_part[1:-1].replace("''", "'")
        if title not in self.sheets:
            raise SheetsAPIError(f"Unable to parse range: {range_name}", status=400)
        return title, cells

    def _get(self, title: str, cells: str) -> Dict[str, Any]:
        rows = self.sheets[title]
        column = _COLUMN_RANGE.match(cells)
        if column:
            index = _column_index(column.group(1))
            values = [[row[index]] if len(row) > index and row[index] != "" else [] for row in rows]
            while values and not values[-1]:
                values.pop()
            return {"values": values} if values else {}

        match = _ROW_RANGE.match(cells)
        assert match, cells
        start_col = _column_index(match.group(1))
        row_number = int(match.group(2))
        end_col = _column_index(match.group(3)) if match.group(3) else start_col
        if row_number > len(rows):
            return {}
        selected = _trim(rows[row_number - 1][start_col:end_col + 1])
        return {"values": [selected]} if selected else {}

    def _put(self, title: str, cells: str, body: Dict[str, Any]) -> Dict[str, Any]:
        match = _ROW_RANGE.match(cells)
        assert match and match.group(1) == "A", cells
        row_number = int(match.group(2))
        rows = self.sheets[title]
        while len(rows) < row_number:
            rows.append([])
        rows[row_number - 1] = list(body["values"][0])
        return {"updatedRows": 1}

    def _batch_update(self, body: Dict[str, Any]) -> Dict[str, Any]:
        for request in body.get("requests", []):
            dimension = request["deleteDimension"]["range"]
            assert dimension["dimension"] == "ROWS"
            title = next(t for t, gid in self.grid_ids.items() if gid == dimension["sheetId"])
            del self.sheets[title][dimension["startIndex"]:dimension["endIndex"]]
        return {"replies": [{}]}

    @staticmethod
    def _default_header(title: str) -> List[str]:
        for layout in TABLE_LAYOUTS.values():
            if layout.sheet_name == title:
                return list(layout.headers)
        return ["No", "UUID"]


class StubTokenProvider:
    def __init__(self, token: str = "test-access-token") -> None:
        self.token = token
        self.requests = 0
        self.invalidated = 0

    def request_access_token(self) -> str:
        self.requests += 1
        return self.token

    def invalidate(self) -> None:
        self.invalidated += 1


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(autouse=True)
def activity_log_path(tmp_path, monkeypatch):
    """Keep the activity log out of the working tree."""
    path = tmp_path / "activity.jsonl"
    monkeypatch.setenv("SHEET_MIRROR_ACTIVITY_LOG", str(path))
    return path


@pytest.fixture
def settings(private_key_pem) -> Settings:
    return Settings(
        service_account_email="sync@test-project.iam.gserviceaccount.com",
        private_key=private_key_pem,
        spreadsheet_id=SPREADSHEET_ID,
        environment="test",
    )


@pytest.fixture
def fake_sheet():
    return FakeSpreadsheet()


@pytest.fixture
def token_provider():
    return StubTokenProvider()


@pytest.fixture
def sheets_client(fake_sheet, token_provider):
    """A GoogleSheetsClient whose HTTP layer is the in-memory spreadsheet."""
    with patch.object(GoogleSheetsClient, "_request", side_effect=fake_sheet.handle):
        yield GoogleSheetsClient(SPREADSHEET_ID, token_provider)


@pytest.fixture
def service(settings, sheets_client):
    return SyncService(settings, client=sheets_client)
