"""Row position helpers: key lookup and sequence numbering.

Neither the key column nor the sequence column is indexed by the Sheets API,
so both helpers read the whole column in one request and scan it locally.
That is fine for human-curated sheets of a few thousand rows; it is not meant
for very large tables.
"""
from __future__ import annotations

import logging
import re
from typing import Any, List, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)

SEQUENCE_COLUMN_LETTER = "A"
KEY_COLUMN_LETTER = "B"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class ValueReader(Protocol):
    def get_values(self, range_name: str) -> List[List[Any]]: ...


def quote_sheet_title(title: str) -> str:
    """Return ``title`` quoted for A1 notation (``'My Sheet'``)."""

    safe = (title or "").strip()
    if not safe:
        raise ValueError("Sheet title must not be empty")
    return "'" + safe.replace("'", "''") + "'"


def a1_range(sheet_name: str, cells: str) -> str:
    return f"{quote_sheet_title(sheet_name)}!{cells}"


def column_range(sheet_name: str, letter: str) -> str:
    return a1_range(sheet_name, f"{letter}:{letter}")


def _first_cell(row: Sequence[Any]) -> str:
    if not row:
        return ""
    value = row[0]
    return "" if value is None else str(value)


def locate_row(client: ValueReader, sheet_name: str, key: str) -> Optional[int]:
    """Return the 1-based row holding ``key`` in the key column, or ``None``.

    Matching is exact string equality. When the key appears more than once
    (for example after a manual copy/paste in the sheet) the first row wins.
    """
    if not key:
        return None

    values = client.get_values(column_range(sheet_name, KEY_COLUMN_LETTER))
    for index, row in enumerate(values):
        if _first_cell(row) == key:
            return index + 1
    return None


def parse_sequence(value: Any) -> Optional[int]:
    """Parse the leading integer of a sequence cell, ignoring anything else."""

    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def next_sequence(client: ValueReader, sheet_name: str) -> int:
    """Return the next display sequence for ``sheet_name``.

    Row 1 is the header. The result is ``max + 1`` over the numeric cells
    below it, or ``1`` for an empty sheet. Numbers freed by deleted rows are
    not handed out again.
    """
    values = client.get_values(column_range(sheet_name, SEQUENCE_COLUMN_LETTER))
    if len(values) <= 1:
        return 1

    highest = 0
    for row in values[1:]:
        number = parse_sequence(_first_cell(row))
        if number is not None and number > highest:
            highest = number
    return highest + 1


__all__ = [
    "KEY_COLUMN_LETTER",
    "SEQUENCE_COLUMN_LETTER",
    "a1_range",
    "column_range",
    "locate_row",
    "next_sequence",
    "parse_sequence",
    "quote_sheet_title",
]
