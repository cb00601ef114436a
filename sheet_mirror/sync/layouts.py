"""Fixed column layouts mapping primary-store records to spreadsheet rows.

Every synced row has the shape::

    No | UUID | <business fields in table order> | Updated At

Column positions are a contract with the spreadsheets already in use: a new
table gets a new layout, but the field order of an existing layout must never
change.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import UnsupportedTableError

SEQUENCE_COLUMN = "No"
KEY_COLUMN = "UUID"
TIMESTAMP_COLUMN = "Updated At"


@dataclass(frozen=True, slots=True)
class TableLayout:
    table: str
    sheet_name: str
    fields: Tuple[str, ...]
    headers: Tuple[str, ...]

    @property
    def width(self) -> int:
        return len(self.fields) + 3


# (field, display header) pairs, in column order.
_CCTV_COLUMNS = (
    ("site_id_display", "Site ID"),
    ("site_name", "Site Name"),
    ("regional", "Regional"),
    ("branch", "Branch"),
    ("merk_cctv", "Merk CCTV"),
    ("model", "Model"),
    ("install_date", "Install Date"),
    ("status", "Status"),
    ("tenant_available", "Tenant Available"),
    ("cctv_category", "Category"),
    ("remarks", "Remarks"),
)

_PIC_COLUMNS = (
    ("nama_pic", "Nama PIC"),
    ("jabatan", "Jabatan"),
    ("nik_karyawan", "NIK Karyawan"),
    ("nik_ktp", "NIK KTP"),
    ("npwp", "NPWP"),
    ("nama_penerima_penghasilan", "Nama Penerima Penghasilan"),
    ("alamat", "Alamat"),
    ("status", "Status"),
    ("regional", "Regional"),
    ("nama_bank", "Nama Bank"),
    ("nama_rekening", "Nama Rekening"),
    ("no_rekening", "No Rekening"),
    ("area", "Area"),
    ("tgl_join", "Tgl Join"),
    ("validasi", "Validasi"),
    ("tgl_berakhir", "Tgl Berakhir"),
    ("remark", "Remark"),
)

_WORK_TRACKER_COLUMNS = (
    ("site_id_1", "Site ID 1"),
    ("site_id_2", "Site ID 2"),
    ("site_name", "Site Name"),
    ("regional", "Regional"),
    ("customer", "Customer"),
    ("po_number", "PO Number"),
    ("tt_number", "TT Number"),
    ("suspected", "Suspected"),
    ("main_addwork", "Main Addwork"),
    ("status_pekerjaan", "Status Pekerjaan"),
    ("status_bast", "Status BAST"),
    ("bast_submit_date", "Submit Date"),
    ("bast_approve_date", "Approve Date"),
    ("aging_days", "Aging Days"),
    ("remark", "Remark"),
)

_CAR_COLUMNS = (
    ("nomor_polisi", "Nomor Polisi"),
    ("owner", "Owner"),
    ("project", "Project"),
    ("province", "Province"),
    ("area", "Area"),
    ("kabupaten", "Kabupaten"),
    ("model", "Model"),
    ("brand", "Brand"),
    ("year_build", "Year"),
    ("masa_berlaku_stnk", "STNK Exp"),
    ("masa_berlaku_pajak", "Pajak Exp"),
    ("masa_berlaku_kir", "KIR Exp"),
    ("condition", "Condition"),
    ("status_mobil", "Status Mobil"),
    ("priority", "Priority"),
    ("plan_next_service", "Plan Next Service"),
    ("service_info", "Service Info"),
    ("date_service", "Date Service"),
    ("nominal_service", "Nominal Service"),
    ("remark", "Remark"),
    ("pic_name", "PIC Name"),
)


def _layout(table: str, sheet_name: str, columns: Sequence[Tuple[str, str]]) -> TableLayout:
    return TableLayout(
        table=table,
        sheet_name=sheet_name,
        fields=tuple(name for name, _ in columns),
        headers=(SEQUENCE_COLUMN, KEY_COLUMN) + tuple(header for _, header in columns) + (TIMESTAMP_COLUMN,),
    )


TABLE_LAYOUTS: Dict[str, TableLayout] = {
    "cctv_data": _layout("cctv_data", "CCTV Data", _CCTV_COLUMNS),
    "pic_data": _layout("pic_data", "PIC Data", _PIC_COLUMNS),
    "work_trackers": _layout("work_trackers", "Work Tracker", _WORK_TRACKER_COLUMNS),
    "car_data": _layout("car_data", "Car Data", _CAR_COLUMNS),
}


def supported_tables() -> List[str]:
    return list(TABLE_LAYOUTS.keys())


def layout_for(table: str) -> TableLayout:
    """Return the layout for ``table``.

    Raises:
        UnsupportedTableError: if the table has no layout.
    """
    layout = TABLE_LAYOUTS.get(table)
    if layout is None:
        raise UnsupportedTableError(f"Unsupported table: {table}")
    return layout


def header_row(table: str) -> List[str]:
    return list(layout_for(table).headers)


def sync_timestamp(moment: Optional[datetime] = None) -> str:
    """Return an ISO-8601 UTC timestamp with millisecond precision."""

    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _render_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def map_record(
    table: str,
    key: str,
    data: Optional[Mapping[str, Any]],
    *,
    synced_at: Optional[datetime] = None,
) -> List[str]:
    """Translate a primary-store record into the ordered cells of its sheet row.

    The first cell is left blank for the sequence number, which is assigned
    when the row is written.
    """
    layout = layout_for(table)
    data = data or {}
    cells = ["", key or ""]
    cells.extend(_render_cell(data.get(field)) for field in layout.fields)
    cells.append(sync_timestamp(synced_at))
    return cells


def unmap_row(table: str, cells: Sequence[Any]) -> Dict[str, Any]:
    """Read a sheet row back into a record dict.

    Short rows (Sheets omits trailing empty cells) are padded with ``""``.
    """
    layout = layout_for(table)
    padded = [("" if cell is None else str(cell)) for cell in cells]
    padded.extend([""] * (layout.width - len(padded)))

    record: Dict[str, Any] = {
        "sequence": padded[0],
        "id": padded[1],
        "synced_at": padded[layout.width - 1],
    }
    for offset, field in enumerate(layout.fields, start=2):
        record[field] = padded[offset]
    return record


__all__ = [
    "KEY_COLUMN",
    "SEQUENCE_COLUMN",
    "TABLE_LAYOUTS",
    "TIMESTAMP_COLUMN",
    "TableLayout",
    "header_row",
    "layout_for",
    "map_record",
    "supported_tables",
    "sync_timestamp",
    "unmap_row",
]
