"""Tests for table layouts and record mapping."""

from datetime import datetime, timezone

import pytest

from sheet_mirror.errors import UnsupportedTableError, ValidationError
from sheet_mirror.sync.layouts import (
    TABLE_LAYOUTS,
    header_row,
    layout_for,
    map_record,
    supported_tables,
    sync_timestamp,
    unmap_row,
)

FIXED_MOMENT = datetime(2024, 3, 5, 7, 8, 9, 123000, tzinfo=timezone.utc)


class TestLayouts:
    def test_supported_tables(self):
        assert supported_tables() == ["cctv_data", "pic_data", "work_trackers", "car_data"]

    def test_sheet_names(self):
        assert {t: layout.sheet_name for t, layout in TABLE_LAYOUTS.items()} == {
            "cctv_data": "CCTV Data",
            "pic_data": "PIC Data",
            "work_trackers": "Work Tracker",
            "car_data": "Car Data",
        }

    @pytest.mark.parametrize("table", list(TABLE_LAYOUTS))
    def test_headers_frame_fields(self, table):
        layout = layout_for(table)

        assert len(layout.headers) == layout.width
        assert layout.headers[:2] == ("No", "UUID")
        assert layout.headers[-1] == "Updated At"

    def test_car_data_column_order(self):
        assert layout_for("car_data").fields == (
            "nomor_polisi", "owner", "project", "province", "area", "kabupaten",
            "model", "brand", "year_build", "masa_berlaku_stnk", "masa_berlaku_pajak",
            "masa_berlaku_kir", "condition", "status_mobil", "priority",
            "plan_next_service", "service_info", "date_service", "nominal_service",
            "remark", "pic_name",
        )

    def test_work_tracker_headers(self):
        assert header_row("work_trackers")[2:6] == ["Site ID 1", "Site ID 2", "Site Name", "Regional"]

    def test_unknown_table(self):
        with pytest.raises(UnsupportedTableError, match="Unsupported table: invoices"):
            layout_for("invoices")

    def test_unsupported_table_is_validation_error(self):
        with pytest.raises(ValidationError):
            layout_for("invoices")


class TestMapRecord:
    """Tests for map_record()."""

    def test_cctv_row(self):
        data = {
            "site_id_display": "JKT-001",
            "site_name": "Jakarta Pusat",
            "regional": "R1",
            "branch": "Central",
            "merk_cctv": "Hikvision",
            "model": "DS-2CD",
            "install_date": "2023-11-02",
            "status": "Active",
            "tenant_available": "Yes",
            "cctv_category": "Outdoor",
            "remarks": "ok",
        }

        cells = map_record("cctv_data", "uuid-1", data, synced_at=FIXED_MOMENT)

        assert cells == [
            "", "uuid-1", "JKT-001", "Jakarta Pusat", "R1", "Central", "Hikvision",
            "DS-2CD", "2023-11-02", "Active", "Yes", "Outdoor", "ok",
            "2024-03-05T07:08:09.123Z",
        ]

    def test_missing_and_none_fields_are_blank(self):
        cells = map_record("pic_data", "p-1", {"nama_pic": "Budi", "jabatan": None})

        layout = layout_for("pic_data")
        assert len(cells) == layout.width
        assert cells[2] == "Budi"
        assert cells[3:-1] == [""] * (len(layout.fields) - 1)

    def test_zero_and_bool_values(self):
        cells = map_record(
            "work_trackers",
            "w-1",
            {"aging_days": 0, "suspected": False},
            synced_at=FIXED_MOMENT,
        )

        fields = layout_for("work_trackers").fields
        assert cells[2 + fields.index("aging_days")] == "0"
        assert cells[2 + fields.index("suspected")] == "FALSE"

    def test_unknown_table(self):
        with pytest.raises(UnsupportedTableError):
            map_record("invoices", "k", {"a": 1})

    def test_timestamp_is_iso8601_utc(self):
        text = sync_timestamp()

        assert text.endswith("Z")
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        assert parsed.tzinfo is not None

    def test_naive_timestamp_treated_as_utc(self):
        assert sync_timestamp(datetime(2024, 1, 1, 0, 0, 0)) == "2024-01-01T00:00:00.000Z"


class TestUnmapRow:
    def test_round_trip_reproduces_fields(self):
        data = {"nomor_polisi": "B 1234 XYZ", "owner": "PT Maju", "year_build": 2019, "remark": "new tyres"}

        cells = map_record("car_data", "car-9", data, synced_at=FIXED_MOMENT)
        cells[0] = "12"
        record = unmap_row("car_data", cells)

        assert record["sequence"] == "12"
        assert record["id"] == "car-9"
        assert record["synced_at"] == "2024-03-05T07:08:09.123Z"
        for field, value in data.items():
            assert record[field] == str(value)

    def test_short_row_is_padded(self):
        record = unmap_row("cctv_data", ["3", "uuid-3", "JKT-003"])

        assert record["site_id_display"] == "JKT-003"
        assert record["remarks"] == ""
        assert record["synced_at"] == ""
