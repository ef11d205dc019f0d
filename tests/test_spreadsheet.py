"""xlsx mapping for device export and import."""

import io

import pytest
from openpyxl import load_workbook

from app.core.errors import BadInputError
from app.crud.devices import bulk_create_devices, create_device, list_all_devices
from app.services.spreadsheet import HEADERS, export_workbook, read_rows
from app.services.validation import validate_batch


def _sheet_values(content):
    wb = load_workbook(io.BytesIO(content))
    ws = wb.worksheets[0]
    return ws.title, [list(row) for row in ws.iter_rows(values_only=True)]


def test_export_writes_header_then_rows_in_id_order(db_session, payload):
    create_device(db_session, payload(name="first", ip="10.0.0.1", notes="rack 4"))
    create_device(db_session, payload(name="second", ip="10.0.0.2"))

    title, rows = _sheet_values(export_workbook(list_all_devices(db_session)))

    assert title == "Devices"
    assert rows[0] == ["Name", "IP", "Department", "Model", "Year", "Type", "Status", "Notes", "Factory"]
    assert rows[1] == ["first", "10.0.0.1", "IT", "Dell 3020", 2023, "Desktop", "In-use", "rack 4", "Plant-A"]
    assert rows[2][0] == "second"
    assert rows[2][7] is None
    assert len(rows) == 3


def test_export_empty_store_has_only_header():
    _, rows = _sheet_values(export_workbook([]))
    assert rows == [HEADERS]


def test_read_rows_maps_columns_by_position(workbook):
    content = workbook(
        [["PC-01", "10.0.0.1", "IT", "Dell 3020", 2023, "Desktop", "In-use", "spare", "Plant-A"]],
        header=["whatever", "the", "header", "says", "is", "ignored", "by", "the", "reader"],
    )

    rows = read_rows(content)

    assert len(rows) == 1
    assert rows[0].record_fields() == {
        "name": "PC-01",
        "ip": "10.0.0.1",
        "department": "IT",
        "model": "Dell 3020",
        "year": 2023,
        "type": "Desktop",
        "status": "In-use",
        "notes": "spare",
        "factory": "Plant-A",
    }


def test_read_rows_skips_empty_rows_and_coerces_cells(workbook):
    content = workbook(
        [
            [1001, "10.0.0.1", "IT", 3020, "2022", "Desktop", "In-use", None, "Plant-A"],
            [None] * 9,
            ["PC-02", "10.0.0.2", "IT", "Dell", 2021.0, "Desktop", "In-use", "  ", "Plant-B"],
        ]
    )

    rows = read_rows(content)

    assert [row.name for row in rows] == ["1001", "PC-02"]
    assert rows[0].model == "3020"
    assert rows[0].year == 2022
    assert rows[1].year == 2021
    assert rows[1].notes is None


def test_read_rows_header_only_is_empty(workbook):
    assert read_rows(workbook([])) == []


def test_read_rows_names_the_bad_row(workbook):
    content = workbook(
        [
            ["PC-01", "10.0.0.1", "IT", "Dell", 2023, "Desktop", "In-use", None, "Plant-A"],
            ["PC-02", None, "IT", "Dell", "not a year", "Desktop", "In-use", None, "Plant-A"],
        ]
    )

    with pytest.raises(BadInputError) as excinfo:
        read_rows(content)

    assert excinfo.value.message.startswith("Row 3:")
    assert "ip" in excinfo.value.message
    assert "year" in excinfo.value.message


def test_read_rows_rejects_non_workbook():
    with pytest.raises(BadInputError):
        read_rows(b"name,ip\nPC-01,10.0.0.1\n")


def test_export_then_import_into_empty_store_round_trips(database, payload):
    fields = ("name", "ip", "department", "model", "year", "type", "status", "notes", "factory")
    with database.session() as source:
        create_device(source, payload(name="a", ip="10.0.0.1", notes="n1", factory="Plant-A"))
        create_device(source, payload(name="b", ip="10.0.0.2", type="Printer", factory="Plant-B", year=2019))
        originals = [{f: getattr(d, f) for f in fields} for d in list_all_devices(source)]
        content = export_workbook(list_all_devices(source))

    from app.db.session import Database

    target = Database("sqlite://")
    target.create_all()
    try:
        with target.session() as db:
            rows = read_rows(content)
            validate_batch(db, rows)
            bulk_create_devices(db, [row.record_fields() for row in rows])
            imported = [{f: getattr(d, f) for f in fields} for d in list_all_devices(db)]
    finally:
        target.dispose()

    assert imported == originals
