"""Map devices to and from the fixed nine-column ``.xlsx`` layout.

Column position is authoritative on import; the header row is skipped
without being checked.
"""

from __future__ import annotations

import io
import logging
import zipfile
from typing import Any, Iterable

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import ValidationError

from ..core.errors import BadInputError
from ..models.device import Device
from ..schemas.device import DeviceImportRow

LOGGER = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_FILENAME = "devices.xlsx"
SHEET_TITLE = "Devices"

COLUMNS: tuple[tuple[str, str], ...] = (
    ("Name", "name"),
    ("IP", "ip"),
    ("Department", "department"),
    ("Model", "model"),
    ("Year", "year"),
    ("Type", "type"),
    ("Status", "status"),
    ("Notes", "notes"),
    ("Factory", "factory"),
)
HEADERS = [header for header, _ in COLUMNS]


def export_workbook(devices: Iterable[Device]) -> bytes:
    """Render devices as an xlsx document: header row, then one row per device."""

    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    ws.append(HEADERS)
    count = 0
    for device in devices:
        ws.append([getattr(device, attr) for _, attr in COLUMNS])
        count += 1
    buf = io.BytesIO()
    wb.save(buf)
    LOGGER.info("exported %d devices", count)
    return buf.getvalue()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        where = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{where}: {error.get('msg')}" if where else str(error.get("msg")))
    return "; ".join(parts)


def read_rows(content: bytes) -> list[DeviceImportRow]:
    """Parse the first worksheet of an uploaded workbook into import rows.

    Fully empty rows are skipped. A row that does not fit the device schema
    aborts the whole import with a message naming the sheet row.
    """

    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
        raise BadInputError(f"Unable to read spreadsheet: {exc}") from exc

    rows: list[DeviceImportRow] = []
    try:
        if not wb.worksheets:
            return rows
        ws = wb.worksheets[0]
        for row_number, values in enumerate(
            ws.iter_rows(min_row=2, max_col=len(COLUMNS), values_only=True), start=2
        ):
            cells = list(values) + [None] * (len(COLUMNS) - len(values))
            if all(_is_blank(cell) for cell in cells):
                continue
            record = {attr: cell for (_, attr), cell in zip(COLUMNS, cells)}
            try:
                rows.append(DeviceImportRow.model_validate(record))
            except ValidationError as exc:
                raise BadInputError(f"Row {row_number}: {_describe(exc)}") from exc
    finally:
        wb.close()
    return rows
