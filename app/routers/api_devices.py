from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import BadInputError, NotFoundError
from ..crud.devices import (
    bulk_create_devices,
    create_device,
    delete_device,
    get_device,
    list_all_devices,
    list_devices,
    update_device,
)
from ..db.session import get_db
from ..schemas.device import (
    DeviceCreate,
    DeviceOut,
    DevicePage,
    DeviceStats,
    DeviceUpdate,
    FactoryStat,
    MessageOut,
    TypeFactoryStat,
)
from ..services.spreadsheet import EXPORT_FILENAME, XLSX_MEDIA_TYPE, export_workbook, read_rows
from ..services.stats import stats_by_factory, stats_by_type_and_factory
from ..services.validation import validate_batch, validate_new, validate_update

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api/devices", tags=["devices"])


@router.get("", response_model=DevicePage)
def api_list(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = None,
    device_type: Optional[str] = Query(None, alias="type"),
    model: Optional[str] = None,
    factory: Optional[str] = None,
    db: Session = Depends(get_db),
):
    result = list_devices(
        db,
        page=page,
        page_size=limit,
        search=search,
        device_type=device_type,
        model=model,
        factory=factory,
    )
    return DevicePage(
        total=result["total"],
        pages=result["pages"],
        current_page=result["current_page"],
        devices=[DeviceOut.model_validate(device) for device in result["devices"]],
    )


@router.get("/export")
def api_export(db: Session = Depends(get_db)):
    content = export_workbook(list_all_devices(db))
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
    )


@router.get("/stats", response_model=DeviceStats)
def api_stats(db: Session = Depends(get_db)):
    return DeviceStats(
        by_type=[TypeFactoryStat(**row) for row in stats_by_type_and_factory(db)],
        by_factory=[FactoryStat(**row) for row in stats_by_factory(db)],
    )


@router.post("/import", response_model=MessageOut)
def api_import(file: Optional[UploadFile] = File(default=None), db: Session = Depends(get_db)):
    if file is None:
        raise BadInputError("No file uploaded")
    rows = read_rows(file.file.read())
    validate_batch(db, rows)
    count = bulk_create_devices(db, [row.record_fields() for row in rows])
    LOGGER.info("imported %d devices from %s", count, file.filename)
    return MessageOut(message=f"{count} devices imported successfully")


@router.post("", response_model=DeviceOut, status_code=201)
def api_create(payload: DeviceCreate, db: Session = Depends(get_db)):
    validate_new(db, payload)
    return create_device(db, payload.record_fields())


@router.put("/{device_id}", response_model=DeviceOut)
def api_update(device_id: int, payload: DeviceUpdate, db: Session = Depends(get_db)):
    device = validate_update(db, device_id, payload)
    data = payload.record_fields()
    if not data:
        return device
    return update_device(db, device, data)


@router.delete("/{device_id}", response_model=MessageOut)
def api_delete(device_id: int, db: Session = Depends(get_db)):
    device = get_device(db, device_id)
    if device is None:
        raise NotFoundError("Device not found")
    delete_device(db, device)
    LOGGER.info("deleted device %s", device_id)
    return MessageOut(message="Device deleted successfully")
