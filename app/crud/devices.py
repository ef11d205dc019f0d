"""Record-store access for devices.

Pure persistence helpers: validation lives in ``app.services.validation`` and
callers decide when a write is allowed.
"""

from __future__ import annotations

import math
from typing import Any, Iterable

from sqlalchemy import delete, desc, func, or_, select
from sqlalchemy.orm import Session

from ..models.device import Device


def _device_filters(
    search: str | None,
    device_type: str | None,
    model: str | None,
    factory: str | None,
) -> list[Any]:
    clauses: list[Any] = []
    if search:
        clauses.append(
            or_(
                Device.name.contains(search, autoescape=True),
                Device.ip.contains(search, autoescape=True),
            )
        )
    if device_type:
        clauses.append(Device.type == device_type)
    if model:
        clauses.append(Device.model.contains(model, autoescape=True))
    if factory:
        clauses.append(Device.factory.contains(factory, autoescape=True))
    return clauses


def list_devices(
    db: Session,
    *,
    page: int = 1,
    page_size: int = 15,
    search: str | None = None,
    device_type: str | None = None,
    model: str | None = None,
    factory: str | None = None,
) -> dict[str, Any]:
    """Return one page of devices, newest first, plus the pre-pagination total."""

    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")

    clauses = _device_filters(search, device_type, model, factory)
    total = db.scalar(select(func.count()).select_from(Device).where(*clauses)) or 0
    stmt = (
        select(Device)
        .where(*clauses)
        .order_by(desc(Device.created_at), desc(Device.id))
        .limit(page_size)
        .offset((page - 1) * page_size)
    )
    devices = db.execute(stmt).scalars().all()
    return {
        "total": total,
        "pages": math.ceil(total / page_size),
        "current_page": page,
        "devices": devices,
    }


def list_all_devices(db: Session) -> list[Device]:
    """Every device in insertion (id) order, as used by the spreadsheet export."""

    return db.execute(select(Device).order_by(Device.id)).scalars().all()


def get_device(db: Session, device_id: int) -> Device | None:
    return db.get(Device, device_id)


def find_name_or_ip(
    db: Session,
    *,
    name: str | None,
    ip: str | None,
    exclude_id: int | None = None,
) -> Device | None:
    """First device whose name or ip equals the given values."""

    clauses = []
    if name is not None:
        clauses.append(Device.name == name)
    if ip is not None:
        clauses.append(Device.ip == ip)
    if not clauses:
        return None
    stmt = select(Device).where(or_(*clauses))
    if exclude_id is not None:
        stmt = stmt.where(Device.id != exclude_id)
    return db.execute(stmt.order_by(Device.id).limit(1)).scalars().first()


def find_names_or_ips(db: Session, names: Iterable[str], ips: Iterable[str]) -> list[Device]:
    """All devices whose name is in ``names`` or whose ip is in ``ips``."""

    names = list(names)
    ips = list(ips)
    if not names and not ips:
        return []
    stmt = select(Device).where(or_(Device.name.in_(names), Device.ip.in_(ips))).order_by(Device.id)
    return db.execute(stmt).scalars().all()


def create_device(db: Session, data: dict[str, Any]) -> Device:
    obj = Device(**data)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def bulk_create_devices(db: Session, rows: list[dict[str, Any]]) -> int:
    """Insert every row in one transaction; nothing is kept if any row fails."""

    if not rows:
        return 0
    try:
        db.add_all([Device(**row) for row in rows])
        db.commit()
    except Exception:
        db.rollback()
        raise
    return len(rows)


def update_device(db: Session, device: Device, data: dict[str, Any]) -> Device:
    """Apply the given fields in place; unknown keys are ignored."""

    for key, value in data.items():
        if not hasattr(device, key) or key in ("id", "created_at", "updated_at"):
            continue
        setattr(device, key, value)
    db.commit()
    db.refresh(device)
    return device


def delete_device(db: Session, device: Device) -> None:
    db.delete(device)
    db.commit()


def clear_devices(db: Session) -> int:
    """Remove every device row and return how many were deleted."""

    result = db.execute(delete(Device))
    db.commit()
    return result.rowcount or 0


def filter_options(db: Session) -> dict[str, list[str]]:
    """Distinct types and factories present in the store, for the UI filters."""

    types = db.execute(select(Device.type).distinct().order_by(Device.type)).scalars().all()
    factories = db.execute(select(Device.factory).distinct().order_by(Device.factory)).scalars().all()
    return {"types": list(types), "factories": list(factories)}


def last_updated_at(db: Session):
    return db.scalar(select(func.max(Device.updated_at)))
