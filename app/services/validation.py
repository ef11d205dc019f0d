"""Write-time checks for devices: name/IP conflicts and future dates.

Each public ``validate_*`` function returns quietly when the write may go
ahead and raises a ``DeviceError`` subclass otherwise. Checks run in a fixed
order and the first failing step wins.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import ConflictError, InvalidDateError, NotFoundError, ValidationFailure
from ..crud.devices import find_name_or_ip, find_names_or_ips, get_device
from ..models.device import Device
from ..schemas.device import DeviceCreate, DeviceImportRow, DeviceUpdate

LOGGER = logging.getLogger(__name__)


def today_local() -> date:
    return datetime.now(ZoneInfo(settings.TZ)).date()


def format_max_date(today: date) -> str:
    return f"{today.month}/{today.day}/{today.year}"


def implied_date(year: int, month: int | None = None, day: int | None = None) -> date:
    """Build the date a device claims, rolling month/day overflow forward.

    ``month`` is zero-based and defaults to January; ``day`` 0 or missing means 1.
    """

    month = month or 0
    day = day or 1
    start = date(year + month // 12, month % 12 + 1, 1)
    return start + timedelta(days=day - 1)


def is_future(year: int, month: int | None = None, day: int | None = None, *, today: date | None = None) -> bool:
    today = today or today_local()
    try:
        return implied_date(year, month, day) > today
    except (ValueError, OverflowError):
        return True


def _future_date_failure(message: str, today: date) -> ValidationFailure:
    return ValidationFailure(
        kind="invalid_date",
        field="year",
        message=f"{message} (max {format_max_date(today)})",
    )


def _field_conflicts(existing: Device, candidate: dict[str, str | None], prefix: str) -> list[ValidationFailure]:
    failures = []
    if candidate.get("name") is not None and existing.name == candidate["name"]:
        failures.append(
            ValidationFailure(kind="conflict", field="name", message=f"{prefix} with this name already exists")
        )
    if candidate.get("ip") is not None and existing.ip == candidate["ip"]:
        failures.append(
            ValidationFailure(kind="conflict", field="ip", message=f"{prefix} with this IP already exists")
        )
    return failures


def validate_new(db: Session, candidate: DeviceCreate, *, today: date | None = None) -> None:
    """Refuse a create whose name or ip is taken, or whose date is in the future."""

    existing = find_name_or_ip(db, name=candidate.name, ip=candidate.ip)
    if existing is not None:
        failures = _field_conflicts(existing, {"name": candidate.name, "ip": candidate.ip}, "Device")
        LOGGER.info("device create rejected: %s", [f.field for f in failures])
        raise ConflictError(failures)

    today = today or today_local()
    if is_future(candidate.year, candidate.month, candidate.day, today=today):
        raise InvalidDateError([_future_date_failure("Date cannot be in the future", today)])


def validate_update(
    db: Session,
    device_id: int,
    candidate: DeviceUpdate,
    *,
    today: date | None = None,
) -> Device:
    """Check an update against the stored device and return that device.

    Only name/ip values that differ from the stored ones are looked up, and
    the device itself is excluded from the lookup.
    """

    device = get_device(db, device_id)
    if device is None:
        raise NotFoundError("Device not found")

    changed = {
        "name": candidate.name if candidate.name is not None and candidate.name != device.name else None,
        "ip": candidate.ip if candidate.ip is not None and candidate.ip != device.ip else None,
    }
    if changed["name"] is not None or changed["ip"] is not None:
        existing = find_name_or_ip(db, name=changed["name"], ip=changed["ip"], exclude_id=device.id)
        if existing is not None:
            failures = _field_conflicts(existing, changed, "Another device")
            LOGGER.info("device %s update rejected: %s", device.id, [f.field for f in failures])
            raise ConflictError(failures)

    today = today or today_local()
    year = candidate.year if candidate.year is not None else device.year
    if is_future(year, candidate.month, candidate.day, today=today):
        raise InvalidDateError([_future_date_failure("Date cannot be in the future", today)])
    return device


def repeated_values(values: Iterable[str]) -> list[str]:
    """Distinct values that also occur at an earlier position, in first-repeat order."""

    seen: set[str] = set()
    repeated: list[str] = []
    for value in values:
        if value in seen and value not in repeated:
            repeated.append(value)
        seen.add(value)
    return repeated


def _listing(kind: str, field: str, label: str, values: Sequence[str]) -> ValidationFailure:
    return ValidationFailure(
        kind=kind,
        field=field,
        message=f"{label}: {', '.join(values)}",
        values=tuple(values),
    )


def validate_batch(db: Session, rows: Sequence[DeviceImportRow], *, today: date | None = None) -> None:
    """Check a whole import batch before it is inserted.

    1. duplicates inside the batch (no store access),
    2. future dates (one shared message, rows are not enumerated),
    3. collisions with stored devices, found with a single query.
    """

    names = [row.name for row in rows]
    ips = [row.ip for row in rows]

    failures: list[ValidationFailure] = []
    duplicate_names = repeated_values(names)
    duplicate_ips = repeated_values(ips)
    if duplicate_names:
        failures.append(_listing("duplicate", "name", "Duplicate names", duplicate_names))
    if duplicate_ips:
        failures.append(_listing("duplicate", "ip", "Duplicate IPs", duplicate_ips))
    if failures:
        LOGGER.info("import rejected: %d in-file duplicates", len(duplicate_names) + len(duplicate_ips))
        raise ConflictError(failures)

    today = today or today_local()
    if any(is_future(row.year, today=today) for row in rows):
        raise InvalidDateError([_future_date_failure("Dates cannot be in the future", today)])

    existing = find_names_or_ips(db, names, ips)
    if existing:
        name_set = set(names)
        ip_set = set(ips)
        existing_names = list(dict.fromkeys(d.name for d in existing if d.name in name_set))
        existing_ips = list(dict.fromkeys(d.ip for d in existing if d.ip in ip_set))
        if existing_names:
            failures.append(_listing("existing", "name", "Existing names", existing_names))
        if existing_ips:
            failures.append(_listing("existing", "ip", "Existing IPs", existing_ips))
        LOGGER.info("import rejected: %d stored devices collide", len(existing))
        raise ConflictError(failures)
