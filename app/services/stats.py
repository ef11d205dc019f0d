"""Aggregate counts over the whole device table.

Both reports are recomputed from scratch on every call.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models.device import Device


def stats_by_type_and_factory(db: Session) -> list[dict[str, object]]:
    """One row per (factory, type) pair with its count and newest/oldest year."""

    stmt = (
        select(
            Device.factory,
            Device.type,
            func.count(Device.id).label("count"),
            func.max(Device.year).label("newest"),
            func.min(Device.year).label("oldest"),
        )
        .group_by(Device.factory, Device.type)
        .order_by(Device.factory, Device.type)
    )
    return [
        {
            "factory": row["factory"],
            "type": row["type"],
            "count": int(row["count"]),
            "newest": row["newest"],
            "oldest": row["oldest"],
        }
        for row in db.execute(stmt).mappings()
    ]


def stats_by_factory(db: Session) -> list[dict[str, object]]:
    stmt = (
        select(Device.factory, func.count(Device.id).label("count"))
        .group_by(Device.factory)
        .order_by(Device.factory)
    )
    return [{"factory": row["factory"], "count": int(row["count"])} for row in db.execute(stmt).mappings()]
