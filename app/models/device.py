from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from ..db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Device(Base):
    """One managed hardware unit.

    ``ip`` is unique at the storage layer; ``name`` uniqueness is only checked
    by the validation service before writes.
    """

    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    ip = Column(String(255), nullable=False, unique=True)
    department = Column(String(255), nullable=False)
    model = Column(String(255), nullable=False)
    year = Column(Integer, nullable=False)
    type = Column(String(255), nullable=False)
    status = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    factory = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Device id={self.id} name={self.name!r} ip={self.ip!r}>"
