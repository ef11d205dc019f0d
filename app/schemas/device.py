from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TEXT_FIELDS = ("name", "ip", "department", "model", "type", "status", "notes", "factory")


class DeviceBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    ip: str = Field(min_length=1, max_length=255)
    department: str = Field(min_length=1, max_length=255)
    model: str = Field(min_length=1, max_length=255)
    year: int = Field(ge=1, le=9999)
    type: str = Field(min_length=1, max_length=255)
    status: str = Field(min_length=1, max_length=255)
    notes: Optional[str] = None
    factory: str = Field(min_length=1, max_length=255)

    @field_validator("notes")
    @classmethod
    def blank_notes_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class DateParts(BaseModel):
    """Transient month/day used only by the future-date check.

    ``month`` is a zero-based month index (0 = January).
    """

    month: Optional[int] = Field(default=None, ge=0, le=11)
    day: Optional[int] = Field(default=None, ge=0, le=31)


class DeviceCreate(DeviceBase, DateParts):
    def record_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"month", "day"})


class DeviceUpdate(DateParts):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    ip: Optional[str] = Field(default=None, min_length=1, max_length=255)
    department: Optional[str] = Field(default=None, min_length=1, max_length=255)
    model: Optional[str] = Field(default=None, min_length=1, max_length=255)
    year: Optional[int] = Field(default=None, ge=1, le=9999)
    type: Optional[str] = Field(default=None, min_length=1, max_length=255)
    status: Optional[str] = Field(default=None, min_length=1, max_length=255)
    notes: Optional[str] = None
    factory: Optional[str] = Field(default=None, min_length=1, max_length=255)

    def record_fields(self) -> dict[str, Any]:
        """Fields the caller actually sent, minus the transient date parts."""

        data = self.model_dump(exclude_unset=True, exclude={"month", "day"})
        # Required columns cannot be cleared; an explicit null for them is ignored.
        cleaned = {key: value for key, value in data.items() if value is not None or key == "notes"}
        if "notes" in cleaned and not cleaned["notes"]:
            cleaned["notes"] = None
        return cleaned


class DeviceImportRow(DeviceBase):
    """A spreadsheet row; cell values arrive as whatever type the sheet stored."""

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def cell_to_text(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, bool):
            return str(value)
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float, datetime)):
            return str(value)
        return value

    @field_validator("year", mode="before")
    @classmethod
    def cell_to_year(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.year
        if isinstance(value, str):
            return value.strip()
        return value

    def record_fields(self) -> dict[str, Any]:
        return self.model_dump()


class DeviceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    name: str
    ip: str
    department: str
    model: str
    year: int
    type: str
    status: str
    notes: Optional[str] = None
    factory: str
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class DevicePage(BaseModel):
    total: int
    pages: int
    current_page: int = Field(serialization_alias="currentPage")
    devices: list[DeviceOut]


class TypeFactoryStat(BaseModel):
    factory: str
    type: str
    count: int
    newest: int
    oldest: int


class FactoryStat(BaseModel):
    factory: str
    count: int


class DeviceStats(BaseModel):
    by_type: list[TypeFactoryStat] = Field(default_factory=list, serialization_alias="byType")
    by_factory: list[FactoryStat] = Field(default_factory=list, serialization_alias="byFactory")


class MessageOut(BaseModel):
    message: str
