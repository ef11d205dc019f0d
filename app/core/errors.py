from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationFailure:
    """One reason a write was refused.

    ``kind`` is ``"conflict"``, ``"duplicate"``, ``"existing"`` or
    ``"invalid_date"``; ``values`` lists the offending values for batch checks.
    """

    kind: str
    message: str
    field: str | None = None
    values: tuple[str, ...] = ()


def join_failures(failures: Sequence[ValidationFailure]) -> str:
    return " and ".join(failure.message for failure in failures)


class DeviceError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DeviceError):
    status_code = status.HTTP_404_NOT_FOUND


class BadInputError(DeviceError):
    pass


class StoreFailureError(DeviceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class FailureListError(DeviceError):
    """Base for errors that carry a structured list of failures."""

    def __init__(self, failures: Sequence[ValidationFailure]) -> None:
        self.failures = list(failures)
        super().__init__(join_failures(self.failures))


class ConflictError(FailureListError):
    pass


class InvalidDateError(FailureListError):
    pass


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__({"error": message}, status_code=status_code, headers=headers)


async def device_error_handler(request: Request, exc: DeviceError):
    return ErrorEnvelope(status_code=exc.status_code, message=exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    return ErrorEnvelope(status_code=exc.status_code, message=message, headers=getattr(exc, "headers", None))


def _describe_validation_error(error: dict[str, Any]) -> str:
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    where = ".".join(location)
    return f"{where}: {error.get('msg')}" if where else str(error.get("msg"))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    message = "; ".join(_describe_validation_error(error) for error in exc.errors())
    return ErrorEnvelope(status_code=status.HTTP_400_BAD_REQUEST, message=message or "Invalid request")


async def integrity_error_handler(request: Request, exc: IntegrityError):
    # The ip unique index can still reject a row that raced past the
    # application-level conflict check.
    LOGGER.warning("store rejected write: %s", exc.orig)
    return ErrorEnvelope(status_code=status.HTTP_400_BAD_REQUEST, message=str(exc.orig))


async def store_error_handler(request: Request, exc: SQLAlchemyError):
    LOGGER.exception("store failure")
    return await device_error_handler(request, StoreFailureError(str(exc)))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DeviceError, device_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
