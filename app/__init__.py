"""Application factory for the device inventory service.

``create_app`` wires configuration, the database, middleware, routers and
error handling together. The database object is created here (or handed in by
tests) and lives exactly as long as the application's lifespan.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .core.config import Settings, get_settings
from .core.errors import register_exception_handlers
from .db.migrate import run_migrations
from .db.session import Database
from .middlewares import RequestIdMiddleware

# Importing the models registers them with the metadata so create_all sees them.
from .models import device as _device  # noqa: F401

LOGGER = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    instrument: bool = False,
) -> FastAPI:
    settings = settings or get_settings()
    database = database or Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.create_all()
        run_migrations(database.engine)
        LOGGER.info("database connected", extra={"extra_data": {"dialect": database.engine.dialect.name}})
        try:
            yield
        finally:
            database.dispose()
            LOGGER.info("database disposed")

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.db = database
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)

    @app.get("/health", include_in_schema=False)
    def health() -> dict[str, bool]:
        return {"ok": True}

    if instrument:
        from prometheus_fastapi_instrumentator import Instrumentator

        Instrumentator().instrument(app).expose(app, include_in_schema=False)

    from .routers import api_devices as api_devices_router

    app.include_router(api_devices_router.router)

    app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")

    # Registered last: its catch-all path would shadow anything after it.
    from .routers import ui as ui_router

    app.include_router(ui_router.router)
    return app


__all__ = ["create_app"]
