"""Command line entry point: ``python -m app <command>``.

Commands:
  serve          run the HTTP server with uvicorn
  init-db        create the devices table (and apply upgrades) if missing
  clear-devices  delete every device row

Exit codes:
  0 = success
  1 = handled error (e.g. clear-devices without --yes)
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from .core.config import settings
from .core.logging import configure_logging
from .crud.devices import clear_devices
from .db.migrate import run_migrations
from .db.session import Database

# Importing the models registers them with the metadata so create_all sees them.
from .models import device as _device  # noqa: F401

LOGGER = logging.getLogger("app.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="app", description="Device inventory service tools.")
    p.add_argument("--database-url", default=None,
                   help="Database URL (defaults to DATABASE_URL / the bundled SQLite file).")
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server.")
    serve.add_argument("--host", default=settings.HOST, help=f"Bind address (default: {settings.HOST})")
    serve.add_argument("--port", type=int, default=settings.PORT, help=f"Port (default: {settings.PORT})")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only).")

    sub.add_parser("init-db", help="Create the devices table if it does not exist.")

    clear = sub.add_parser("clear-devices", help="Delete every device record.")
    clear.add_argument("--yes", action="store_true", help="Confirm the deletion.")
    return p.parse_args(argv)


def init_db(database: Database) -> None:
    database.create_all()
    run_migrations(database.engine)
    LOGGER.info("devices table created or already exists")


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(settings.LOG_LEVEL)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("app.main:app", host=args.host, port=args.port, reload=args.reload)
        return 0

    database = Database(args.database_url or settings.database_url)
    try:
        if args.command == "init-db":
            init_db(database)
            return 0
        if args.command == "clear-devices":
            if not args.yes:
                print("Refusing to delete all devices without --yes", file=sys.stderr)
                return 1
            init_db(database)
            with database.session() as db:
                removed = clear_devices(db)
            LOGGER.info("deleted %d devices", removed)
            return 0
    finally:
        database.dispose()
    return 1
