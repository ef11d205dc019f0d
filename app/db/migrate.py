"""Small idempotent schema upgrades for SQLite databases.

``Base.metadata.create_all`` builds fresh tables; the helpers here only ADD
what an older ``devices`` table is missing. Nothing is ever dropped.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine

LOGGER = logging.getLogger(__name__)

# Columns added after the first release, with the DDL used to backfill them.
DEVICE_COLUMNS: dict[str, str] = {
    "notes": "TEXT",
    "factory": "VARCHAR(255) NOT NULL DEFAULT ''",
    "created_at": "DATETIME",
    "updated_at": "DATETIME",
}


def _table_columns(engine: Engine, table: str) -> list[dict[str, object]]:
    """Fetch SQLite's description of a table so we know what columns exist."""

    with engine.connect() as conn:
        return conn.execute(text(f"PRAGMA table_info({table})")).mappings().all()


def _column_names(engine: Engine, table: str) -> set[str]:
    return {record["name"] for record in _table_columns(engine, table)}


def _add_column_sqlite(engine: Engine, table: str, col_def: str) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def _has_unique_index(engine: Engine, table: str, column: str) -> bool:
    """True when some UNIQUE index or constraint covers exactly ``column``."""

    with engine.connect() as conn:
        indexes = conn.execute(text(f"PRAGMA index_list({table})")).mappings().all()
        for index in indexes:
            if not index["unique"]:
                continue
            covered = conn.execute(text(f"PRAGMA index_info(\"{index['name']}\")")).mappings().all()
            if [info["name"] for info in covered] == [column]:
                return True
    return False


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str], unique: bool = False) -> None:
    cols_sql = ", ".join(cols)
    unique_sql = "UNIQUE " if unique else ""
    with engine.begin() as conn:
        conn.execute(text(f"CREATE {unique_sql}INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def run_migrations(engine: Engine) -> None:
    """Bring an existing SQLite ``devices`` table up to what the code expects."""

    if engine.dialect.name != "sqlite":
        return

    columns = _column_names(engine, "devices")
    if not columns:
        # Table absent -> create_all builds the current schema.
        return

    for name, ddl in DEVICE_COLUMNS.items():
        if name not in columns:
            LOGGER.info("adding devices.%s", name)
            _add_column_sqlite(engine, "devices", f"{name} {ddl}")

    with engine.begin() as conn:
        conn.execute(text("UPDATE devices SET created_at = COALESCE(created_at, CURRENT_TIMESTAMP)"))
        conn.execute(text("UPDATE devices SET updated_at = COALESCE(updated_at, created_at)"))

    if not _has_unique_index(engine, "devices", "ip"):
        _create_index_if_not_exists(engine, "devices", "ix_devices_ip_unique", ["ip"], unique=True)
    _create_index_if_not_exists(engine, "devices", "ix_devices_name", ["name"])
