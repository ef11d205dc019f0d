import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError

from app.db.migrate import run_migrations
from app.db.session import Database


def test_run_migrations_upgrades_legacy_table(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'legacy.db'}")
    try:
        with database.engine.begin() as conn:
            conn.execute(
                text(
                    """
                    CREATE TABLE devices (
                        id INTEGER PRIMARY KEY,
                        name VARCHAR(255) NOT NULL,
                        ip VARCHAR(255) NOT NULL,
                        department VARCHAR(255) NOT NULL,
                        model VARCHAR(255) NOT NULL,
                        year INTEGER NOT NULL,
                        type VARCHAR(255) NOT NULL,
                        status VARCHAR(255) NOT NULL
                    )
                    """
                )
            )
            conn.execute(
                text(
                    "INSERT INTO devices (name, ip, department, model, year, type, status) "
                    "VALUES ('PC-01', '10.0.0.1', 'IT', 'Dell', 2020, 'Desktop', 'In-use')"
                )
            )

        run_migrations(database.engine)
        run_migrations(database.engine)

        inspector = inspect(database.engine)
        columns = {column["name"] for column in inspector.get_columns("devices")}
        assert {"notes", "factory", "created_at", "updated_at"} <= columns
        indexes = {index["name"]: index for index in inspector.get_indexes("devices")}
        assert indexes["ix_devices_ip_unique"]["unique"]

        with database.engine.connect() as conn:
            created = conn.execute(text("SELECT created_at, updated_at FROM devices")).one()
        assert created[0] is not None
        assert created[1] == created[0]
    finally:
        database.dispose()


def test_run_migrations_without_table_is_noop():
    # Fresh databases are built by create_all; nothing to migrate.
    empty = Database("sqlite://")
    try:
        run_migrations(empty.engine)
        assert inspect(empty.engine).get_table_names() == []
    finally:
        empty.dispose()


def test_run_migrations_keeps_single_unique_ip_on_fresh_schema():
    database = Database("sqlite://")
    try:
        database.create_all()
        run_migrations(database.engine)

        index_names = {index["name"] for index in inspect(database.engine).get_indexes("devices")}
        assert "ix_devices_ip_unique" not in index_names
        assert "ix_devices_name" in index_names

        with database.engine.begin() as conn:
            conn.execute(
                text(
                    "INSERT INTO devices (name, ip, department, model, year, type, status, factory, created_at, updated_at) "
                    "VALUES ('PC-01', '10.0.0.1', 'IT', 'Dell', 2020, 'Desktop', 'In-use', 'A', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)"
                )
            )
        with pytest.raises(IntegrityError):
            with database.engine.begin() as conn:
                conn.execute(
                    text(
                        "INSERT INTO devices (name, ip, department, model, year, type, status, factory, created_at, updated_at) "
                        "VALUES ('PC-02', '10.0.0.1', 'IT', 'Dell', 2020, 'Desktop', 'In-use', 'A', CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)"
                    )
                )
    finally:
        database.dispose()
