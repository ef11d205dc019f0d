import io
import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from app import create_app
from app.core.config import get_settings
from app.db.session import Database

# Ensure models are imported so metadata is populated
from app.models import device as device_model  # noqa: F401

HEADER = ["Name", "IP", "Department", "Model", "Year", "Type", "Status", "Notes", "Factory"]


def device_payload(**overrides):
    payload = {
        "name": "PC-01",
        "ip": "10.0.0.1",
        "department": "IT",
        "model": "Dell 3020",
        "year": 2023,
        "type": "Desktop",
        "status": "In-use",
        "factory": "Plant-A",
    }
    payload.update(overrides)
    return payload


def make_workbook(rows, header=HEADER) -> bytes:
    wb = Workbook()
    ws = wb.active
    if header is not None:
        ws.append(header)
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture()
def database():
    db = Database("sqlite://")
    db.create_all()
    try:
        yield db
    finally:
        db.dispose()


@pytest.fixture()
def db_session(database):
    with database.session() as session:
        yield session


@pytest.fixture()
def client(database):
    app = create_app(get_settings(), database=database)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def payload():
    return device_payload


@pytest.fixture()
def workbook():
    return make_workbook
