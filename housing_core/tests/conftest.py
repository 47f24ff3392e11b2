import os

# Must be set before housing_core is imported: the global database is built at import time
os.environ["ENVIRONMENT"] = "development"
os.environ.setdefault("SQLITE_PATH", ":memory:")

import pytest
from fastapi.testclient import TestClient

from housing_core.db import db, DatabaseConfig

@pytest.fixture
def database():
    """Fresh in-memory schema per test."""
    db.reconfigure(DatabaseConfig(sqlite_path=":memory:"))
    db.init_db()
    yield db
    db.drop_db()

@pytest.fixture
def session(database):
    with database.session() as session:
        yield session

@pytest.fixture
def client(database):
    from housing_core.api.app import app
    with TestClient(app) as client:
        yield client

@pytest.fixture
def admin_headers():
    return {"X-User-Role": "org_admin", "X-User-Id": "admin-1"}
