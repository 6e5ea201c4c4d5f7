"""Shared fixtures: a throwaway sqlite database per test, services and an API client."""

import os

# the module-level engine must never touch a real database file
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from stockroom.api.deps import get_db
from stockroom.core.database import create_tables
from stockroom.core.security import create_access_token
from stockroom.main import app
from stockroom.models.audit_entry import register_append_only_guards
from stockroom.services.audit import AuditLog
from stockroom.services.bulk import BulkMutationEngine
from stockroom.services.item_store import ItemStore
from stockroom.services.stock import StockPoster

register_append_only_guards()


@pytest.fixture
def engine(tmp_path):
    # a file database, so separate sessions and threads see real locking
    url = f"sqlite:///{tmp_path / 'stockroom-test.db'}"
    eng = create_engine(url, connect_args={"check_same_thread": False, "timeout": 15})
    create_tables(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db_session):
    return ItemStore(db_session)


@pytest.fixture
def audit(db_session):
    return AuditLog(db_session)


@pytest.fixture
def bulk(db_session, store, audit):
    return BulkMutationEngine(db_session, store, audit, actor="tester")


@pytest.fixture
def poster(db_session, store, audit):
    return StockPoster(db_session, store, audit, actor="tester")


@pytest.fixture
def make_item(bulk):
    """Create and commit one item, filling in the required fields."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        payload = {
            "sku": f"SKU-{counter['n']:03d}",
            "name": f"Item {counter['n']}",
            "quantity": 10,
            "unit_price": "2.50",
        }
        payload.update(overrides)
        return bulk.create_one(payload)

    return _make


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _auth(role: str, sub: str, name: str) -> dict:
    token = create_access_token({"sub": sub, "name": name, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def manager_headers():
    return _auth("manager", "u-1", "Maria Manager")


@pytest.fixture
def viewer_headers():
    return _auth("viewer", "u-2", "Victor Viewer")
