"""Pytest fixtures for testing."""

from datetime import datetime, timezone
from typing import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from service_catalog_api.app.core.config import Settings
from service_catalog_api.app.core.context import QueryContext
from service_catalog_api.app.core.db import get_connection, init_db
from service_catalog_api.app.main import create_app
from service_catalog_api.app.storage.sqlite import SQLiteCatalogStore

TEST_API_KEY = "test-api-key-0123456789abcdef"


@pytest.fixture()
def db_path(tmp_path) -> str:
    return str(tmp_path / "catalog.db")


@pytest.fixture()
def settings(db_path) -> Settings:
    return Settings(database_url=db_path, log_level="DEBUG")


@pytest.fixture()
def store(db_path) -> SQLiteCatalogStore:
    """A store over a freshly bootstrapped database."""
    init_db(db_path)
    return SQLiteCatalogStore(db_path)


@pytest.fixture()
def qctx() -> QueryContext:
    return QueryContext.background()


@pytest.fixture()
def app(settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture()
def client(app) -> Iterator[TestClient]:
    """Started test client with ``TEST_API_KEY`` registered."""
    with TestClient(app) as test_client:
        app.state.ctx.store.add_api_key(TEST_API_KEY)
        yield test_client


@pytest.fixture()
def auth_headers() -> dict[str, str]:
    return {"X-API-Key": TEST_API_KEY}


def ts(year: int, month: int = 1, day: int = 1, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def set_service_created_at(db_path: str, service_id: int, value: str) -> None:
    """Overwrite a service's server-assigned timestamp."""
    conn = get_connection(db_path)
    try:
        conn.execute("UPDATE services SET created_at = ? WHERE id = ?", (value, service_id))
        conn.commit()
    finally:
        conn.close()
