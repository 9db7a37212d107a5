"""Shared fixtures: a fresh SQLite store per test and signed bearer tokens."""

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.engine import Engine

from catalog_service.domain.principal import RoleLevel
from catalog_service.infrastructure.config import Settings
from catalog_service.main import create_app

CORRELATION_HEADERS = {"X-Correlation-ID": "test-correlation-id"}

SELLER_ID = 1
OTHER_SELLER_ID = 2


@event.listens_for(Engine, "connect")
def enforce_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite leaves foreign keys off unless asked; PostgreSQL always checks them."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite file with the cache disabled."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}",
        create_tables=True,
        redis_url=None,
        jwt_secret="test-secret",
        log_level="WARNING",
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Test client with the lifespan running and a correlation id on every call."""
    with TestClient(app, headers=CORRELATION_HEADERS) as test_client:
        yield test_client


@pytest.fixture
def make_token(settings: Settings) -> Callable[..., str]:
    """Mint a signed token the way the identity service does."""

    def _make(
        role_level: RoleLevel,
        seller_id: int | None = None,
        user_id: int = 100,
        expires_in: timedelta = timedelta(hours=1),
    ) -> str:
        payload = {
            "user_id": user_id,
            "email": f"user{user_id}@example.com",
            "role_level": int(role_level),
            "seller_id": seller_id,
            "exp": datetime.now(timezone.utc) + expires_in,
        }
        return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)

    return _make


@pytest.fixture
def admin_headers(make_token) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(RoleLevel.ADMIN, user_id=1)}"}


@pytest.fixture
def seller_headers(make_token) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(RoleLevel.SELLER, seller_id=SELLER_ID, user_id=10)}"}


@pytest.fixture
def other_seller_headers(make_token) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(RoleLevel.SELLER, seller_id=OTHER_SELLER_ID, user_id=20)}"}


@pytest.fixture
def customer_headers(make_token) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(RoleLevel.CUSTOMER, user_id=30)}"}
