"""Общие фикстуры: in-memory SQLite, замороженные часы, сервисы, TestClient."""
from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import sparehub.models  # noqa: F401
from sparehub.db.session import Base, get_db
from sparehub.main import create_app
from sparehub.repositories.favorites import FavoriteRepository
from sparehub.repositories.requests import RequestRepository
from sparehub.services.favorites import FavoriteService
from sparehub.services.lifecycle import RequestLifecycleService

T0 = datetime(2026, 10, 1, 12, 0, 0)


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_request_payload(**overrides) -> dict:
    payload = {
        "customer": "cust-1",
        "customerName": "Ravi Kumar",
        "customerEmail": "ravi@example.com",
        "customerPhone": "+91 98100 00000",
        "partName": "Brake pad set",
        "vehicleModel": "Maruti Swift 2019",
        "category": "Car Parts",
        "condition": "New",
        "description": "Front axle, OEM preferred",
        "budgetMin": 500,
        "budgetMax": 1500,
        "location": {"state": "Delhi", "district": "South Delhi", "area": "Saket"},
        "broadcastTo": ["shop-1", "shop-2"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_payload():
    return make_request_payload


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _enable_fk(dbapi_conn, _record):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(T0)


@pytest.fixture
def service(db, clock) -> RequestLifecycleService:
    return RequestLifecycleService(RequestRepository(db), clock=clock)


@pytest.fixture
def favorite_service(db) -> FavoriteService:
    return FavoriteService(FavoriteRepository(db))


@pytest.fixture
def client(session_factory) -> TestClient:
    app = create_app(init_db=False)

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    return TestClient(app)
