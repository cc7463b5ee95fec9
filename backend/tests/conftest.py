import os

# Settings are read at import time; tests never touch a real database or Redis.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ.pop("REDIS_URL", None)
os.environ.pop("HORIZON_REFRESH_INTERVAL_SECONDS", None)

from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from reception.database import get_db, make_engine
from reception.main import app
from reception.models import Base, Managers, ReceptionSlots
from reception.redis_client import get_redis


ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'reception.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def manager(db) -> Managers:
    obj = Managers(full_name="Ivan Petrov", position="Director")
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@pytest.fixture
def make_slot(db, manager):
    """Insert a single slot directly (bypassing the generator)."""
    def _make(start: datetime, minutes: int = 10, **fields) -> ReceptionSlots:
        slot = ReceptionSlots(
            manager_id=fields.pop("manager_id", manager.id),
            date=start.date(),
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            **fields,
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

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
    app.dependency_overrides[get_redis] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    return dict(ADMIN_HEADERS)


@pytest.fixture
def august_2026() -> date:
    # 2026-08-01 is a Saturday; the first Monday is 2026-08-03
    return date(2026, 8, 1)
