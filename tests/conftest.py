"""
Pytest configuration and fixtures.
"""
import os

# Settings and the module-level engine are built at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["GATE_PASSWORD"] = "open-sesame"
os.environ["GATE_TOKEN_SECRET"] = "test-secret"
os.environ.pop("STUDENT_ROSTER", None)
os.environ.pop("VAPID_PRIVATE_KEY", None)

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from scoreboard.core.database import Base, get_db
from scoreboard.core.dependencies import get_today
from scoreboard.main import app
from scoreboard.models import Student
from scoreboard.services.scoreboard import scoreboard_cache
from scoreboard.services.storage import FileStorage, get_storage

GATE_PASSWORD = "open-sesame"
TODAY = date(2026, 3, 10)


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine,
        class_=Session,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return FileStorage(tmp_path / "storage")


@pytest.fixture
def today():
    return TODAY


@pytest.fixture(autouse=True)
def reset_scoreboard_cache():
    """The snapshot cache is process-global; start every test cold."""
    scoreboard_cache.reset()
    yield
    scoreboard_cache.reset()


@pytest.fixture
def students(db):
    """Roster of four students committed to the database."""
    rows = [Student(name=name) for name in ("Alice", "Bob", "Chris", "Dana")]
    db.add_all(rows)
    db.commit()
    return rows


@pytest.fixture
def client(session_factory, storage, today):
    """API client bound to the test database, storage and clock."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_today] = lambda: today
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def gate_headers():
    return {"X-Gate-Password": GATE_PASSWORD}
