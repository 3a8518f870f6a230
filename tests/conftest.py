"""Shared fixtures. The environment must be set before pairing_server is imported."""

import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone

# Setup environment for testing
os.environ["DEVICELINK_DATA_DIR"] = tempfile.mkdtemp()
os.environ["DEVICELINK_DB_PATH"] = os.path.join(os.environ["DEVICELINK_DATA_DIR"], "test.db")
os.environ["DEVICELINK_SESSION_SECRET"] = "test-session-secret-0123456789abcdef"
os.environ["DEVICELINK_SWEEP_INTERVAL_SECONDS"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel


class FakeClock:
    """Callable time source the tests move by hand."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db():
    """Fresh tables for every test."""
    from pairing_server.database import engine, init_db

    SQLModel.metadata.drop_all(engine)
    init_db()
    return engine


@pytest.fixture
def session(db):
    with Session(db) as s:
        yield s


@pytest.fixture
def app(db, clock):
    from pairing_server.api.deps import get_clock
    from pairing_server.main import app

    app.dependency_overrides[get_clock] = lambda: clock
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def session_headers(subject: str = "web_user_1", email: str = "ada@example.com") -> dict:
    """Cookie header carrying a web-surface session for ``subject``."""
    from pairing_server.config import settings
    from pairing_server.utils.security import create_session_token

    return {"Cookie": f"{settings.session_cookie_name}={create_session_token(subject, email)}"}


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class VirtualClock:
    """Async client clock whose sleeps advance time instantly."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += timedelta(seconds=seconds)
        await asyncio.sleep(0)

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def vclock() -> VirtualClock:
    return VirtualClock()
