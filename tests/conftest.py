"""
Shared test fixtures.

These replace real infrastructure with lightweight local alternatives:
- PostgreSQL → SQLite file in tmp_path (sync engine for the Job Store and
  dispatch cycles, aiosqlite engine on the same file for the API's reads)
- Redis → fakeredis (pure Python Redis mock)
- SMTP → RecordingTransport (keeps every "sent" mail in a list)
- HTTP server → httpx.AsyncClient with ASGI transport (no network)

A file rather than :memory: because the sync and async engines, and the
threads of a concurrent dispatch, all have to see the same database.
"""

from datetime import datetime, timezone

import fakeredis
import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine, select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.orm import sessionmaker

from config.settings import Settings
from dispatch.factory import build_services
from mail.transport import MailTransport
from models.base import Base
from models.change_log import OffboardingChangeLog, OnboardingChangeLog
from models.employee import EmployeeOffboarding, EmployeeOnboarding
from models.job import MailJob
from api.main import create_app
from api.dependencies import get_db, get_redis, get_services


class RecordingTransport(MailTransport):
    """Accepts every mail and remembers it. Set fail_with to make sends raise."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail_with: Exception | None = None

    def send(self, to, subject, html):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"to": list(to), "subject": subject, "html": html})


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "mailqueue.db"


@pytest.fixture
def sync_engine(db_path):
    """Fresh SQLite database per test, shared across threads."""
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sync_engine):
    return sessionmaker(sync_engine, expire_on_commit=False)


@pytest.fixture
def redis_client():
    """Sync fake Redis for the recipient settings store."""
    r = fakeredis.FakeRedis()
    yield r
    r.flushall()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def test_settings():
    return Settings(
        REPORT_RECIPIENTS_PLANNED="planned@company.com",
        REPORT_RECIPIENTS_ACTUAL="actual@company.com",
        REPORT_RECIPIENTS_ALL="",
        FALLBACK_RECIPIENT="hr@company.com",
        HR_RECIPIENTS="hr@company.com,manager@company.com",
        CLAIM_TIMEOUT_SECONDS=900,
        DEFAULT_PRIORITY=5,
        DISPATCH_BATCH_SIZE=10,
    )


@pytest.fixture
def services(session_factory, redis_client, transport, test_settings):
    """Queue services wired exactly like the API and worker, minus real infrastructure."""
    return build_services(
        session_factory,
        redis_client=redis_client,
        transport=transport,
        settings=test_settings,
    )


@pytest.fixture
def make_onboarding(session_factory):
    """Insert an onboarding record and return its id."""
    def _make(name="Jana", surname="Nováková", **fields):
        with session_factory() as session:
            record = EmployeeOnboarding(name=name, surname=surname, **fields)
            session.add(record)
            session.commit()
            return record.id
    return _make


@pytest.fixture
def make_offboarding(session_factory):
    """Insert an offboarding record and return its id."""
    def _make(name="Petr", surname="Svoboda", **fields):
        with session_factory() as session:
            record = EmployeeOffboarding(name=name, surname=surname, **fields)
            session.add(record)
            session.commit()
            return record.id
    return _make


@pytest.fixture
def change_log(session_factory):
    """Read back change-log rows: change_log("onboarding") → list of rows."""
    def _rows(kind="onboarding", **filters):
        model = OnboardingChangeLog if kind == "onboarding" else OffboardingChangeLog
        with session_factory() as session:
            query = select(model).filter_by(**filters).order_by(model.id)
            return list(session.scalars(query))
    return _rows


@pytest.fixture
def load_job(session_factory):
    def _load(job_id):
        with session_factory() as session:
            return session.get(MailJob, job_id)
    return _load


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def at():
    """at(2024, 2, 29, 23, 59, 59) → aware UTC datetime."""
    return utc


# ── API ─────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def async_engine(db_path, sync_engine):
    """Async engine on the same SQLite file the sync fixtures write to."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def fake_redis():
    """Create a fake Redis instance (in-memory, no real Redis needed)."""
    r = FakeRedis()
    yield r
    await r.flushall()


@pytest_asyncio.fixture
async def client(async_engine, fake_redis, services):
    """
    Create a test HTTP client that talks directly to the FastAPI app.

    dependency_overrides swaps the real database, Redis and queue services
    for the test versions. Every request gets its own async session, so reads
    after a dispatch cycle see fresh rows instead of a cached identity map.

    ASGITransport means requests go directly to the app in-process,
    no HTTP server or network involved.
    """
    app = create_app()
    factory = async_sessionmaker(async_engine, expire_on_commit=False)

    async def override_get_db():
        async with factory() as session:
            yield session

    async def override_get_redis():
        return fake_redis

    async def override_get_services():
        return services

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_services] = override_get_services

    asgi = ASGITransport(app=app)
    async with AsyncClient(transport=asgi, base_url="http://test") as c:
        yield c
