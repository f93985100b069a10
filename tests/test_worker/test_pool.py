"""Tests for the WorkerPool: scheduled dispatch cycles on a thread pool."""

import time

import pytest

from models.enums import JobStatus, JobType
from worker.pool import WorkerPool


@pytest.fixture
def pool_settings(test_settings):
    return test_settings.model_copy(update={"DISPATCH_INTERVAL": 0.05, "WORKER_POOL_SIZE": 2})


@pytest.fixture
def pool(session_factory, redis_client, transport, pool_settings):
    p = WorkerPool(session_factory, redis_client=redis_client, transport=transport, settings=pool_settings)
    yield p
    p.stop()


def _enqueue_notification(pool, subject):
    return pool.engine.store.enqueue(
        JobType.SYSTEM_NOTIFICATION, {"subject": subject, "recipients": ["ops@x.cz"]}
    )


def test_run_cycle_processes_due_jobs(pool, transport, load_job):
    ids = [_enqueue_notification(pool, f"Mail {i}") for i in range(3)]

    result = pool.run_cycle()

    assert result.sent == 3
    assert sorted(m["subject"] for m in transport.sent) == ["Mail 0", "Mail 1", "Mail 2"]
    assert all(load_job(i).status == JobStatus.SENT.value for i in ids)


def test_started_pool_dispatches_on_schedule(pool, transport):
    pool.start()
    _enqueue_notification(pool, "Scheduled")

    deadline = time.monotonic() + 5
    while not transport.sent and time.monotonic() < deadline:
        time.sleep(0.02)

    assert [m["subject"] for m in transport.sent] == ["Scheduled"]


def test_cycle_errors_do_not_stop_the_loop(pool, transport, monkeypatch):
    calls = []
    original = pool.engine.dispatch_due

    def flaky(batch_size):
        calls.append(batch_size)
        if len(calls) == 1:
            raise RuntimeError("database unreachable")
        return original(batch_size)

    monkeypatch.setattr(pool.engine, "dispatch_due", flaky)
    _enqueue_notification(pool, "After error")
    pool.start()

    deadline = time.monotonic() + 5
    while not transport.sent and time.monotonic() < deadline:
        time.sleep(0.02)

    assert len(calls) >= 2
    assert transport.sent


def test_stop_returns_promptly(pool):
    pool.start()
    started = time.monotonic()
    pool.stop()
    assert time.monotonic() - started < 2
