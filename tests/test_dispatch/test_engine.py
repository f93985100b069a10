"""
Tests for the claim-and-dispatch cycle, end to end against SQLite.

Covers the behavior callers rely on:
- the scenario: one EMPLOYEE_INFO job → sent, one audit row
- no audit row unless the job ends SENT
- empty recipients fail closed
- one broken job never stops the rest of the batch
- unknown types and transport errors end as FAILED with a message
"""

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from config.settings import Settings
from dispatch.factory import build_services
from mail.transport import MailTransport
from models.enums import JobStatus, JobType
from models.job import MailJob


def test_employee_info_scenario(services, transport, load_job, change_log):
    job_id = services.store.enqueue(
        JobType.EMPLOYEE_INFO, {"kind": "onboarding", "id": 42, "to": ["a@x.cz"]}
    )

    result = services.engine.dispatch_due(10)

    assert result.to_dict() == {"processed": 1, "sent": 1, "failed": 0, "skipped": 0}
    job = load_job(job_id)
    assert job.status == JobStatus.SENT.value
    assert job.sent_at is not None
    assert job.error is None

    rows = change_log("onboarding")
    assert len(rows) == 1
    assert rows[0].employee_id == 42
    assert rows[0].action == "MAIL_SENT"
    assert rows[0].field == "EMPLOYEE_INFO"
    assert json.loads(rows[0].new_value) == {"to": ["a@x.cz"]}
    assert rows[0].user_id == "system"
    assert change_log("offboarding") == []

    assert transport.sent[0]["to"] == ["a@x.cz"]
    assert transport.sent[0]["subject"] == "Informace k nástupu"


def test_offboarding_info_goes_to_offboarding_log(services, make_offboarding, change_log):
    record_id = make_offboarding(name="Petr", surname="Svoboda")
    services.store.enqueue(
        JobType.EMPLOYEE_INFO,
        {"kind": "offboarding", "id": record_id, "to": ["b@x.cz"]},
        created_by="alice",
    )

    services.engine.dispatch_due(10)

    rows = change_log("offboarding")
    assert [(r.employee_id, r.field, r.user_id) for r in rows] == [(record_id, "EMPLOYEE_INFO", "alice")]
    assert change_log("onboarding") == []


def test_transport_failure_marks_failed_without_audit(services, transport, load_job, change_log):
    transport.fail_with = ConnectionError("SMTP connection refused")
    job_id = services.store.enqueue(
        JobType.EMPLOYEE_INFO, {"kind": "onboarding", "id": 1, "to": ["a@x.cz"]}
    )

    result = services.engine.dispatch_due(10)

    assert result.to_dict() == {"processed": 1, "sent": 0, "failed": 1, "skipped": 0}
    job = load_job(job_id)
    assert job.status == JobStatus.FAILED.value
    assert job.error == "SMTP connection refused"
    assert job.sent_at is None
    assert change_log("onboarding") == []


def test_empty_recipients_fail_closed(session_factory, redis_client, transport, load_job, change_log, make_onboarding, at):
    """No planned recipients, no fallback, no extras → FAILED, never SENT."""
    settings = Settings(REPORT_RECIPIENTS_PLANNED="", REPORT_RECIPIENTS_ALL="", FALLBACK_RECIPIENT="")
    services = build_services(session_factory, redis_client=redis_client, transport=transport, settings=settings)
    make_onboarding(actual_start=at(2025, 3, 10))
    job_id = services.store.enqueue(JobType.MONTHLY_SUMMARY, {"year": 2025, "month": 3})

    result = services.engine.dispatch_due(10)

    assert result.failed == 1
    job = load_job(job_id)
    assert job.status == JobStatus.FAILED.value
    assert "recipients" in job.error
    assert transport.sent == []
    assert change_log("onboarding") == []


def test_empty_to_list_fails(services, load_job):
    job_id = services.store.enqueue(
        JobType.EMPLOYEE_INFO, {"kind": "onboarding", "id": 1, "to": ["not-an-address"]}
    )
    services.engine.dispatch_due(10)

    job = load_job(job_id)
    assert job.status == JobStatus.FAILED.value
    assert job.error == "Empty recipients"


def test_batch_isolation(services, transport, load_job, monkeypatch):
    """Job #3's renderer throws; the other four still finish and processed == 5."""
    import jobs.employee_info as employee_info

    real_render = employee_info.render_employee_info

    def flaky_render(payload, record=None):
        if payload.id == 3:
            raise RuntimeError("template exploded")
        return real_render(payload, record)

    monkeypatch.setattr(employee_info, "render_employee_info", flaky_render)

    ids = [
        services.store.enqueue(JobType.EMPLOYEE_INFO, {"kind": "onboarding", "id": n, "to": [f"u{n}@x.cz"]})
        for n in range(1, 6)
    ]

    result = services.engine.dispatch_due(10)

    assert result.processed == 5
    assert result.sent == 4
    assert result.failed == 1
    statuses = [load_job(job_id).status for job_id in ids]
    assert statuses == ["SENT", "SENT", "FAILED", "SENT", "SENT"]
    assert load_job(ids[2]).error == "template exploded"


def test_unknown_job_type_fails_without_sending(services, session_factory, transport, load_job):
    job_id = services.store.enqueue(JobType.SYSTEM_NOTIFICATION, {"subject": "x"})
    with session_factory() as session:
        session.execute(update(MailJob).where(MailJob.id == job_id).values(type="FAX_BLAST"))
        session.commit()

    result = services.engine.dispatch_due(10)

    assert result.failed == 1
    job = load_job(job_id)
    assert job.status == JobStatus.FAILED.value
    assert "Unknown job type" in job.error
    assert transport.sent == []


def test_invalid_stored_payload_fails(services, load_job):
    job_id = services.store.enqueue(JobType.MONTHLY_SUMMARY, {"year": 2025, "month": 13})
    services.engine.dispatch_due(10)

    job = load_job(job_id)
    assert job.status == JobStatus.FAILED.value
    assert "Invalid MONTHLY_SUMMARY payload" in job.error


def test_monthly_summary_audits_every_included_record(
    services, transport, make_onboarding, make_offboarding, change_log, at
):
    on_1 = make_onboarding(name="Eva", actual_start=at(2025, 3, 3))
    on_2 = make_onboarding(name="Jan", actual_start=at(2025, 3, 31, 23, 0))
    make_onboarding(name="Later", actual_start=at(2025, 4, 1))
    make_onboarding(name="Deleted", actual_start=at(2025, 3, 5), deleted_at=at(2025, 3, 6))
    off_1 = make_offboarding(actual_end=at(2025, 3, 15))

    services.store.enqueue(
        JobType.MONTHLY_SUMMARY,
        {"year": 2025, "month": 3, "extraRecipients": ["boss@x.cz", "PLANNED@company.com"]},
    )
    result = services.engine.dispatch_due(10)

    assert result.sent == 1
    mail = transport.sent[0]
    assert mail["to"] == ["boss@x.cz", "PLANNED@company.com"]
    assert mail["subject"] == "Měsíční přehled – 3.2025"
    assert "Eva" in mail["html"] and "Jan" in mail["html"]
    assert "Later" not in mail["html"] and "Deleted" not in mail["html"]

    onb = change_log("onboarding", field="MONTHLY_SUMMARY")
    off = change_log("offboarding", field="MONTHLY_SUMMARY")
    assert sorted(r.employee_id for r in onb) == sorted([on_1, on_2])
    assert [r.employee_id for r in off] == [off_1]
    assert all(json.loads(r.new_value) == {"year": 2025, "month": 3} for r in onb + off)


def test_no_audit_without_sent(services, transport, change_log, load_job):
    """Across a mixed batch, audit rows exist only for jobs that ended SENT."""
    ok = services.store.enqueue(JobType.EMPLOYEE_INFO, {"kind": "onboarding", "id": 10, "to": ["a@x.cz"]})
    bad = services.store.enqueue(JobType.EMPLOYEE_INFO, {"kind": "onboarding", "id": 11, "to": []})
    manual = services.store.enqueue(
        JobType.MANUAL_EMAIL,
        {"recipients": ["c@x.cz"], "subject": "Hi", "content": "x", "recordKind": "onboarding", "recordId": 12},
    )

    services.engine.dispatch_due(10)

    audited = {r.employee_id for r in change_log("onboarding")}
    sent_records = {10: ok, 11: bad, 12: manual}
    for record_id, job_id in sent_records.items():
        assert (record_id in audited) == (load_job(job_id).status == JobStatus.SENT.value)


def test_send_at_in_future_is_not_dispatched(services, load_job, at):
    job_id = services.store.enqueue(
        JobType.SYSTEM_NOTIFICATION, {"subject": "Later"}, send_at=at(2999, 1, 1)
    )
    result = services.engine.dispatch_due(10)

    assert result.processed == 0
    assert load_job(job_id).status == JobStatus.QUEUED.value


def test_already_claimed_job_counts_as_skipped(services, transport, monkeypatch):
    """A job taken by a concurrent cycle between fetch and claim is skipped, not failed."""
    job_id = services.store.enqueue(JobType.SYSTEM_NOTIFICATION, {"subject": "x"})
    real_due = services.store.due_jobs

    def due_then_steal(limit, now=None):
        due = real_due(limit, now)
        services.store.try_claim(job_id)
        return due

    monkeypatch.setattr(services.store, "due_jobs", due_then_steal)

    result = services.engine.dispatch_due(10)
    assert result.to_dict() == {"processed": 1, "sent": 0, "failed": 0, "skipped": 1}
    assert transport.sent == []


def test_concurrent_cycles_send_each_job_once(session_factory, redis_client, transport, test_settings, load_job):
    """Two pooled engines over the same store: every job is sent exactly once."""
    with ThreadPoolExecutor(max_workers=4) as pool_a, ThreadPoolExecutor(max_workers=4) as pool_b:
        a = build_services(session_factory, redis_client, transport, test_settings, pool=pool_a)
        b = build_services(session_factory, redis_client, transport, test_settings, pool=pool_b)
        ids = [
            a.store.enqueue(JobType.SYSTEM_NOTIFICATION, {"subject": f"n{n}", "recipients": ["a@x.cz"]})
            for n in range(12)
        ]

        with ThreadPoolExecutor(max_workers=2) as runner:
            results = list(runner.map(lambda s: s.engine.dispatch_due(20), [a, b]))

    assert sum(r.sent for r in results) == 12
    assert sum(r.failed for r in results) == 0
    assert sorted(m["subject"] for m in transport.sent) == sorted(f"n{n}" for n in range(12))
    assert all(load_job(job_id).status == JobStatus.SENT.value for job_id in ids)


@pytest.mark.parametrize("batch_size", [0, -1])
def test_non_positive_batch_does_nothing(services, batch_size):
    services.store.enqueue(JobType.SYSTEM_NOTIFICATION, {"subject": "x"})
    assert services.engine.dispatch_due(batch_size).processed == 0


# ── Superseded claims ───────────────────────────────────────────


class InterleavingTransport(MailTransport):
    """Runs `during_send` while the mail is in flight, then succeeds or raises."""

    def __init__(self, during_send, fail_with=None):
        self.during_send = during_send
        self.fail_with = fail_with
        self.sent = []

    def send(self, to, subject, html):
        self.during_send()
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(subject)


def _interleaved_services(session_factory, redis_client, test_settings, during_send, fail_with=None):
    transport = InterleavingTransport(during_send, fail_with)
    return build_services(session_factory, redis_client, transport, test_settings), transport


def _past_claim_timeout(settings):
    return datetime.now(timezone.utc) + timedelta(seconds=settings.CLAIM_TIMEOUT_SECONDS + 60)


def test_job_failed_elsewhere_during_send_gets_no_audit(
    session_factory, redis_client, test_settings, load_job, change_log
):
    holder = {}
    services, _ = _interleaved_services(
        session_factory,
        redis_client,
        test_settings,
        lambda: services.store.mark_failed(holder["job_id"], "failed by another cycle"),
    )
    holder["job_id"] = services.store.enqueue(
        JobType.EMPLOYEE_INFO, {"kind": "onboarding", "id": 42, "to": ["a@x.cz"]}
    )

    result = services.engine.dispatch_due(10)

    assert result.to_dict() == {"processed": 1, "sent": 0, "failed": 0, "skipped": 1}
    job = load_job(holder["job_id"])
    assert job.status == JobStatus.FAILED.value
    assert job.error == "failed by another cycle"
    assert change_log("onboarding") == []


def test_job_reclaimed_during_send_stays_with_new_owner(
    session_factory, redis_client, test_settings, load_job, change_log
):
    holder = {}

    def reclaim():
        holder["token"] = services.store.claim(holder["job_id"], now=_past_claim_timeout(test_settings))

    services, transport = _interleaved_services(session_factory, redis_client, test_settings, reclaim)
    job_id = holder["job_id"] = services.store.enqueue(
        JobType.EMPLOYEE_INFO, {"kind": "onboarding", "id": 42, "to": ["a@x.cz"]}
    )

    result = services.engine.dispatch_due(10)

    assert result.skipped == 1 and result.sent == 0
    assert transport.sent == ["Informace k nástupu"]
    assert holder["token"] is not None
    job = load_job(job_id)
    assert job.status == JobStatus.PROCESSING.value
    assert job.retry_count == 1
    assert change_log("onboarding") == []

    # the new owner can still finish it
    assert services.store.mark_sent(job_id, claimed_at=holder["token"]) is True
    assert load_job(job_id).status == JobStatus.SENT.value


def test_superseded_failure_does_not_fail_new_owner(
    session_factory, redis_client, test_settings, load_job
):
    holder = {}
    services, _ = _interleaved_services(
        session_factory,
        redis_client,
        test_settings,
        lambda: services.store.claim(holder["job_id"], now=_past_claim_timeout(test_settings)),
        fail_with=ConnectionRefusedError("SMTP down"),
    )
    holder["job_id"] = services.store.enqueue(JobType.SYSTEM_NOTIFICATION, {"subject": "x", "recipients": ["a@x.cz"]})

    result = services.engine.dispatch_due(10)

    assert result.to_dict() == {"processed": 1, "sent": 0, "failed": 0, "skipped": 1}
    job = load_job(holder["job_id"])
    assert job.status == JobStatus.PROCESSING.value
    assert job.error is None
