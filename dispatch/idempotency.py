"""
Idempotency Guard for recurring jobs.

A recurring job (today only MONTHLY_SUMMARY) is logically keyed by its period.
Once a job for a period is QUEUED, PROCESSING or SENT, producers must not add
another one. A FAILED job does not count, so the work can be enqueued again.

Two layers:

    1. exists_recurring_job()  — scan of active jobs, the cheap pre-check
    2. dedupe_key column       — unique "MONTHLY_SUMMARY:2025-03" on the row

The pre-check alone has a race (two producers both see "nothing there" and
both insert). The unique column closes it: the second insert fails with
DuplicateJobError. mark_failed() clears the key, which keeps the FAILED
exemption true at the storage layer as well.
"""

import logging
from datetime import datetime
from typing import Optional

from dispatch.errors import DuplicateJobError, JobStateError, RecordNotFoundError
from jobs.payloads import period_key_for
from models.enums import ACTIVE_STATUSES, JobStatus, JobType
from store.jobs import JobStore

logger = logging.getLogger(__name__)


def dedupe_key(job_type: JobType, period_key: str) -> str:
    return f"{JobType(job_type).value}:{period_key}"


def monthly_period_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


class IdempotencyGuard:

    def __init__(self, store: JobStore):
        self._store = store

    # ── Checks ──────────────────────────────────────────────────

    def exists_recurring_job(self, job_type: JobType, period_key: str) -> bool:
        """Is there an active-or-sent job of this type for the period?"""
        for job in self._store.find(job_type, ACTIVE_STATUSES):
            if period_key_for(job.type, job.payload) == period_key:
                return True
        return False

    def exists_monthly_job(self, year: int, month: int) -> bool:
        return self.exists_recurring_job(JobType.MONTHLY_SUMMARY, monthly_period_key(year, month))

    def active_periods(self, job_type: JobType) -> list[str]:
        """Sorted periods that already have an active-or-sent job."""
        periods = {
            period_key_for(job.type, job.payload)
            for job in self._store.find(job_type, ACTIVE_STATUSES)
        }
        periods.discard(None)
        return sorted(periods)

    # ── Guarded producers ───────────────────────────────────────

    def enqueue_recurring(
        self,
        job_type: JobType,
        payload: dict,
        priority: Optional[int] = None,
        send_at: Optional[datetime] = None,
        created_by: str = "system",
    ) -> int:
        """
        Enqueue a recurring job. Raises DuplicateJobError if its period is taken.

        Non-recurring job types pass straight through to the store.
        """
        period_key = period_key_for(job_type, payload)
        if period_key is None:
            return self._store.enqueue(job_type, payload, priority, send_at, created_by)

        key = dedupe_key(job_type, period_key)
        if self.exists_recurring_job(job_type, period_key):
            raise DuplicateJobError(key)
        return self._store.enqueue(job_type, payload, priority, send_at, created_by, dedupe_key=key)

    def ensure_recurring(
        self,
        job_type: JobType,
        payload: dict,
        priority: Optional[int] = None,
        send_at: Optional[datetime] = None,
        created_by: str = "system",
    ) -> Optional[int]:
        """Like enqueue_recurring(), but returns None when the job already exists."""
        try:
            return self.enqueue_recurring(job_type, payload, priority, send_at, created_by)
        except DuplicateJobError as e:
            logger.info(f"Skipping enqueue, {e}")
            return None

    def requeue_failed(self, job_id: int, created_by: str) -> int:
        """Re-enqueue a FAILED job's work, keeping recurring jobs unique."""
        old = self._store.get(job_id)
        if old is None:
            raise RecordNotFoundError(f"Job {job_id} not found")
        if old.status != JobStatus.FAILED.value:
            raise JobStateError(
                f"Cannot requeue job in {old.status} state. Only FAILED jobs can be requeued."
            )
        period_key = period_key_for(old.type, old.payload)
        key = None
        if period_key is not None:
            key = dedupe_key(old.type, period_key)
            if self.exists_recurring_job(old.type, period_key):
                raise DuplicateJobError(key)
        return self._store.requeue_failed(job_id, created_by, dedupe_key=key)
