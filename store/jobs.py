"""
Job Store — the single source of truth for queue state.

All writes that change a job's status are single conditional UPDATE
statements whose WHERE clause restates the expected current status. The
affected-row count tells the caller whether it won. That is what makes the
claim safe when several dispatch cycles (worker threads, HTTP "send now",
cron) run at the same time:

    UPDATE mail_queue
       SET status = 'PROCESSING', claimed_at = :now
     WHERE id = :id AND status = 'QUEUED'

Two concurrent callers can both read the row as QUEUED, but only one UPDATE
matches; the other sees rowcount == 0 and skips the job.

Every method opens and closes its own session, so the store can be shared
between threads.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import and_, case, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dispatch.errors import DuplicateJobError, JobStateError, RecordNotFoundError
from models.enums import JobStatus, JobType
from models.job import MailJob

logger = logging.getLogger(__name__)

_OPEN_STATUSES = (JobStatus.QUEUED.value, JobStatus.PROCESSING.value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStore:

    def __init__(self, session_factory, claim_timeout: float = 0, default_priority: int = 5):
        """
        Args:
            session_factory: sync sessionmaker
            claim_timeout: seconds after which a PROCESSING claim counts as
                abandoned and may be claimed again; 0 disables reclaiming
            default_priority: priority used when enqueue() gets none
        """
        self._session_factory = session_factory
        self._claim_timeout = claim_timeout
        self._default_priority = default_priority

    # ── Producers ───────────────────────────────────────────────

    def enqueue(
        self,
        job_type: JobType,
        payload: dict,
        priority: Optional[int] = None,
        send_at: Optional[datetime] = None,
        created_by: str = "system",
        dedupe_key: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> int:
        """
        Insert a QUEUED job and return its id.

        Similar jobs never make this fail. Only an explicit dedupe_key (set by
        the idempotency guard for recurring jobs) is unique, and a clash
        raises DuplicateJobError.

        With a session, the row is only flushed and the caller commits it
        together with its own changes.
        """
        job = MailJob(
            type=JobType(job_type).value,
            payload=payload,
            status=JobStatus.QUEUED.value,
            priority=self._default_priority if priority is None else priority,
            send_at=send_at,
            created_by=created_by,
            dedupe_key=dedupe_key,
        )
        if session is not None:
            session.add(job)
            session.flush()
            logger.info(f"Enqueued job {job.id} [{job.type}] by {created_by}")
            return job.id

        with self._session_factory() as session:
            session.add(job)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                if dedupe_key is None:
                    raise
                raise DuplicateJobError(dedupe_key)
            job_id = job.id

        logger.info(f"Enqueued job {job_id} [{JobType(job_type).value}] by {created_by}")
        return job_id

    def requeue_failed(self, job_id: int, created_by: str, dedupe_key: Optional[str] = None) -> int:
        """Enqueue the work of a FAILED job again as a fresh job. The old row is kept."""
        with self._session_factory() as session:
            old = session.get(MailJob, job_id)
            if old is None:
                raise RecordNotFoundError(f"Job {job_id} not found")
            if old.status != JobStatus.FAILED.value:
                raise JobStateError(
                    f"Cannot requeue job in {old.status} state. Only FAILED jobs can be requeued."
                )
            job = MailJob(
                type=old.type,
                payload=dict(old.payload),
                status=JobStatus.QUEUED.value,
                priority=old.priority,
                created_by=created_by,
                retry_count=old.retry_count + 1,
                dedupe_key=dedupe_key,
            )
            session.add(job)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                if dedupe_key is None:
                    raise
                raise DuplicateJobError(dedupe_key)
            new_id = job.id

        logger.info(f"Requeued failed job {job_id} as {new_id} by {created_by}")
        return new_id

    # ── Reads ───────────────────────────────────────────────────

    def get(self, job_id: int) -> Optional[MailJob]:
        with self._session_factory() as session:
            return session.get(MailJob, job_id)

    def find(self, job_type: JobType, statuses) -> list[MailJob]:
        with self._session_factory() as session:
            query = (
                select(MailJob)
                .where(
                    MailJob.type == JobType(job_type).value,
                    MailJob.status.in_([JobStatus(s).value for s in statuses]),
                )
                .order_by(MailJob.id)
            )
            return list(session.scalars(query))

    def due_jobs(self, limit: int, now: Optional[datetime] = None) -> list[MailJob]:
        """
        Jobs a dispatch cycle may try to claim, most urgent first.

        Eligible: QUEUED with send_at unset or in the past, plus PROCESSING
        jobs whose claim has outlived the claim timeout. Ordered by
        (priority, id), so FIFO within one priority.
        """
        now = now or _utcnow()
        with self._session_factory() as session:
            query = (
                select(MailJob)
                .where(
                    self._claimable(now),
                    or_(MailJob.send_at.is_(None), MailJob.send_at <= now),
                )
                .order_by(MailJob.priority, MailJob.id)
                .limit(limit)
            )
            return list(session.scalars(query))

    # ── State transitions ───────────────────────────────────────

    def try_claim(self, job_id: int, now: Optional[datetime] = None) -> bool:
        """Atomically flip QUEUED → PROCESSING. Returns True only for the winner."""
        return self.claim(job_id, now) is not None

    def claim(self, job_id: int, now: Optional[datetime] = None) -> Optional[datetime]:
        """
        Like try_claim(), but returns the claim instant (None if lost).

        A stale PROCESSING claim is taken over by the same statement; the
        takeover bumps retry_count so the reclaim is visible afterwards. The
        returned instant is the owner's token for mark_sent()/mark_failed():
        once another cycle reclaims the row, the old token no longer matches.
        """
        now = now or _utcnow()
        stmt = (
            update(MailJob)
            .where(MailJob.id == job_id, self._claimable(now))
            .values(
                status=JobStatus.PROCESSING.value,
                claimed_at=now,
                retry_count=case(
                    (MailJob.status == JobStatus.PROCESSING.value, MailJob.retry_count + 1),
                    else_=MailJob.retry_count,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        with self._session_factory() as session:
            result = session.execute(stmt)
            session.commit()
            return now if result.rowcount == 1 else None

    def mark_sent(
        self,
        job_id: int,
        session: Optional[Session] = None,
        claimed_at: Optional[datetime] = None,
    ) -> bool:
        """
        PROCESSING → SENT, stamping sent_at and clearing error.

        With a session, the update joins the caller's transaction (so audit
        rows and the SENT status commit together) and the caller commits.
        A second call is a no-op because the row is no longer open.

        With claimed_at, only the holder of that claim wins; a cycle whose
        claim was taken over gets False.
        """
        stmt = (
            update(MailJob)
            .where(MailJob.id == job_id, self._owned_by(claimed_at))
            .values(status=JobStatus.SENT.value, sent_at=_utcnow(), error=None)
            .execution_options(synchronize_session=False)
        )
        if session is not None:
            return session.execute(stmt).rowcount == 1
        with self._session_factory() as own:
            result = own.execute(stmt)
            own.commit()
            return result.rowcount == 1

    def mark_failed(self, job_id: int, message: str, claimed_at: Optional[datetime] = None) -> bool:
        """
        Open job → FAILED with the error message.

        The dedupe key is released so equivalent work can be enqueued again.
        A job that already reached SENT is left alone, and with claimed_at so
        is a job another cycle has reclaimed since.
        """
        stmt = (
            update(MailJob)
            .where(MailJob.id == job_id, self._owned_by(claimed_at))
            .values(status=JobStatus.FAILED.value, error=message, dedupe_key=None)
            .execution_options(synchronize_session=False)
        )
        with self._session_factory() as session:
            result = session.execute(stmt)
            session.commit()
            return result.rowcount == 1

    @staticmethod
    def _owned_by(claimed_at: Optional[datetime]):
        if claimed_at is None:
            return MailJob.status.in_(_OPEN_STATUSES)
        return and_(
            MailJob.status == JobStatus.PROCESSING.value,
            MailJob.claimed_at == claimed_at,
        )

    def _claimable(self, now: datetime):
        queued = MailJob.status == JobStatus.QUEUED.value
        if self._claim_timeout <= 0:
            return queued
        cutoff = now - timedelta(seconds=self._claim_timeout)
        stale = and_(
            MailJob.status == JobStatus.PROCESSING.value,
            MailJob.claimed_at.is_not(None),
            MailJob.claimed_at < cutoff,
        )
        return or_(queued, stale)
