"""
Claim-and-Dispatch Engine — drives one bounded batch of due jobs.

    dispatch_due(N)
        │
        ├── store.due_jobs(N)            QUEUED, sendAt passed (+ stale claims),
        │                                ordered by (priority, id)
        │
        └── for each job, in parallel if a pool is configured:
              executor.execute(job_id)   claim → render → send → audit + SENT
                                         → "sent" | "failed" | "skipped"

A cycle is short-lived and safe to run concurrently with other cycles (worker
thread, HTTP "send now", cron): the claim inside execute() is the only point of
mutual exclusion. Nothing a single job does can abort the batch; the caller
always gets counts back, never an exception from a job.
"""

import logging
import time
from concurrent.futures import Executor
from dataclasses import asdict, dataclass
from typing import Optional

from models.enums import JobStatus
from store.jobs import JobStore
from worker.executor import FAILED, SENT, SKIPPED, JobExecutor

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    processed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0

    def record(self, outcome: str) -> None:
        self.processed += 1
        if outcome == SENT:
            self.sent += 1
        elif outcome == SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict:
        return asdict(self)


class DispatchEngine:

    def __init__(self, store: JobStore, executor: JobExecutor, pool: Optional[Executor] = None):
        """
        Args:
            store: where due jobs come from
            executor: runs one claimed job end to end
            pool: optional thread pool; without one, jobs run one after another
                in the calling thread
        """
        self._store = store
        self._executor = executor
        self._pool = pool

    @property
    def store(self) -> JobStore:
        return self._store

    def dispatch_due(self, batch_size: int = 10) -> DispatchResult:
        """Process up to batch_size due jobs and return aggregate counts."""
        result = DispatchResult()
        if batch_size <= 0:
            return result

        start_time = time.monotonic()
        due = self._store.due_jobs(batch_size)
        if not due:
            return result

        for job in due:
            if job.status == JobStatus.PROCESSING.value:
                logger.warning(f"Job {job.id} [{job.type}] claim is stale (since {job.claimed_at}), reclaiming")
        job_ids = [job.id for job in due]

        if self._pool is None:
            outcomes = [self._run_one(job_id) for job_id in job_ids]
        else:
            outcomes = list(self._pool.map(self._run_one, job_ids))

        for outcome in outcomes:
            result.record(outcome)

        elapsed = time.monotonic() - start_time
        logger.info(
            f"Dispatch cycle: processed={result.processed} sent={result.sent} "
            f"failed={result.failed} skipped={result.skipped} ({elapsed:.3f}s)"
        )
        return result

    def _run_one(self, job_id: int) -> str:
        """Per-job boundary: whatever happens here stays with this job."""
        try:
            return self._executor.execute(job_id)
        except Exception as e:
            logger.error(f"Job {job_id} could not be processed: {e}", exc_info=True)
            return FAILED
