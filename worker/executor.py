"""
Job executor — claims and runs a single mail job.

Each dispatch cycle calls executor.execute(job_id) for every due job, possibly
from several threads at once. This method handles the full lifecycle:

    1. Claim: atomic QUEUED → PROCESSING. Losing the claim is not an error,
       another cycle owns the job → "skipped"
    2. Find the handler for the job type and validate the payload
    3. handler.prepare(): render the body, resolve recipients
    4. Send through the mail transport
    5. On success: audit rows + SENT status in ONE transaction → "sent".
       If another cycle reclaimed the job meanwhile, the SENT update matches
       no row (the claim instant is the fence) and the audit rows are rolled
       back → "skipped"
    6. On any exception: roll back, mark FAILED with the message → "failed"

Audit rows are only added after the transport returned, and they commit with
the SENT status, so a failed job never leaves a "mail sent" trail. The one
partial-failure window is a crash between the transport call and that commit:
the mail went out but the job stays PROCESSING until its claim times out.

Thread safety:
- Each execute() call gets its OWN database session (created and closed within)
- Job handlers are stateless (no shared mutable state)
- The claim UPDATE is the only point where threads compete
"""

import logging
import time

from sqlalchemy.orm import Session

from dispatch.audit import AuditWriter
from dispatch.errors import EmptyRecipientsError
from jobs.base import HandlerContext
from jobs.registry import get_job_handler
from mail.recipients import RecipientResolver
from mail.transport import MailTransport
from models.job import MailJob
from store.jobs import JobStore

logger = logging.getLogger(__name__)

SENT = "sent"
FAILED = "failed"
SKIPPED = "skipped"


class JobExecutor:

    def __init__(
        self,
        db_session_factory,
        store: JobStore,
        transport: MailTransport,
        resolver: RecipientResolver,
        audit_writer: AuditWriter | None = None,
    ):
        self._db_session_factory = db_session_factory
        self._store = store
        self._transport = transport
        self._resolver = resolver
        self._audit = audit_writer or AuditWriter()

    def execute(self, job_id: int) -> str:
        """
        Claim and process one job. Returns "sent", "failed" or "skipped".

        Never raises for job-level problems; those end up in the job's error
        column. Only a failure to record the failure itself propagates.
        """
        claimed_at = self._store.claim(job_id)
        if claimed_at is None:
            logger.debug(f"Job {job_id} already claimed elsewhere, skipping")
            return SKIPPED

        session: Session = self._db_session_factory()
        job_type = "?"
        try:
            job = session.get(MailJob, job_id)
            if job is None:
                raise LookupError(f"Job {job_id} vanished after claim")
            job_type = job.type

            # ── Step 1: Handler + typed payload ─────────────────
            handler = get_job_handler(job.type)
            payload = handler.parse(job.payload)

            # ── Step 2: Render + recipients ─────────────────────
            start_time = time.monotonic()
            context = HandlerContext(
                session=session,
                resolver=self._resolver,
                job_id=job.id,
                created_by=job.created_by,
            )
            prepared = handler.prepare(payload, context)
            if not prepared.recipients:
                raise EmptyRecipientsError("Empty recipients")

            # ── Step 3: Send ────────────────────────────────────
            self._transport.send(prepared.recipients, prepared.subject, prepared.html)

            # ── Step 4: Audit + SENT, one transaction ───────────
            written = self._audit.append_many(session, prepared.audit, job.created_by)
            if not self._store.mark_sent(job_id, session=session, claimed_at=claimed_at):
                session.rollback()
                logger.warning(f"Job {job_id} [{job_type}] was reclaimed by another cycle, dropping its audit rows")
                return SKIPPED
            session.commit()

            elapsed = time.monotonic() - start_time
            logger.info(
                f"Job {job_id} [{job_type}] sent to {len(prepared.recipients)} recipient(s), "
                f"{written} audit row(s), {elapsed:.3f}s"
            )
            return SENT

        except Exception as e:
            # ── Failure: no audit, job FAILED ───────────────────
            session.rollback()
            logger.error(f"Job {job_id} [{job_type}] failed: {e}")
            if not self._store.mark_failed(job_id, str(e) or e.__class__.__name__, claimed_at=claimed_at):
                logger.warning(f"Job {job_id} [{job_type}] was reclaimed by another cycle, leaving it to the new owner")
                return SKIPPED
            return FAILED

        finally:
            # Always close the session — prevents connection leaks
            session.close()
