"""
MailJob ORM model — maps to the "mail_queue" table.

Key design decisions:
- Integer autoincrement primary key: ids are assigned monotonically, and the
  due-job fetch uses them as the FIFO tiebreaker within a priority
- JSON payload: each job type stores its own typed payload (see jobs/payloads.py)
- status is the only field ever contended; it changes through the single
  conditional UPDATE in store/jobs.py, never through read-then-write
- claimed_at drives reclaiming of claims left behind by a crashed worker
- dedupe_key is set only for recurring jobs and cleared when a job fails,
  so the unique index blocks duplicates without blocking retries
- sent_at is set exactly when status becomes SENT
"""

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType
from models.enums import JobStatus


class MailJob(Base):
    __tablename__ = "mail_queue"

    # ── Identity ────────────────────────────────────────────────
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # ── Queue state ─────────────────────────────────────────────
    status: Mapped[str] = mapped_column(
        String(20), default=JobStatus.QUEUED.value, nullable=False, index=True
    )
    priority: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    send_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ── Payload & outcome ───────────────────────────────────────
    #   EMPLOYEE_INFO:   {"kind": "onboarding", "id": 42, "to": ["a@x.cz"]}
    #   MONTHLY_SUMMARY: {"year": 2025, "month": 3, "extraRecipients": []}
    payload: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dedupe_key: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True
    )

    # ── Provenance & lifecycle timestamps ───────────────────────
    created_by: Mapped[str] = mapped_column(String(255), default="system", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<MailJob {self.id} [{self.type}] {self.status}>"
