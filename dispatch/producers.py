"""
Producers — the code that puts work into the queue.

    MonthlyReports
        ensure_monthly_summary()  cron: last month's summary, sent on the 1st at 08:00 UTC
        send_now()                UI: enqueue the summary (if missing) and run a cycle
        sent_periods()            periods that already have an active-or-sent summary
        candidates()              records of a month, marked if already reported

    ReminderProducer
        run()                     daily cron: probation and notice-period warnings

Producers only enqueue. Mail goes out when a dispatch cycle picks the job up,
so a producer that succeeds says nothing about delivery.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Optional

from dispatch.audit import sent_record_ids
from dispatch.engine import DispatchEngine, DispatchResult
from dispatch.idempotency import IdempotencyGuard
from jobs.payloads import MonthlySummaryPayload, NoticeWarningPayload, ProbationPayload
from mail.recipients import clean_addresses
from models.enums import JobType, RecordKind
from store.jobs import JobStore
from store.records import (
    month_window,
    offboardings_ended,
    offboardings_in_notice,
    offboardings_planned,
    onboardings_in_probation,
    onboardings_planned,
    onboardings_started,
)

logger = logging.getLogger(__name__)

PROBATION_REMINDER_DAYS = (30, 14, 7, 3, 1)
NOTICE_REMINDER_DAYS = (14, 7, 3, 1)
MONTHLY_SEND_HOUR = 8


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _utc_date(value: datetime) -> date:
    """Calendar date in UTC; naive values are taken as UTC already."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


def previous_month(now: datetime) -> tuple[int, int]:
    if now.month == 1:
        return now.year - 1, 12
    return now.year, now.month - 1


# ── Monthly summary ─────────────────────────────────────────────


@dataclass
class EnsureResult:
    year: int
    month: int
    ensured: bool
    job_id: Optional[int] = None


@dataclass
class SendNowResult:
    year: int
    month: int
    queued: bool
    job_id: Optional[int]
    dispatch: DispatchResult


class MonthlyReports:

    def __init__(
        self,
        session_factory,
        guard: IdempotencyGuard,
        engine: DispatchEngine,
        batch_size: int = 10,
    ):
        self._session_factory = session_factory
        self._guard = guard
        self._engine = engine
        self._batch_size = batch_size

    def ensure_monthly_summary(self, now: Optional[datetime] = None) -> EnsureResult:
        """
        Make sure last month's summary is queued.

        Scheduled for the 1st of the current month at 08:00 UTC and created by
        "cron". Calling this any number of times in a month enqueues one job.
        """
        now = (now or _utcnow()).astimezone(timezone.utc)
        year, month = previous_month(now)
        send_at = datetime(now.year, now.month, 1, MONTHLY_SEND_HOUR, tzinfo=timezone.utc)

        payload = MonthlySummaryPayload(year=year, month=month).to_json()
        job_id = self._guard.ensure_recurring(
            JobType.MONTHLY_SUMMARY, payload, send_at=send_at, created_by="cron"
        )
        if job_id is not None:
            logger.info(f"Monthly summary {year}-{month:02d} scheduled as job {job_id} for {send_at}")
        return EnsureResult(year=year, month=month, ensured=job_id is not None, job_id=job_id)

    def send_now(
        self,
        year: int,
        month: int,
        actor: str,
        extra_recipients: Optional[list[str]] = None,
    ) -> SendNowResult:
        """Queue the period's summary unless it exists, then run one dispatch cycle."""
        payload = MonthlySummaryPayload(
            year=year, month=month, extra_recipients=clean_addresses(extra_recipients or [])
        ).to_json()
        job_id = self._guard.ensure_recurring(JobType.MONTHLY_SUMMARY, payload, created_by=actor)
        result = self._engine.dispatch_due(self._batch_size)
        return SendNowResult(year=year, month=month, queued=job_id is not None, job_id=job_id, dispatch=result)

    def sent_periods(self) -> list[str]:
        return self._guard.active_periods(JobType.MONTHLY_SUMMARY)

    def candidates(self, year: int, month: int) -> dict:
        """
        Records of the month, each flagged already_sent when a monthly summary
        for this period already listed it.
        """
        start, end = month_window(year, month)
        field_name = JobType.MONTHLY_SUMMARY.value
        with self._session_factory() as session:
            sent_onb = sent_record_ids(session, RecordKind.ONBOARDING, field_name, year, month)
            sent_off = sent_record_ids(session, RecordKind.OFFBOARDING, field_name, year, month)

            def rows(records, sent_ids, date_attr):
                return [
                    {
                        "id": r.id,
                        "name": r.full_name,
                        "position_name": r.position_name,
                        "department": r.department,
                        "date": getattr(r, date_attr),
                        "already_sent": r.id in sent_ids,
                    }
                    for r in records
                ]

            return {
                "year": year,
                "month": month,
                "monthly_report_sent": self._guard.exists_monthly_job(year, month),
                "planned": {
                    "onboardings": rows(onboardings_planned(session, start, end), sent_onb, "planned_start"),
                    "offboardings": rows(offboardings_planned(session, start, end), sent_off, "planned_end"),
                },
                "actual": {
                    "onboardings": rows(onboardings_started(session, start, end), sent_onb, "actual_start"),
                    "offboardings": rows(offboardings_ended(session, start, end), sent_off, "actual_end"),
                },
            }


# ── Probation / notice reminders ────────────────────────────────


@dataclass
class ReminderRun:
    onboardings_checked: int = 0
    offboardings_checked: int = 0
    notifications: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "onboardings_checked": self.onboardings_checked,
            "offboardings_checked": self.offboardings_checked,
            "notifications": self.notifications,
            "probation_notifications": sum(1 for n in self.notifications if n["type"].startswith("probation")),
            "notice_notifications": sum(1 for n in self.notifications if n["type"].startswith("notice")),
        }


class ReminderProducer:
    """
    Daily scan of probation and notice periods.

    Probation (onboardings): 30/14/7/3/1 days before the end, one HR warning
    plus, when the employee has an e-mail, a reminder to the employee. On the
    last day a PROBATION_ENDING mail at top priority. Notice (offboardings):
    14/7/3/1 days before the end, one HR warning.

    A record is handled at most once per UTC day; the reminder stamp and the
    enqueued jobs commit in the same transaction.
    """

    CREATED_BY = "system-cron"

    def __init__(self, session_factory, store: JobStore, hr_recipients: list[str]):
        self._session_factory = session_factory
        self._store = store
        self._hr_recipients = clean_addresses(hr_recipients)

    @staticmethod
    def priority_for(days_remaining: int) -> int:
        return 2 if days_remaining <= 3 else 5

    def run(self, now: Optional[datetime] = None) -> ReminderRun:
        now = (now or _utcnow()).astimezone(timezone.utc)
        today = now.date()
        run = ReminderRun()

        with self._session_factory() as session:
            onboardings = onboardings_in_probation(session)
            run.onboardings_checked = len(onboardings)
            for employee in onboardings:
                self._probation(session, employee, now, today, run)

            today_start = datetime.combine(today, time.min, tzinfo=timezone.utc)
            offboardings = offboardings_in_notice(session, today_start)
            run.offboardings_checked = len(offboardings)
            for employee in offboardings:
                self._notice(session, employee, now, today, run)

            session.commit()

        logger.info(
            f"Reminder scan: {run.onboardings_checked} onboarding(s), "
            f"{run.offboardings_checked} offboarding(s), {len(run.notifications)} notification(s)"
        )
        return run

    def _probation(self, session, employee, now: datetime, today: date, run: ReminderRun) -> None:
        if self._stamped_today(employee.last_probation_reminder, today):
            return

        end = employee.probation_end
        days = (_utc_date(end) - today).days
        name = f"{employee.name} {employee.surname}"

        if days in PROBATION_REMINDER_DAYS:
            priority = self.priority_for(days)
            base = dict(
                employee_id=employee.id,
                employee_name=name,
                position=employee.position_name,
                department=employee.department,
                probation_end_date=end,
                days_remaining=days,
            )
            job_ids = [
                self._store.enqueue(
                    JobType.PROBATION_WARNING,
                    ProbationPayload(**base, recipients=self._hr_recipients).to_json(),
                    priority=priority,
                    created_by=self.CREATED_BY,
                    session=session,
                )
            ]
            if employee.email:
                job_ids.append(
                    self._store.enqueue(
                        JobType.PROBATION_REMINDER,
                        ProbationPayload(**base, recipients=[employee.email]).to_json(),
                        priority=priority,
                        created_by=self.CREATED_BY,
                        session=session,
                    )
                )
            run.notifications.append(
                {"type": f"probation_{days}_days", "employee_id": employee.id, "employee": name, "job_ids": job_ids}
            )
        elif days == 0:
            job_id = self._store.enqueue(
                JobType.PROBATION_ENDING,
                ProbationPayload(
                    employee_id=employee.id,
                    employee_name=name,
                    position=employee.position_name,
                    department=employee.department,
                    probation_end_date=end,
                    days_remaining=0,
                    recipients=self._hr_recipients,
                ).to_json(),
                priority=1,
                created_by=self.CREATED_BY,
                session=session,
            )
            run.notifications.append(
                {"type": "probation_ending_today", "employee_id": employee.id, "employee": name, "job_ids": [job_id]}
            )
        else:
            return

        employee.last_probation_reminder = now
        employee.probation_reminders_sent = (employee.probation_reminders_sent or 0) + 1

    def _notice(self, session, employee, now: datetime, today: date, run: ReminderRun) -> None:
        if self._stamped_today(employee.last_notice_reminder, today):
            return

        days = (_utc_date(employee.notice_end) - today).days
        if days not in NOTICE_REMINDER_DAYS:
            return

        name = f"{employee.name} {employee.surname}"
        job_id = self._store.enqueue(
            JobType.NOTICE_WARNING,
            NoticeWarningPayload(
                employee_id=employee.id,
                employee_name=name,
                position=employee.position_name,
                department=employee.department,
                notice_end_date=employee.notice_end,
                days_remaining=days,
                recipients=self._hr_recipients,
            ).to_json(),
            priority=self.priority_for(days),
            created_by=self.CREATED_BY,
            session=session,
        )
        employee.last_notice_reminder = now
        employee.notice_reminders_sent = (employee.notice_reminders_sent or 0) + 1
        run.notifications.append(
            {"type": f"notice_{days}_days", "employee_id": employee.id, "employee": name, "job_ids": [job_id]}
        )

    @staticmethod
    def _stamped_today(stamp: Optional[datetime], today: date) -> bool:
        return stamp is not None and _utc_date(stamp) == today
