"""
Read access to the business records the mail jobs talk about.

Only what the queue needs: the monthly window queries, the probation and
notice candidates for the reminder producer, and single-record lookups for the
per-employee mails. Soft-deleted records never match.
"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.employee import EmployeeOnboarding, EmployeeOffboarding
from models.enums import RecordKind


def month_window(year: int, month: int) -> tuple[datetime, datetime]:
    """
    Half-open UTC window [first of month, first of next month).

    >>> month_window(2024, 2)[1]
    datetime.datetime(2024, 3, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1..12, got {month}")
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def onboardings_started(session: Session, start: datetime, end: datetime) -> list[EmployeeOnboarding]:
    query = (
        select(EmployeeOnboarding)
        .where(
            EmployeeOnboarding.deleted_at.is_(None),
            EmployeeOnboarding.actual_start >= start,
            EmployeeOnboarding.actual_start < end,
        )
        .order_by(EmployeeOnboarding.actual_start, EmployeeOnboarding.id)
    )
    return list(session.scalars(query))


def offboardings_ended(session: Session, start: datetime, end: datetime) -> list[EmployeeOffboarding]:
    query = (
        select(EmployeeOffboarding)
        .where(
            EmployeeOffboarding.deleted_at.is_(None),
            EmployeeOffboarding.actual_end >= start,
            EmployeeOffboarding.actual_end < end,
        )
        .order_by(EmployeeOffboarding.actual_end, EmployeeOffboarding.id)
    )
    return list(session.scalars(query))


def get_record(session: Session, kind: RecordKind, record_id: int):
    """Onboarding or offboarding record by id, or None."""
    model = EmployeeOnboarding if RecordKind(kind) == RecordKind.ONBOARDING else EmployeeOffboarding
    return session.get(model, record_id)


def onboardings_planned(session: Session, start: datetime, end: datetime) -> list[EmployeeOnboarding]:
    query = (
        select(EmployeeOnboarding)
        .where(
            EmployeeOnboarding.deleted_at.is_(None),
            EmployeeOnboarding.planned_start >= start,
            EmployeeOnboarding.planned_start < end,
        )
        .order_by(EmployeeOnboarding.planned_start, EmployeeOnboarding.id)
    )
    return list(session.scalars(query))


def offboardings_planned(session: Session, start: datetime, end: datetime) -> list[EmployeeOffboarding]:
    query = (
        select(EmployeeOffboarding)
        .where(
            EmployeeOffboarding.deleted_at.is_(None),
            EmployeeOffboarding.planned_end >= start,
            EmployeeOffboarding.planned_end < end,
        )
        .order_by(EmployeeOffboarding.planned_end, EmployeeOffboarding.id)
    )
    return list(session.scalars(query))


def onboardings_in_probation(session: Session) -> list[EmployeeOnboarding]:
    """Started, not deleted, with a probation end date."""
    query = (
        select(EmployeeOnboarding)
        .where(
            EmployeeOnboarding.deleted_at.is_(None),
            EmployeeOnboarding.actual_start.is_not(None),
            EmployeeOnboarding.probation_end.is_not(None),
        )
        .order_by(EmployeeOnboarding.id)
    )
    return list(session.scalars(query))


def offboardings_in_notice(session: Session, today_start: datetime) -> list[EmployeeOffboarding]:
    """Not deleted, still employed on today_start, with a notice end date."""
    query = (
        select(EmployeeOffboarding)
        .where(
            EmployeeOffboarding.deleted_at.is_(None),
            EmployeeOffboarding.notice_end.is_not(None),
            EmployeeOffboarding.planned_end >= today_start,
        )
        .order_by(EmployeeOffboarding.id)
    )
    return list(session.scalars(query))
