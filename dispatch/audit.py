"""
Audit side-effect writer and the "already sent?" oracle.

Rows are appended inside the caller's session so they commit together with
the job's SENT status. Nothing here updates or deletes a change-log row.
"""

import json
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from jobs.base import AuditEntry
from models.change_log import OffboardingChangeLog, OnboardingChangeLog
from models.enums import AuditAction, RecordKind

_LOG_MODELS = {
    RecordKind.ONBOARDING: OnboardingChangeLog,
    RecordKind.OFFBOARDING: OffboardingChangeLog,
}


def change_log_model(kind: RecordKind):
    return _LOG_MODELS[RecordKind(kind)]


class AuditWriter:

    def append(
        self,
        session: Session,
        record_kind: RecordKind,
        record_id: int,
        action: AuditAction,
        field: Optional[str],
        old_value: Optional[str],
        new_value,
        actor: str,
    ) -> None:
        model = change_log_model(record_kind)
        session.add(
            model(
                employee_id=record_id,
                user_id=actor or "system",
                action=AuditAction(action).value,
                field=field,
                old_value=old_value,
                new_value=new_value if isinstance(new_value, str) or new_value is None else json.dumps(new_value),
            )
        )

    def append_many(self, session: Session, entries: Iterable[AuditEntry], actor: str) -> int:
        """Bulk-append MAIL_SENT rows for a successfully sent job."""
        count = 0
        for entry in entries:
            self.append(
                session,
                entry.record_kind,
                entry.record_id,
                AuditAction.MAIL_SENT,
                entry.field,
                entry.old_value,
                entry.new_value,
                actor,
            )
            count += 1
        return count


def sent_record_ids(
    session: Session,
    kind: RecordKind,
    field: str,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> set[int]:
    """Ids of records that have a MAIL_SENT row for this mail kind (and period, if given)."""
    model = change_log_model(kind)
    query = select(model.employee_id, model.new_value).where(
        model.action == AuditAction.MAIL_SENT.value,
        model.field == field,
    )
    return {
        record_id
        for record_id, raw in session.execute(query)
        if _matches_period(raw, year, month)
    }


def already_sent(
    session: Session,
    kind: RecordKind,
    record_id: int,
    field: str,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> bool:
    """
    Was a mail of this kind already sent about the record?

    With year/month, only rows whose stored period matches count.
    """
    model = change_log_model(kind)
    query = select(model.new_value).where(
        model.employee_id == record_id,
        model.action == AuditAction.MAIL_SENT.value,
        model.field == field,
    )
    return any(_matches_period(raw, year, month) for raw in session.scalars(query))


def _matches_period(raw: Optional[str], year: Optional[int], month: Optional[int]) -> bool:
    if year is None and month is None:
        return True
    try:
        value = json.loads(raw or "{}")
    except ValueError:
        return False
    if not isinstance(value, dict):
        return False
    return value.get("year") == year and value.get("month") == month
