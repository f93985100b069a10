"""
Append-only change-log tables, one per business-record kind.

A MAIL_SENT row proves that a notification about the record went out. Rows
are only ever inserted, and only after the transport accepted the mail; later
they answer "was this employee already mailed this month?".
"""

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class _ChangeLogColumns:
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    field: Mapped[str | None] = mapped_column(String(100), nullable=True)
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class OnboardingChangeLog(_ChangeLogColumns, Base):
    __tablename__ = "onboarding_change_log"


class OffboardingChangeLog(_ChangeLogColumns, Base):
    __tablename__ = "offboarding_change_log"
