"""
Business records the queue reads (and the probation producer annotates).

The HR application owns these tables; the mail queue only needs the columns
below: names for the mail bodies, the planned/actual dates that decide which
monthly summary a record belongs to, and the probation/notice bookkeeping.
Records are soft-deleted (deleted_at) and never show up in summaries once
deleted.
"""

from datetime import datetime

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class _EmployeeColumns:
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title_before: Mapped[str | None] = mapped_column(String(50), nullable=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    surname: Mapped[str] = mapped_column(String(100), nullable=False)
    title_after: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    position_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def full_name(self) -> str:
        parts = [self.title_before, self.name, self.surname, self.title_after]
        return " ".join(p for p in parts if p)


class EmployeeOnboarding(_EmployeeColumns, Base):
    __tablename__ = "employee_onboarding"

    planned_start: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    actual_start: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    probation_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_probation_reminder: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    probation_reminders_sent: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    def __repr__(self) -> str:
        return f"<EmployeeOnboarding {self.id} {self.full_name}>"


class EmployeeOffboarding(_EmployeeColumns, Base):
    __tablename__ = "employee_offboarding"

    planned_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    actual_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    notice_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_notice_reminder: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    notice_reminders_sent: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    def __repr__(self) -> str:
        return f"<EmployeeOffboarding {self.id} {self.full_name}>"
