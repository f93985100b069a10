"""
Body renderers — payload (+ the records it refers to) → (subject, html).

Pure functions over Jinja2 templates in jobs/templates/. Autoescaping is on,
so names and free-text content coming from HR forms cannot inject markup.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from jobs.payloads import (
    EmployeeInfoPayload,
    ManualEmailPayload,
    MonthlySummaryPayload,
    NoticeWarningPayload,
    ProbationPayload,
    SystemNotificationPayload,
)
from models.enums import RecordKind

TEMPLATE_DIR = Path(__file__).parent / "templates"


def czdate(value) -> str:
    """Czech short date (d.m.yyyy), em dash for missing values."""
    if value is None:
        return "—"
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, (datetime, date)):
        return f"{value.day}.{value.month}.{value.year}"
    return str(value)


_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["czdate"] = czdate


def _render(template: str, subject: str, heading: Optional[str] = None, **context) -> tuple[str, str]:
    html = _env.get_template(template).render(subject=subject, heading=heading or subject, **context)
    return subject, html


def _paragraphs(text: Optional[str]) -> list[str]:
    return [block.strip() for block in (text or "").split("\n\n") if block.strip()]


def render_employee_info(payload: EmployeeInfoPayload, record=None) -> tuple[str, str]:
    if payload.subject:
        subject = payload.subject
    elif payload.kind == RecordKind.ONBOARDING:
        subject = "Informace k nástupu"
    else:
        subject = "Informace k ukončení pracovního poměru"
    return _render(
        "employee_info.html",
        subject,
        kind=payload.kind.value,
        record=record,
        content=payload.content,
    )


def render_monthly_summary(payload: MonthlySummaryPayload, onboardings, offboardings) -> tuple[str, str]:
    subject = f"Měsíční přehled – {payload.month}.{payload.year}"
    return _render(
        "monthly_summary.html",
        subject,
        heading=f"Personální změny – {payload.month}.{payload.year}",
        year=payload.year,
        month=payload.month,
        onboardings=onboardings,
        offboardings=offboardings,
    )


def render_probation_warning(payload: ProbationPayload) -> tuple[str, str]:
    subject = payload.subject or (
        f"Zkušební doba končí za {payload.days_remaining} dní - {payload.employee_name}"
        if payload.days_remaining is not None
        else f"Končí zkušební doba - {payload.employee_name}"
    )
    return _render("probation_warning.html", subject, heading="Upozornění - Končí zkušební doba", p=payload)


def render_probation_ending(payload: ProbationPayload) -> tuple[str, str]:
    subject = payload.subject or f"DNES končí zkušební doba - {payload.employee_name}"
    return _render("probation_warning.html", subject, heading="Dnes končí zkušební doba", p=payload)


def render_probation_reminder(payload: ProbationPayload) -> tuple[str, str]:
    days = payload.days_remaining
    if payload.subject:
        subject = payload.subject
    elif days is None:
        subject = "Vaše zkušební doba brzy končí"
    else:
        unit = "den" if days == 1 else "dny" if days <= 4 else "dní"
        subject = f"Vaše zkušební doba končí za {days} {unit}"
    return _render("probation_reminder.html", subject, heading="Informace o zkušební době", p=payload)


def render_notice_warning(payload: NoticeWarningPayload) -> tuple[str, str]:
    subject = payload.subject or (
        f"Výpovědní lhůta končí za {payload.days_remaining} dní - {payload.employee_name}"
    )
    return _render("notice_warning.html", subject, heading="Upozornění - Končí výpovědní lhůta", p=payload)


def render_system_notification(payload: SystemNotificationPayload) -> tuple[str, str]:
    return _render("message.html", payload.subject, paragraphs=_paragraphs(payload.content))


def render_manual_email(payload: ManualEmailPayload) -> tuple[str, str]:
    return _render("message.html", payload.subject, paragraphs=_paragraphs(payload.content))
