"""Tests for the mail body renderers."""

from datetime import date, datetime, timezone

from jobs.payloads import (
    EmployeeInfoPayload,
    ManualEmailPayload,
    MonthlySummaryPayload,
    NoticeWarningPayload,
    ProbationPayload,
)
from jobs.render import (
    czdate,
    render_employee_info,
    render_manual_email,
    render_monthly_summary,
    render_notice_warning,
    render_probation_ending,
    render_probation_reminder,
    render_probation_warning,
)
from models.employee import EmployeeOnboarding
from models.enums import RecordKind


def _probation(days):
    return ProbationPayload(
        employee_id=1,
        employee_name="Jana Nováková",
        position="Analytik",
        probation_end_date=datetime(2025, 3, 31, tzinfo=timezone.utc),
        days_remaining=days,
    )


def test_czdate():
    assert czdate(datetime(2025, 3, 5, 10, 0)) == "5.3.2025"
    assert czdate(date(2024, 12, 31)) == "31.12.2024"
    assert czdate("2025-01-02T00:00:00+00:00") == "2.1.2025"
    assert czdate(None) == "—"


def test_monthly_summary_subject_and_rows():
    onboarding = EmployeeOnboarding(
        id=1, name="Eva", surname="Malá", position_name="Účetní",
        actual_start=datetime(2025, 3, 3, tzinfo=timezone.utc),
    )
    subject, html = render_monthly_summary(MonthlySummaryPayload(year=2025, month=3), [onboarding], [])

    assert subject == "Měsíční přehled – 3.2025"
    assert "Eva Malá" in html
    assert "3.3.2025" in html


def test_employee_info_subjects():
    onboarding = EmployeeInfoPayload(kind=RecordKind.ONBOARDING, id=1)
    offboarding = EmployeeInfoPayload(kind=RecordKind.OFFBOARDING, id=1)
    custom = EmployeeInfoPayload(kind=RecordKind.ONBOARDING, id=1, subject="Vítejte")

    assert render_employee_info(onboarding)[0] == "Informace k nástupu"
    assert render_employee_info(offboarding)[0] == "Informace k ukončení pracovního poměru"
    assert render_employee_info(custom)[0] == "Vítejte"


def test_employee_info_shows_record():
    record = EmployeeOnboarding(id=1, name="Jana", surname="Nováková", title_before="Ing.", department="IT")
    _, html = render_employee_info(EmployeeInfoPayload(kind=RecordKind.ONBOARDING, id=1), record)
    assert "Ing. Jana Nováková" in html
    assert "IT" in html


def test_probation_subjects():
    assert render_probation_warning(_probation(14))[0] == "Zkušební doba končí za 14 dní - Jana Nováková"
    assert render_probation_ending(_probation(0))[0] == "DNES končí zkušební doba - Jana Nováková"
    assert render_probation_reminder(_probation(1))[0] == "Vaše zkušební doba končí za 1 den"
    assert render_probation_reminder(_probation(3))[0] == "Vaše zkušební doba končí za 3 dny"
    assert render_probation_reminder(_probation(7))[0] == "Vaše zkušební doba končí za 7 dní"


def test_probation_warning_body():
    _, html = render_probation_warning(_probation(14))
    assert "Analytik" in html
    assert "31.3.2025" in html


def test_notice_subject():
    payload = NoticeWarningPayload(
        employee_id=2,
        employee_name="Petr Svoboda",
        notice_end_date=datetime(2025, 5, 17, tzinfo=timezone.utc),
        days_remaining=7,
    )
    assert render_notice_warning(payload)[0] == "Výpovědní lhůta končí za 7 dní - Petr Svoboda"


def test_manual_email_paragraphs_are_escaped():
    payload = ManualEmailPayload(
        recipients=["a@x.cz"],
        subject="Ahoj",
        content="První odstavec\n\n<script>alert(1)</script>",
    )
    subject, html = render_manual_email(payload)

    assert subject == "Ahoj"
    assert "<p>První odstavec</p>" in html
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
