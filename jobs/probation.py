"""
Probation mails for onboarded employees.

    PROBATION_WARNING   HR is told a probation ends in N days
    PROBATION_REMINDER  the employee is told the same
    PROBATION_ENDING    HR is told the probation ends today

Example payload:
    {"employeeId": 7, "employeeName": "Jana Nováková", "probationEndDate": "2025-03-31T00:00:00Z",
     "daysRemaining": 14, "recipients": ["hr@company.com"]}

HR-facing mails fall back to the "all" channel when the payload names no
recipients; the employee reminder has nobody to fall back to.
"""

from abc import abstractmethod

from dispatch.errors import EmptyRecipientsError
from jobs.base import AbstractJobHandler, AuditEntry, HandlerContext, PreparedMail
from jobs.payloads import ProbationPayload
from jobs.render import render_probation_ending, render_probation_reminder, render_probation_warning
from mail.recipients import clean_addresses
from models.enums import JobType, RecipientChannel, RecordKind


class _ProbationJob(AbstractJobHandler):

    falls_back_to_channel = True

    @abstractmethod
    def render(self, payload: ProbationPayload) -> tuple[str, str]:
        ...

    def prepare(self, payload: ProbationPayload, context: HandlerContext) -> PreparedMail:
        recipients = clean_addresses(payload.recipients)
        if not recipients and self.falls_back_to_channel:
            recipients = context.resolver.recipients_for(RecipientChannel.ALL)
        if not recipients:
            raise EmptyRecipientsError(f"No recipients for {self.job_type.value}")

        subject, html = self.render(payload)
        return PreparedMail(
            subject=subject,
            html=html,
            recipients=recipients,
            audit=[
                AuditEntry(
                    record_kind=RecordKind.ONBOARDING,
                    record_id=payload.employee_id,
                    field=self.job_type.value,
                    new_value={"daysRemaining": payload.days_remaining, "to": recipients},
                )
            ],
        )


class ProbationWarningJob(_ProbationJob):

    def render(self, payload: ProbationPayload) -> tuple[str, str]:
        return render_probation_warning(payload)

    @property
    def job_type(self) -> JobType:
        return JobType.PROBATION_WARNING


class ProbationEndingJob(_ProbationJob):

    def render(self, payload: ProbationPayload) -> tuple[str, str]:
        return render_probation_ending(payload)

    @property
    def job_type(self) -> JobType:
        return JobType.PROBATION_ENDING


class ProbationReminderJob(_ProbationJob):

    falls_back_to_channel = False

    def render(self, payload: ProbationPayload) -> tuple[str, str]:
        return render_probation_reminder(payload)

    @property
    def job_type(self) -> JobType:
        return JobType.PROBATION_REMINDER
