"""
NOTICE_WARNING — HR is told an offboarding's notice period ends in N days.

Audited against the offboarding record.
"""

from dispatch.errors import EmptyRecipientsError
from jobs.base import AbstractJobHandler, AuditEntry, HandlerContext, PreparedMail
from jobs.payloads import NoticeWarningPayload
from jobs.render import render_notice_warning
from mail.recipients import clean_addresses
from models.enums import JobType, RecipientChannel, RecordKind


class NoticeWarningJob(AbstractJobHandler):

    def prepare(self, payload: NoticeWarningPayload, context: HandlerContext) -> PreparedMail:
        recipients = clean_addresses(payload.recipients) or context.resolver.recipients_for(
            RecipientChannel.ALL
        )
        if not recipients:
            raise EmptyRecipientsError("No recipients for NOTICE_WARNING")

        subject, html = render_notice_warning(payload)
        return PreparedMail(
            subject=subject,
            html=html,
            recipients=recipients,
            audit=[
                AuditEntry(
                    record_kind=RecordKind.OFFBOARDING,
                    record_id=payload.employee_id,
                    field=JobType.NOTICE_WARNING.value,
                    new_value={"daysRemaining": payload.days_remaining, "to": recipients},
                )
            ],
        )

    @property
    def job_type(self) -> JobType:
        return JobType.NOTICE_WARNING
