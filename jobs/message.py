"""
Free-form mails: SYSTEM_NOTIFICATION and MANUAL_EMAIL.

A system notification is not about any record, so it writes no audit rows;
with no explicit recipients it goes to its channel (default "all").

A manual email always names its recipients. When it is linked to a record
(recordKind + recordId) the send is audited against that record.
"""

from dispatch.errors import EmptyRecipientsError
from jobs.base import AbstractJobHandler, AuditEntry, HandlerContext, PreparedMail
from jobs.payloads import ManualEmailPayload, SystemNotificationPayload
from jobs.render import render_manual_email, render_system_notification
from mail.recipients import clean_addresses
from models.enums import JobType, RecipientChannel


class SystemNotificationJob(AbstractJobHandler):

    def prepare(self, payload: SystemNotificationPayload, context: HandlerContext) -> PreparedMail:
        recipients = clean_addresses(payload.recipients) or context.resolver.recipients_for(
            payload.channel or RecipientChannel.ALL
        )
        if not recipients:
            raise EmptyRecipientsError("No recipients for SYSTEM_NOTIFICATION")
        subject, html = render_system_notification(payload)
        return PreparedMail(subject=subject, html=html, recipients=recipients)

    @property
    def job_type(self) -> JobType:
        return JobType.SYSTEM_NOTIFICATION


class ManualEmailJob(AbstractJobHandler):

    def prepare(self, payload: ManualEmailPayload, context: HandlerContext) -> PreparedMail:
        recipients = clean_addresses(payload.recipients)
        if not recipients:
            raise EmptyRecipientsError("No valid recipients for MANUAL_EMAIL")

        subject, html = render_manual_email(payload)
        audit = []
        if payload.record_kind is not None and payload.record_id is not None:
            audit.append(
                AuditEntry(
                    record_kind=payload.record_kind,
                    record_id=payload.record_id,
                    field=JobType.MANUAL_EMAIL.value,
                    new_value={"to": recipients, "subject": subject},
                )
            )
        return PreparedMail(subject=subject, html=html, recipients=recipients, audit=audit)

    @property
    def job_type(self) -> JobType:
        return JobType.MANUAL_EMAIL
