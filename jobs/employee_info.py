"""
EMPLOYEE_INFO — informational mail about one onboarding or offboarding.

Example payload:
    {"kind": "onboarding", "id": 42, "to": ["a@x.cz"]}

Recipients come only from the payload; the producer chose them. On success
one MAIL_SENT/EMPLOYEE_INFO row lands in the change log of the record's kind
with the recipient list as its new value.
"""

from dispatch.errors import EmptyRecipientsError
from jobs.base import AbstractJobHandler, AuditEntry, HandlerContext, PreparedMail
from jobs.payloads import EmployeeInfoPayload
from jobs.render import render_employee_info
from mail.recipients import clean_addresses
from models.enums import JobType
from store.records import get_record


class EmployeeInfoJob(AbstractJobHandler):

    def prepare(self, payload: EmployeeInfoPayload, context: HandlerContext) -> PreparedMail:
        recipients = clean_addresses(payload.to)
        if not recipients:
            raise EmptyRecipientsError("Empty recipients")

        record = get_record(context.session, payload.kind, payload.id)
        subject, html = render_employee_info(payload, record)

        return PreparedMail(
            subject=subject,
            html=html,
            recipients=recipients,
            audit=[
                AuditEntry(
                    record_kind=payload.kind,
                    record_id=payload.id,
                    field=JobType.EMPLOYEE_INFO.value,
                    new_value={"to": recipients},
                )
            ],
        )

    @property
    def job_type(self) -> JobType:
        return JobType.EMPLOYEE_INFO
