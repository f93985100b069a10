"""
MONTHLY_SUMMARY — one report of all actual starts and ends in a month.

Example payload:
    {"year": 2024, "month": 2, "extraRecipients": ["boss@x.cz"]}

The month is the half-open UTC window [2024-02-01, 2024-03-01): a start at
2024-02-29T23:59:59Z is in, one at 2024-03-01T00:00:00Z is not. Soft-deleted
records are skipped.

Recipients are the payload's extras plus the "planned" channel, deduplicated;
an empty union fails the job. On success every included record gets its own
MAIL_SENT/MONTHLY_SUMMARY row carrying {"year", "month"}, which is what the
"already sent this month?" lookups read.
"""

from dispatch.errors import EmptyRecipientsError
from jobs.base import AbstractJobHandler, AuditEntry, HandlerContext, PreparedMail
from jobs.payloads import MonthlySummaryPayload
from jobs.render import render_monthly_summary
from mail.recipients import clean_addresses
from models.enums import JobType, RecipientChannel, RecordKind
from store.records import month_window, offboardings_ended, onboardings_started


class MonthlySummaryJob(AbstractJobHandler):

    def prepare(self, payload: MonthlySummaryPayload, context: HandlerContext) -> PreparedMail:
        start, end = month_window(payload.year, payload.month)
        onboardings = onboardings_started(context.session, start, end)
        offboardings = offboardings_ended(context.session, start, end)

        subject, html = render_monthly_summary(payload, onboardings, offboardings)

        recipients = clean_addresses(
            [*payload.extra_recipients, *context.resolver.recipients_for(RecipientChannel.PLANNED)]
        )
        if not recipients:
            raise EmptyRecipientsError(
                "No recipients for the monthly summary (REPORT_RECIPIENTS_PLANNED or extraRecipients)"
            )

        period = {"year": payload.year, "month": payload.month}
        audit = [
            AuditEntry(RecordKind.ONBOARDING, r.id, JobType.MONTHLY_SUMMARY.value, period)
            for r in onboardings
        ] + [
            AuditEntry(RecordKind.OFFBOARDING, r.id, JobType.MONTHLY_SUMMARY.value, period)
            for r in offboardings
        ]

        return PreparedMail(subject=subject, html=html, recipients=recipients, audit=audit)

    @property
    def job_type(self) -> JobType:
        return JobType.MONTHLY_SUMMARY
