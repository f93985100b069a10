"""
Pydantic schemas for the /dispatch and /cron endpoints.

DispatchResponse: the counts one dispatch cycle returns.
ReminderRunResponse: what the probation/notice scan enqueued.
"""

from pydantic import BaseModel


class DispatchResponse(BaseModel):
    """Response body for POST /dispatch/run."""

    processed: int   # due jobs looked at in this cycle
    sent: int
    failed: int
    skipped: int     # claimed by a concurrent cycle first


class ReminderNotification(BaseModel):
    type: str        # e.g. "probation_14_days", "probation_ending_today", "notice_3_days"
    employee_id: int
    employee: str
    job_ids: list[int]


class ReminderRunResponse(BaseModel):
    """Response body for POST /cron/probation-notifications."""

    onboardings_checked: int
    offboardings_checked: int
    notifications: list[ReminderNotification]
    probation_notifications: int
    notice_notifications: int
