"""
Cron producer endpoints, meant to be hit once a day by an external scheduler.

POST /cron/probation-notifications → Probation and notice-period warnings

The scan only enqueues; the mails leave with the next dispatch cycle.
"""

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from api.dependencies import get_services
from api.schemas.dispatch import ReminderRunResponse
from dispatch.factory import MailQueueServices

router = APIRouter(prefix="/cron", tags=["cron"])


@router.post("/probation-notifications", response_model=ReminderRunResponse)
async def probation_notifications(
    services: MailQueueServices = Depends(get_services),
) -> ReminderRunResponse:
    run = await run_in_threadpool(services.reminders.run)
    return ReminderRunResponse.model_validate(run.to_dict())
