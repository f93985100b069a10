"""
Monthly summary endpoints.

POST /reports/monthly/ensure       → Queue last month's summary (cron trigger)
POST /reports/monthly/send-now     → Queue a period's summary and dispatch right away
GET  /reports/monthly/sent         → Periods that already have an active-or-sent summary
GET  /reports/monthly/candidates   → Records of a month, flagged if already reported

All of them go through the Idempotency Guard: however often they are called,
a period gets at most one active-or-sent MONTHLY_SUMMARY job.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool

from api.dependencies import get_services
from api.schemas.reports import (
    CandidatesResponse,
    MonthlyEnsureResponse,
    SendNowRequest,
    SendNowResponse,
    SentPeriodsResponse,
)
from dispatch.factory import MailQueueServices

router = APIRouter(prefix="/reports/monthly", tags=["reports"])


@router.post("/ensure", response_model=MonthlyEnsureResponse)
async def ensure_monthly_summary(
    services: MailQueueServices = Depends(get_services),
) -> MonthlyEnsureResponse:
    """Previous month's summary, scheduled for the 1st of this month at 08:00 UTC."""
    result = await run_in_threadpool(services.monthly.ensure_monthly_summary)
    return MonthlyEnsureResponse(**asdict(result))


@router.post("/send-now", response_model=SendNowResponse)
async def send_monthly_summary_now(
    body: SendNowRequest,
    services: MailQueueServices = Depends(get_services),
) -> SendNowResponse:
    result = await run_in_threadpool(
        services.monthly.send_now,
        body.year,
        body.month,
        body.created_by,
        body.extra_recipients,
    )
    return SendNowResponse(
        year=result.year,
        month=result.month,
        queued=result.queued,
        job_id=result.job_id,
        dispatch=result.dispatch.to_dict(),
    )


@router.get("/sent", response_model=SentPeriodsResponse)
async def sent_periods(
    services: MailQueueServices = Depends(get_services),
) -> SentPeriodsResponse:
    return SentPeriodsResponse(periods=await run_in_threadpool(services.monthly.sent_periods))


@router.get("/candidates", response_model=CandidatesResponse)
async def monthly_candidates(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    services: MailQueueServices = Depends(get_services),
) -> CandidatesResponse:
    data = await run_in_threadpool(services.monthly.candidates, year, month)
    return CandidatesResponse.model_validate(data)
