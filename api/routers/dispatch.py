"""
Dispatch endpoint — run one claim-and-dispatch cycle on demand.

POST /dispatch/run?batch_size=10 → {processed, sent, failed, skipped}

Used for "send now" buttons and by external schedulers that prefer an HTTP
trigger over the worker process. Safe to call while the worker is running:
each job is claimed by exactly one cycle, the other one counts it as skipped.
Job failures never turn into HTTP errors; they are in the counts and in the
job's error field.
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool

from api.dependencies import get_services
from api.schemas.dispatch import DispatchResponse
from dispatch.factory import MailQueueServices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dispatch", tags=["dispatch"])


@router.post("/run", response_model=DispatchResponse)
async def run_dispatch(
    batch_size: int = Query(10, ge=1, le=500, description="Maximum number of due jobs to process"),
    services: MailQueueServices = Depends(get_services),
) -> DispatchResponse:
    result = await run_in_threadpool(services.engine.dispatch_due, batch_size)
    return DispatchResponse(**result.to_dict())
