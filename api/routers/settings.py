"""
Runtime recipient settings.

GET /settings/recipients → Runtime lists + what each channel resolves to now
PUT /settings/recipients → Replace the runtime lists

The runtime layer lives in Redis and wins over the REPORT_RECIPIENTS_*
environment values. Saving empty lists hands the channel back to the
environment (and then the fallback address). Changes apply to the next job
that resolves recipients; nothing is cached.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool

from api.dependencies import get_services
from api.schemas.recipients import RecipientLists, RecipientSettings
from dispatch.factory import MailQueueServices
from models.enums import RecipientChannel

router = APIRouter(prefix="/settings", tags=["settings"])


def _snapshot(services: MailQueueServices) -> RecipientSettings:
    return RecipientSettings(
        runtime=RecipientLists(**services.recipient_store.load()),
        effective=RecipientLists(
            **{channel.value: services.resolver.recipients_for(channel) for channel in RecipientChannel}
        ),
    )


def _require_store(services: MailQueueServices) -> None:
    if services.recipient_store is None:
        raise HTTPException(status_code=503, detail="Runtime settings store is not configured")


@router.get("/recipients", response_model=RecipientSettings)
async def get_recipients(
    services: MailQueueServices = Depends(get_services),
) -> RecipientSettings:
    _require_store(services)
    return await run_in_threadpool(_snapshot, services)


@router.put("/recipients", response_model=RecipientSettings)
async def put_recipients(
    lists: RecipientLists,
    services: MailQueueServices = Depends(get_services),
) -> RecipientSettings:
    _require_store(services)
    await run_in_threadpool(services.recipient_store.save, lists.model_dump())
    return await run_in_threadpool(_snapshot, services)
