"""
Health check endpoint.

Checks database and Redis connectivity and reports how many jobs are waiting.
A growing "queued" number with a healthy database usually means no worker is
running (or SMTP keeps failing and jobs pile up as FAILED; see /jobs/stats).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select
from redis.asyncio import Redis

from api.dependencies import get_db, get_redis
from models.enums import JobStatus
from models.job import MailJob

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
) -> dict:
    """Check that the database and Redis are reachable."""
    queued = (
        await db.execute(select(func.count(MailJob.id)).where(MailJob.status == JobStatus.QUEUED.value))
    ).scalar() or 0

    # Redis only holds runtime recipient settings; without it the
    # environment layer still resolves recipients
    await redis.ping()

    return {"status": "healthy", "database": "ok", "redis": "ok", "queued": queued}
