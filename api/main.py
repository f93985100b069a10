"""
FastAPI application factory.

This file:
1. Creates the FastAPI app
2. Runs startup logic (create DB tables, connect to Redis, build queue services)
3. Registers all routers (jobs, dispatch, reports, cron, settings, health)
4. Runs shutdown logic (close connections)

The `lifespan` context manager is FastAPI's way of handling startup/shutdown.

To run:  uvicorn api.main:app --host 0.0.0.0 --port 8000 --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from redis import Redis
from redis.asyncio import Redis as AsyncRedis

from config.settings import settings
from dispatch.factory import build_services
from models.base import async_engine, Base, SyncSessionLocal
from api.routers import cron, dispatch, health, jobs, reports
from api.routers import settings as settings_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Runs on startup (before yield) and shutdown (after yield).

    Startup:
    - Creates all DB tables if they don't exist (safe to run multiple times)
    - Connects to Redis (async client for health, sync client for the
      recipient settings store used inside dispatch cycles)
    - Builds the queue services (Job Store, guard, dispatch engine, producers)

    Shutdown:
    - Closes Redis connections
    - Disposes the DB engine (closes connection pool)
    """
    # ── Startup ─────────────────────────────────────────────────
    logger.info("Creating database tables...")
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.redis = AsyncRedis.from_url(settings.redis_url)
    sync_redis = Redis.from_url(settings.redis_url)
    app.state.services = build_services(SyncSessionLocal, redis_client=sync_redis)
    transport = "SMTP " + settings.SMTP_HOST if settings.SMTP_HOST else "log only"
    logger.info(f"API ready — mail transport: {transport}")

    yield  # app is running and serving requests between startup and shutdown

    # ── Shutdown ────────────────────────────────────────────────
    sync_redis.close()
    await app.state.redis.close()
    await async_engine.dispose()
    logger.info("API shut down")


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    app = FastAPI(
        title="Mail Queue",
        description="Durable outbound mail queue for HR onboarding/offboarding notifications",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Register routers — each one adds its endpoints to the app
    app.include_router(health.router)
    app.include_router(jobs.router)
    app.include_router(dispatch.router)
    app.include_router(reports.router)
    app.include_router(cron.router)
    app.include_router(settings_router.router)

    return app


# This is what uvicorn imports: `uvicorn api.main:app`
app = create_app()
