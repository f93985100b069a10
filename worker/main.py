"""
Worker process entry point.

This is a SEPARATE process from the FastAPI API server. It runs the
WorkerPool: a background thread that drains due mail jobs every
DISPATCH_INTERVAL seconds, processing each batch on a thread pool.

The main thread just waits for Ctrl+C (SIGINT) or a kill signal (SIGTERM)
to shut down gracefully.

To run:
    python -m worker.main

In Docker:
    command: python -m worker.main

Running more than one worker process is safe; jobs are claimed atomically.
"""

import logging
import signal
import threading

from redis import Redis

from config.settings import settings
from models.base import Base, sync_engine, SyncSessionLocal
from worker.pool import WorkerPool

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    # Ensure tables exist before the first cycle queries them.
    # Safe to call multiple times; a no-op once the API created them.
    logger.info("Ensuring database tables exist...")
    Base.metadata.create_all(sync_engine)

    redis_client = Redis.from_url(settings.redis_url)

    pool = WorkerPool(SyncSessionLocal, redis_client=redis_client)
    pool.start()

    # ── Graceful shutdown on Ctrl+C or SIGTERM ──────────────────
    shutdown_event = threading.Event()

    def shutdown(signum, frame):
        logger.info("Shutdown signal received, stopping...")
        shutdown_event.set()

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    logger.info("Worker process running. Press Ctrl+C to stop.")

    # Block the main thread until shutdown signal
    # (using Event.wait() instead of signal.pause() for Windows compatibility)
    shutdown_event.wait()

    pool.stop()
    redis_client.close()
    logger.info("Worker process exited")


if __name__ == "__main__":
    main()
