"""
Worker pool — runs dispatch cycles on a schedule and processes their jobs
on a thread pool.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                    WorkerPool                            │
    │                                                         │
    │  Cycle Thread                                           │
    │  ┌───────────────────────┐                              │
    │  │ every interval:       │                              │
    │  │ dispatch_due(N)       │                              │
    │  └──────────┬────────────┘                              │
    │             │ map(execute, due job ids)                  │
    │             ▼                                            │
    │  ┌──────────────────────────────────────────┐           │
    │  │ ThreadPoolExecutor (4 threads)            │           │
    │  │  ┌────────┐ ┌────────┐ ┌────────┐ ┌────────┐       │
    │  │  │Thread 1│ │Thread 2│ │Thread 3│ │Thread 4│       │
    │  │  │claim + │ │claim + │ │claim + │ │(idle)  │       │
    │  │  │send    │ │send    │ │send    │ │        │       │
    │  │  └────────┘ └────────┘ └────────┘ └────────┘       │
    │  └──────────────────────────────────────────┘           │
    └─────────────────────────────────────────────────────────┘

The cycle thread waits on a threading.Event instead of time.sleep(), so
stop() wakes it immediately instead of after a full interval.

Other cycles (the API's "send now", a second worker process) may run at the
same time. That is fine: every job is claimed with one conditional UPDATE,
so each one is processed by exactly one of them.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from redis import Redis

from config.settings import Settings, settings as default_settings
from dispatch.factory import build_services
from mail.transport import MailTransport

logger = logging.getLogger(__name__)


class WorkerPool:

    def __init__(
        self,
        db_session_factory,
        redis_client: Redis | None = None,
        transport: MailTransport | None = None,
        settings: Settings = default_settings,
    ):
        self._settings = settings
        self._executor = ThreadPoolExecutor(
            max_workers=settings.WORKER_POOL_SIZE,
            thread_name_prefix="mail-worker",
        )
        self._services = build_services(
            db_session_factory,
            redis_client=redis_client,
            transport=transport,
            settings=settings,
            pool=self._executor,
        )
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def engine(self):
        return self._services.engine

    def start(self) -> None:
        """Start the thread that runs a dispatch cycle every DISPATCH_INTERVAL seconds."""
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._cycle_loop, name="dispatch-cycle", daemon=True)
        self._thread.start()
        logger.info(
            f"Worker pool started with {self._settings.WORKER_POOL_SIZE} threads, "
            f"cycle every {self._settings.DISPATCH_INTERVAL}s"
        )

    def stop(self) -> None:
        """Signal the cycle thread to stop, let the current cycle finish, shut down the pool."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
        self._executor.shutdown(wait=True)
        logger.info("Worker pool stopped")

    def run_cycle(self):
        """One dispatch cycle. Exceptions here mean the store itself is unreachable."""
        return self._services.engine.dispatch_due(self._settings.DISPATCH_BATCH_SIZE)

    def _cycle_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_cycle()
            except Exception as e:
                logger.error(f"Dispatch cycle error: {e}", exc_info=True)
            self._stop_event.wait(self._settings.DISPATCH_INTERVAL)
