"""
Wiring — builds the queue's collaborators from settings.

The worker process and the API both call build_services(); tests call it with
a SQLite session factory, fakeredis and a recording transport. Nothing below
this module reads the settings singleton.
"""

from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Optional

from redis import Redis

from config.settings import Settings, settings as default_settings
from dispatch.engine import DispatchEngine
from dispatch.idempotency import IdempotencyGuard
from dispatch.producers import MonthlyReports, ReminderProducer
from mail.recipients import RecipientConfig, RecipientResolver, RecipientStore, split_addresses
from mail.transport import MailTransport, build_transport
from store.jobs import JobStore
from worker.executor import JobExecutor


@dataclass
class MailQueueServices:
    store: JobStore
    guard: IdempotencyGuard
    engine: DispatchEngine
    resolver: RecipientResolver
    recipient_store: Optional[RecipientStore]
    monthly: MonthlyReports
    reminders: ReminderProducer
    batch_size: int


def build_services(
    session_factory,
    redis_client: Optional[Redis] = None,
    transport: Optional[MailTransport] = None,
    settings: Settings = default_settings,
    pool: Optional[Executor] = None,
) -> MailQueueServices:
    store = JobStore(
        session_factory,
        claim_timeout=settings.CLAIM_TIMEOUT_SECONDS,
        default_priority=settings.DEFAULT_PRIORITY,
    )
    recipient_store = RecipientStore(redis_client) if redis_client is not None else None
    resolver = RecipientResolver(RecipientConfig.from_settings(settings), recipient_store)
    executor = JobExecutor(
        session_factory,
        store,
        transport or build_transport(settings),
        resolver,
    )
    engine = DispatchEngine(store, executor, pool=pool)
    guard = IdempotencyGuard(store)

    return MailQueueServices(
        store=store,
        guard=guard,
        engine=engine,
        resolver=resolver,
        recipient_store=recipient_store,
        monthly=MonthlyReports(session_factory, guard, engine, batch_size=settings.DISPATCH_BATCH_SIZE),
        reminders=ReminderProducer(session_factory, store, split_addresses(settings.HR_RECIPIENTS)),
        batch_size=settings.DISPATCH_BATCH_SIZE,
    )
