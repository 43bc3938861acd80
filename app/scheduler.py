"""Background scheduler — periodic collection triggers.

Jobs only enqueue messages on the DispatchQueue; the collection itself runs
in the queue workers.
  - Orders sync: every 5 min, last 1 day (fresh dashboard numbers)
  - Stocks sync: every 30 min, all boutiques
  - Nightly orders sync: 03:00, last 30 days (catches late status changes)

Intervals come from settings (orders_sync_interval_min, ...).
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .config import settings
from .schemas.messages import SyncOrdersMessage, SyncStocksMessage

log = logging.getLogger(__name__)

ORDERS_JOB_ID = "sync_orders_recent"
STOCKS_JOB_ID = "sync_stocks"
NIGHTLY_ORDERS_JOB_ID = "sync_orders_nightly"

scheduler = AsyncIOScheduler(timezone="UTC")


def _enqueue(queue, message) -> None:
    try:
        queue.dispatch(message)
    except Exception as e:
        log.error(f"Scheduler could not enqueue {type(message).__name__}: {e}")


def configure_scheduler(queue, sched: AsyncIOScheduler | None = None) -> AsyncIOScheduler:
    """Register the periodic sync jobs (idempotent). Does not start the scheduler."""
    sched = sched or scheduler

    sched.add_job(
        _enqueue,
        IntervalTrigger(minutes=settings.orders_sync_interval_min),
        args=[queue, SyncOrdersMessage(days=settings.orders_sync_days)],
        id=ORDERS_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    sched.add_job(
        _enqueue,
        IntervalTrigger(minutes=settings.stocks_sync_interval_min),
        args=[queue, SyncStocksMessage()],
        id=STOCKS_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    sched.add_job(
        _enqueue,
        CronTrigger(hour=settings.nightly_orders_sync_hour, minute=0),
        args=[queue, SyncOrdersMessage(days=settings.nightly_orders_sync_days)],
        id=NIGHTLY_ORDERS_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    log.info(
        f"Scheduler configured — orders every {settings.orders_sync_interval_min} min, "
        f"stocks every {settings.stocks_sync_interval_min} min, "
        f"nightly orders at {settings.nightly_orders_sync_hour:02d}:00"
    )
    return sched


def start_scheduler(queue) -> None:
    if not settings.scheduler_enabled:
        log.info("Scheduler disabled (SCHEDULER_ENABLED=false)")
        return
    configure_scheduler(queue)
    if not scheduler.running:
        scheduler.start()


def stop_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        log.info("Scheduler stopped")
