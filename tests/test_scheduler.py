"""
test_scheduler.py — Tests for APScheduler background jobs

Covers configure_scheduler registration (ids, triggers, messages) and the
_enqueue job function. Jobs are registered on a fresh, never-started
AsyncIOScheduler so nothing actually fires.
"""

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from app.schemas.messages import SyncOrdersMessage, SyncStocksMessage
from app.scheduler import (
    NIGHTLY_ORDERS_JOB_ID,
    ORDERS_JOB_ID,
    STOCKS_JOB_ID,
    _enqueue,
    configure_scheduler,
    scheduler,
    start_scheduler,
)


@pytest.fixture()
def fresh_scheduler():
    return AsyncIOScheduler(timezone="UTC")


def test_configure_registers_three_jobs(fresh_scheduler, recording_queue):
    configure_scheduler(recording_queue, fresh_scheduler)
    jobs = {job.id: job for job in fresh_scheduler.get_jobs()}
    assert set(jobs) == {ORDERS_JOB_ID, STOCKS_JOB_ID, NIGHTLY_ORDERS_JOB_ID}

    orders = jobs[ORDERS_JOB_ID]
    assert isinstance(orders.trigger, IntervalTrigger)
    assert orders.trigger.interval.total_seconds() == 5 * 60
    assert orders.args[1] == SyncOrdersMessage(days=1)

    stocks = jobs[STOCKS_JOB_ID]
    assert stocks.trigger.interval.total_seconds() == 30 * 60
    assert stocks.args[1] == SyncStocksMessage()

    nightly = jobs[NIGHTLY_ORDERS_JOB_ID]
    assert isinstance(nightly.trigger, CronTrigger)
    assert "hour='3'" in str(nightly.trigger)
    assert nightly.args[1] == SyncOrdersMessage(days=30)


def test_jobs_do_not_overlap(fresh_scheduler, recording_queue):
    configure_scheduler(recording_queue, fresh_scheduler)
    for job in fresh_scheduler.get_jobs():
        assert job.max_instances == 1
        assert job.coalesce is True


def test_enqueue_dispatches(recording_queue):
    _enqueue(recording_queue, SyncStocksMessage())
    assert recording_queue.messages == [SyncStocksMessage()]


def test_enqueue_swallows_dispatch_errors(recording_queue):
    recording_queue.fail = True
    _enqueue(recording_queue, SyncOrdersMessage(days=1))
    assert recording_queue.messages == []


def test_start_respects_disabled_flag(recording_queue):
    # SCHEDULER_ENABLED=false in conftest
    start_scheduler(recording_queue)
    assert not scheduler.running
    assert scheduler.get_jobs() == []
