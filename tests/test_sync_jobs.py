"""
test_sync_jobs.py — Tests for app/services/sync_job_service.py

Called by: pytest
Depends on: app/services/sync_job_service.py
"""

from datetime import datetime, timedelta, timezone

from app.models import SyncJob
from app.services.sync_job_service import SyncJobTracker, progress_pct, sync_job_to_dict


def test_lifecycle(db_session, boutique):
    tracker = SyncJobTracker(db_session)
    job = tracker.create(boutique.id, "both", orders_days=7)
    assert job.status == "pending"
    assert job.started_at is not None
    assert job.completed_at is None

    tracker.mark_running(job, total_items=200)
    assert job.status == "running"
    assert job.items_processed == 0

    tracker.advance(job, 50)
    assert progress_pct(job) == 25

    tracker.complete(job, 200)
    assert job.status == "completed"
    assert job.completed_at is not None
    assert progress_pct(job) == 100


def test_fail_records_error(db_session, boutique):
    tracker = SyncJobTracker(db_session)
    job = tracker.create(boutique.id, "orders")
    tracker.fail(job, "orders: HTTP 500")

    stored = db_session.get(SyncJob, job.id)
    assert stored.status == "failed"
    assert stored.error_message == "orders: HTTP 500"
    assert stored.completed_at is not None


def test_progress_pct_edges(db_session, boutique):
    job = SyncJob(boutique_id=boutique.id, type="stocks", status="running")
    assert progress_pct(job) == 0
    job.total_items = 10
    job.items_processed = 15
    assert progress_pct(job) == 100


def test_find_active_prefers_latest(db_session, boutique):
    tracker = SyncJobTracker(db_session)
    old = tracker.create(boutique.id, "stocks")
    old.started_at = datetime.now(timezone.utc) - timedelta(hours=2)
    done = tracker.create(boutique.id, "orders")
    tracker.complete(done)
    running = tracker.mark_running(tracker.create(boutique.id, "both"))

    assert tracker.find_active(boutique.id).id == running.id

    tracker.complete(running)
    assert tracker.find_active(boutique.id).id == old.id
    tracker.fail(old, "stale")
    assert tracker.find_active(boutique.id) is None


def test_find_recent_limit_and_dict(db_session, boutique):
    tracker = SyncJobTracker(db_session)
    for _ in range(12):
        tracker.create(boutique.id, "stocks")

    recent = tracker.find_recent(boutique.id)
    assert len(recent) == 10
    assert len(tracker.find_recent(boutique.id, limit=3)) == 3

    as_dict = sync_job_to_dict(recent[0])
    assert as_dict["boutique_id"] == boutique.id
    assert as_dict["status"] == "pending"
    assert as_dict["progress_pct"] == 0
    assert as_dict["completed_at"] is None
