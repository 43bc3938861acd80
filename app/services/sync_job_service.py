"""SyncJobTracker — status and progress bookkeeping for collection jobs.

Lifecycle: pending → running → completed | failed.
items_processed / total_items are advanced while a job runs so the UI can
poll a percentage. Observational only: no collector reads these rows to
decide what to do, and a crashed worker leaves its job "running".

Called by: services/collection_handlers.py, routers/boutiques.py
Depends on: models.SyncJob
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ..models import SyncJob
from ..models.sync import (
    ACTIVE_STATUSES,
    SYNC_COMPLETED,
    SYNC_FAILED,
    SYNC_PENDING,
    SYNC_RUNNING,
)

log = logging.getLogger(__name__)


def progress_pct(job: SyncJob) -> int:
    """Whole-number percentage; 0 when the total is unknown."""
    if not job.total_items:
        return 0
    return min(100, int((job.items_processed or 0) * 100 / job.total_items))


class SyncJobTracker:
    def __init__(self, db: Session):
        self.db = db

    def create(self, boutique_id: int, job_type: str, orders_days: int | None = None) -> SyncJob:
        job = SyncJob(
            boutique_id=boutique_id,
            type=job_type,
            status=SYNC_PENDING,
            started_at=datetime.now(timezone.utc),
            orders_days=orders_days,
        )
        self.db.add(job)
        self.db.commit()
        return job

    def get(self, job_id: int) -> SyncJob | None:
        return self.db.get(SyncJob, job_id)

    def mark_running(self, job: SyncJob, total_items: int | None = None) -> SyncJob:
        job.status = SYNC_RUNNING
        job.items_processed = 0
        if total_items is not None:
            job.total_items = total_items
        self.db.commit()
        return job

    def advance(self, job: SyncJob, items_processed: int, total_items: int | None = None) -> None:
        job.items_processed = items_processed
        if total_items is not None:
            job.total_items = total_items
        self.db.commit()

    def complete(self, job: SyncJob, items_processed: int | None = None) -> SyncJob:
        job.status = SYNC_COMPLETED
        job.completed_at = datetime.now(timezone.utc)
        if items_processed is not None:
            job.items_processed = items_processed
        self.db.commit()
        return job

    def fail(self, job: SyncJob, error: str) -> SyncJob:
        job.status = SYNC_FAILED
        job.completed_at = datetime.now(timezone.utc)
        job.error_message = error
        self.db.commit()
        log.warning(f"Sync job {job.id} ({job.type}) failed: {error}")
        return job

    def find_active(self, boutique_id: int) -> SyncJob | None:
        """Most recent pending or running job for the boutique."""
        return (
            self.db.query(SyncJob)
            .filter(SyncJob.boutique_id == boutique_id, SyncJob.status.in_(ACTIVE_STATUSES))
            .order_by(SyncJob.started_at.desc(), SyncJob.id.desc())
            .first()
        )

    def find_recent(self, boutique_id: int, limit: int = 10) -> list[SyncJob]:
        return (
            self.db.query(SyncJob)
            .filter(SyncJob.boutique_id == boutique_id)
            .order_by(SyncJob.started_at.desc(), SyncJob.id.desc())
            .limit(limit)
            .all()
        )


def sync_job_to_dict(job: SyncJob) -> dict:
    return {
        "id": job.id,
        "boutique_id": job.boutique_id,
        "type": job.type,
        "status": job.status,
        "started_at": job.started_at.isoformat() if job.started_at else None,
        "completed_at": job.completed_at.isoformat() if job.completed_at else None,
        "items_processed": job.items_processed,
        "total_items": job.total_items,
        "progress_pct": progress_pct(job),
        "error_message": job.error_message,
        "orders_days": job.orders_days,
    }
