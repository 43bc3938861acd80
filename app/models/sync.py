"""Sync job model — observational progress record for collection runs."""

from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base

SYNC_PENDING = "pending"
SYNC_RUNNING = "running"
SYNC_COMPLETED = "completed"
SYNC_FAILED = "failed"

ACTIVE_STATUSES = (SYNC_PENDING, SYNC_RUNNING)


class SyncJob(Base):
    """Tracks one collection job: pending → running → completed | failed.

    Not authoritative for correctness. A crashed worker leaves its job in
    "running"; nothing reaps it.
    """

    __tablename__ = "sync_jobs"
    id = Column(Integer, primary_key=True)
    boutique_id = Column(
        Integer, ForeignKey("boutiques.id", ondelete="CASCADE"), nullable=False
    )
    type = Column(String(50), nullable=False)  # "stocks", "orders", "both", "orders_chunk"
    status = Column(String(50), nullable=False, default=SYNC_PENDING)
    started_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(UTCDateTime)
    items_processed = Column(Integer)
    total_items = Column(Integer)
    error_message = Column(Text)
    orders_days = Column(Integer)  # 0 = all history

    boutique = relationship("Boutique", back_populates="sync_jobs")

    __table_args__ = (
        Index("ix_sync_jobs_boutique_started", "boutique_id", "started_at"),
        Index("ix_sync_jobs_status", "status"),
    )
