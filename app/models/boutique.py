"""Boutique (tenant) model — one connected PrestaShop shop."""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship, validates

from ..database import UTCDateTime
from ..utils.encrypted_type import EncryptedText
from .base import Base

LOW_STOCK_MIN = 1
LOW_STOCK_MAX = 100


class Boutique(Base):
    """A PrestaShop shop whose stock and orders are collected.

    Owns its stock snapshots, orders and sync jobs; deleting a boutique
    cascades to all collected data.
    """

    __tablename__ = "boutiques"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    domain = Column(String(255), nullable=False)  # webservice base URL
    api_key = Column(EncryptedText, nullable=False)

    # Branding, filled by collect_branding_data
    logo_url = Column(String(255))
    favicon_url = Column(String(255))
    theme_color = Column(String(50))

    low_stock_threshold = Column(Integer, nullable=False, default=10)

    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(UTCDateTime)

    stock_snapshots = relationship(
        "StockSnapshot",
        back_populates="boutique",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    orders = relationship(
        "Order",
        back_populates="boutique",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    sync_jobs = relationship(
        "SyncJob",
        back_populates="boutique",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @validates("low_stock_threshold")
    def _clamp_threshold(self, key, value):
        if value is None:
            return 10
        return max(LOW_STOCK_MIN, min(LOW_STOCK_MAX, int(value)))

    @property
    def base_url(self) -> str:
        return (self.domain or "").rstrip("/")

    def __repr__(self):
        return f"<Boutique {self.id} {self.name!r}>"
