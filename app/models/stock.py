"""Stock snapshot model — append-only per-product stock history."""

from sqlalchemy import Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class StockSnapshot(Base):
    """One product's stock level as seen by one collection run.

    Rows are never updated. All rows written by a run share its
    collected_at; a product's current stock is its row with the
    greatest collected_at.
    """

    __tablename__ = "stock_snapshots"
    id = Column(Integer, primary_key=True)
    boutique_id = Column(
        Integer, ForeignKey("boutiques.id", ondelete="CASCADE"), nullable=False
    )
    remote_product_id = Column(Integer, nullable=False)
    reference = Column(String(100))
    name = Column(String(255), nullable=False)
    category = Column(String(255))
    quantity = Column(Integer, nullable=False, default=0)
    collected_at = Column(UTCDateTime, nullable=False)

    boutique = relationship("Boutique", back_populates="stock_snapshots")

    __table_args__ = (
        Index("ix_stock_boutique_collected", "boutique_id", "collected_at"),
        Index(
            "ix_stock_boutique_product_collected",
            "boutique_id",
            "remote_product_id",
            "collected_at",
        ),
    )
