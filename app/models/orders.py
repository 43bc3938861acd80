"""Order models — orders upserted by remote id, and their line items."""

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class Order(Base):
    """A PrestaShop order. Exactly one row per (boutique_id, remote_order_id)."""

    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    boutique_id = Column(
        Integer, ForeignKey("boutiques.id", ondelete="CASCADE"), nullable=False
    )
    remote_order_id = Column(Integer, nullable=False)
    reference = Column(String(50))
    total_paid = Column(Numeric(10, 2), nullable=False, default=0)
    current_state = Column(String(50), nullable=False, default="unknown")
    payment = Column(String(100))
    order_date = Column(UTCDateTime, nullable=False)
    collected_at = Column(UTCDateTime, nullable=False)

    # Best-effort enrichment — stays NULL when the secondary lookup fails
    customer_name = Column(String(255))
    customer_email = Column(String(255))
    customer_phone = Column(String(50))
    delivery_address = Column(Text)
    delivery_postcode = Column(String(20))
    delivery_city = Column(String(255))
    delivery_country = Column(String(255))

    boutique = relationship("Boutique", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.id",
    )

    __table_args__ = (
        UniqueConstraint("boutique_id", "remote_order_id", name="uq_order_boutique_remote"),
        Index("ix_orders_boutique_date", "boutique_id", "order_date"),
    )

    @property
    def is_complete(self) -> bool:
        """Items and customer name already captured — details need no refetch."""
        return bool(self.items) and bool(self.customer_name)

    @property
    def has_margin_data(self) -> bool:
        if not self.items:
            return False
        return all(item.wholesale_price is not None for item in self.items)

    @property
    def total_cost(self) -> float | None:
        """Wholesale cost of all items, None if any item lacks a cost."""
        total = 0.0
        for item in self.items:
            if item.wholesale_price is None:
                return None
            total += float(item.wholesale_price) * item.quantity
        return round(total, 2)

    @property
    def total_profit(self) -> float | None:
        total = 0.0
        for item in self.items:
            profit = item.total_profit
            if profit is None:
                return None
            total += profit
        return round(total, 2)

    @property
    def margin_percent(self) -> float | None:
        paid = float(self.total_paid or 0)
        if paid <= 0:
            return None
        cost = self.total_cost
        if cost is None:
            return None
        return round((paid - cost) / paid * 100, 1)


class OrderItem(Base):
    """One order line. Owned by its Order and deleted with it."""

    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True)
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    remote_product_id = Column(Integer, nullable=False)
    product_name = Column(String(255), nullable=False)
    product_reference = Column(String(100))
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(10, 2), nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    wholesale_price = Column(Numeric(10, 2))

    order = relationship("Order", back_populates="items")

    @property
    def profit_per_unit(self) -> float | None:
        if not self.wholesale_price or not self.unit_price:
            return None
        return round(float(self.unit_price) - float(self.wholesale_price), 2)

    @property
    def total_profit(self) -> float | None:
        per_unit = self.profit_per_unit
        if per_unit is None or not self.quantity:
            return None
        return round(per_unit * self.quantity, 2)

    @property
    def margin_percent(self) -> float | None:
        if not self.wholesale_price or not self.unit_price:
            return None
        selling = float(self.unit_price)
        if selling <= 0:
            return None
        return round((selling - float(self.wholesale_price)) / selling * 100, 1)
