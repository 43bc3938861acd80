"""Read-side order queries — counts and revenue over an order-date window."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import Order


def _in_window(query, boutique_id: int, start: datetime | None, end: datetime | None):
    query = query.filter(Order.boutique_id == boutique_id)
    if start is not None:
        query = query.filter(Order.order_date >= start)
    if end is not None:
        query = query.filter(Order.order_date <= end)
    return query


def count_orders(db: Session, boutique_id: int, start: datetime | None = None, end: datetime | None = None) -> int:
    return _in_window(db.query(func.count(Order.id)), boutique_id, start, end).scalar() or 0


def total_revenue(
    db: Session, boutique_id: int, start: datetime | None = None, end: datetime | None = None
) -> Decimal:
    total = _in_window(db.query(func.sum(Order.total_paid)), boutique_id, start, end).scalar()
    return Decimal(str(total)) if total is not None else Decimal("0")


def recent_orders(db: Session, boutique_id: int, limit: int = 10) -> list[Order]:
    return (
        db.query(Order)
        .filter(Order.boutique_id == boutique_id)
        .order_by(Order.order_date.desc())
        .limit(limit)
        .all()
    )
