"""Read-side stock queries over the append-only snapshot table.

A product's current stock is its row with the greatest collected_at for the
boutique. Several collections per day produce several rows, so "latest"
always aggregates by max timestamp, never by calendar day.

Called by: routers/boutiques.py
Depends on: models.StockSnapshot
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..models import Boutique, StockSnapshot


def latest_collection_date(db: Session, boutique_id: int) -> datetime | None:
    return (
        db.query(func.max(StockSnapshot.collected_at))
        .filter(StockSnapshot.boutique_id == boutique_id)
        .scalar()
    )


def _latest_query(db: Session, boutique_id: int):
    latest = (
        db.query(
            StockSnapshot.remote_product_id.label("product_id"),
            func.max(StockSnapshot.collected_at).label("max_collected"),
        )
        .filter(StockSnapshot.boutique_id == boutique_id)
        .group_by(StockSnapshot.remote_product_id)
        .subquery()
    )
    return db.query(StockSnapshot).join(
        latest,
        (StockSnapshot.remote_product_id == latest.c.product_id)
        & (StockSnapshot.collected_at == latest.c.max_collected),
    ).filter(StockSnapshot.boutique_id == boutique_id)


def latest_stock(db: Session, boutique_id: int) -> list[StockSnapshot]:
    """One row per product: its most recent snapshot."""
    return _latest_query(db, boutique_id).order_by(StockSnapshot.name).all()


def snapshot_at(db: Session, boutique_id: int, collected_at: datetime) -> list[StockSnapshot]:
    """Every row written by the collection run stamped `collected_at`."""
    return (
        db.query(StockSnapshot)
        .filter(
            StockSnapshot.boutique_id == boutique_id,
            StockSnapshot.collected_at == collected_at,
        )
        .order_by(StockSnapshot.remote_product_id)
        .all()
    )


def low_stock_products(db: Session, boutique: Boutique, limit: int = 10) -> list[StockSnapshot]:
    """Products with 0 < quantity < the boutique threshold, lowest first."""
    return (
        _latest_query(db, boutique.id)
        .filter(
            StockSnapshot.quantity > 0,
            StockSnapshot.quantity < boutique.low_stock_threshold,
        )
        .order_by(StockSnapshot.quantity.asc(), StockSnapshot.remote_product_id)
        .limit(limit)
        .all()
    )


def out_of_stock_products(db: Session, boutique_id: int) -> list[StockSnapshot]:
    return (
        _latest_query(db, boutique_id)
        .filter(StockSnapshot.quantity == 0)
        .order_by(StockSnapshot.remote_product_id)
        .all()
    )


def latest_snapshot_stats(db: Session, boutique: Boutique) -> dict:
    """{total_products, out_of_stock, low_stock} over current stock."""
    rows = _latest_query(db, boutique.id).subquery()
    total, out, low = db.query(
        func.count(rows.c.id),
        func.sum(case((rows.c.quantity == 0, 1), else_=0)),
        func.sum(
            case(
                ((rows.c.quantity > 0) & (rows.c.quantity < boutique.low_stock_threshold), 1),
                else_=0,
            )
        ),
    ).one()
    return {
        "total_products": total or 0,
        "out_of_stock": int(out or 0),
        "low_stock": int(low or 0),
    }


def product_history(db: Session, boutique_id: int, product_id: int, days: int = 30) -> list[StockSnapshot]:
    """Snapshots of one product over the last `days` days, newest first."""
    since = datetime.now(timezone.utc) - timedelta(days=days)
    return (
        db.query(StockSnapshot)
        .filter(
            StockSnapshot.boutique_id == boutique_id,
            StockSnapshot.remote_product_id == product_id,
            StockSnapshot.collected_at >= since,
        )
        .order_by(StockSnapshot.collected_at.desc())
        .all()
    )


def count_snapshots(db: Session, boutique_id: int) -> int:
    return (
        db.query(func.count(StockSnapshot.id))
        .filter(StockSnapshot.boutique_id == boutique_id)
        .scalar()
        or 0
    )
