"""
test_order_service.py — Tests for app/services/order_service.py

Called by: pytest
Depends on: app/services/order_service.py
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.models import Order
from app.services.order_service import count_orders, recent_orders, total_revenue


def _add(db, boutique, remote_id, days_ago, paid):
    now = datetime.now(timezone.utc)
    db.add(
        Order(
            boutique_id=boutique.id,
            remote_order_id=remote_id,
            total_paid=Decimal(paid),
            current_state="2",
            order_date=now - timedelta(days=days_ago),
            collected_at=now,
        )
    )
    db.commit()


def test_counts_and_revenue_in_window(db_session, boutique):
    _add(db_session, boutique, 1, 1, "10.50")
    _add(db_session, boutique, 2, 3, "20.25")
    _add(db_session, boutique, 3, 40, "99.00")
    since = datetime.now(timezone.utc) - timedelta(days=7)

    assert count_orders(db_session, boutique.id) == 3
    assert count_orders(db_session, boutique.id, since) == 2
    assert total_revenue(db_session, boutique.id, since) == Decimal("30.75")


def test_empty_boutique(db_session, boutique):
    assert count_orders(db_session, boutique.id) == 0
    assert total_revenue(db_session, boutique.id) == Decimal("0")
    assert recent_orders(db_session, boutique.id) == []


def test_recent_orders_newest_first(db_session, boutique):
    for remote_id, days_ago in [(1, 5), (2, 1), (3, 3)]:
        _add(db_session, boutique, remote_id, days_ago, "1")
    assert [o.remote_order_id for o in recent_orders(db_session, boutique.id, limit=2)] == [2, 3]
