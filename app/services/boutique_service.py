"""Boutique creation — persists the shop and schedules its first collection.

Business Rules:
- A new boutique gets one CollectBoutiqueDataMessage: stocks + orders for
  the last new_boutique_orders_days days (30)
- Enqueue failures are logged, never surfaced: the boutique is created anyway

Called by: routers/boutiques.py
Depends on: models.Boutique, dispatch.py
"""

import logging

from sqlalchemy.orm import Session

from ..config import settings
from ..models import Boutique
from ..schemas.messages import CollectBoutiqueDataMessage

log = logging.getLogger(__name__)


def create_boutique(
    db: Session,
    name: str,
    domain: str,
    api_key: str,
    low_stock_threshold: int = 10,
    queue=None,
) -> Boutique:
    boutique = Boutique(
        name=name.strip(),
        domain=domain.strip(),
        api_key=api_key.strip(),
        low_stock_threshold=low_stock_threshold,
    )
    db.add(boutique)
    db.commit()
    log.info(f"Boutique {boutique.id} ({boutique.name}) created, scheduling data collection")

    if queue is None:
        from ..dispatch import queue

    try:
        queue.dispatch(
            CollectBoutiqueDataMessage(
                boutique_id=boutique.id,
                collect_stocks=True,
                collect_orders=True,
                orders_days=settings.new_boutique_orders_days,
            )
        )
    except Exception as e:
        log.error(f"Could not schedule initial collection for boutique {boutique.id}: {e}")
    return boutique
