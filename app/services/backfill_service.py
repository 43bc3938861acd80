"""Full-history backfill — one stock job plus one queued job per order-id chunk.

Flow: enqueue a stock collection → discover the max order id on the shop →
split [1, max] into chunks of order_chunk_size (5000) → enqueue one
CollectOrdersChunkMessage per chunk. Chunks are disjoint, so workers never
write the same order concurrently, and a failed chunk is retried alone.

Called by: routers/boutiques.py
Depends on: services/order_id_discovery.py, dispatch.py
"""

import logging

import httpx

from ..config import settings
from ..connectors.prestashop import PrestaShopClient
from ..schemas.messages import CollectBoutiqueDataMessage, CollectOrdersChunkMessage
from .order_id_discovery import find_max_order_id, split_id_range

log = logging.getLogger(__name__)


async def dispatch_full_history_sync(
    boutique,
    queue,
    http: httpx.AsyncClient | None = None,
    chunk_size: int | None = None,
) -> dict:
    """Returns {"max_order_id": int | None, "chunks_dispatched": int}."""
    queue.dispatch(
        CollectBoutiqueDataMessage(
            boutique_id=boutique.id, collect_stocks=True, collect_orders=False, orders_days=0
        )
    )

    client = PrestaShopClient.for_boutique(boutique, http=http)
    max_order_id = await find_max_order_id(client)
    if not max_order_id:
        log.warning(f"Boutique {boutique.id}: max order id unknown, no order chunks dispatched")
        return {"max_order_id": None, "chunks_dispatched": 0}

    chunks = split_id_range(max_order_id, chunk_size or settings.order_chunk_size)
    for start_id, end_id in chunks:
        queue.dispatch(
            CollectOrdersChunkMessage(boutique_id=boutique.id, start_id=start_id, end_id=end_id)
        )

    log.info(
        f"Boutique {boutique.id}: full history sync queued, "
        f"{len(chunks)} chunks for ~{max_order_id} orders"
    )
    return {"max_order_id": max_order_id, "chunks_dispatched": len(chunks)}
