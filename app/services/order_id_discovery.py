"""Max order id discovery and id-range helpers for the legacy order scan.

The webservice has no count or max endpoint, so the highest order id is
found in three steps, each a fallback for the previous one:
  1. ask for one order sorted by id descending
  2. probe fixed candidate ids (200000, 150000, ...) until one exists
  3. search forward from that id: step 10000, halved on every miss,
     stop once the step drops below 100

Step 3 is a coarse search: the result is the last id that answered, at
most ~100 below the true maximum.

Called by: services/order_collector.py, services/backfill_service.py
Depends on: connectors/prestashop.py
"""

import logging

from ..config import settings
from ..connectors.prestashop import PrestaShopClient, RemoteApiError
from ..utils import safe_int
from ..utils.normalization import as_record_list

log = logging.getLogger(__name__)

PROBE_CANDIDATES = (200000, 150000, 100000, 50000, 10000, 5000, 1000)
INITIAL_STEP = 10000
MIN_STEP = 100


async def max_id_from_sorted_listing(client: PrestaShopClient) -> int | None:
    """Step 1: highest id via sort=[id_DESC]&limit=1, None if unsupported."""
    try:
        data = await client.get(
            "orders",
            params={"display": "[id]", "limit": "1", "sort": "[id_DESC]"},
            timeout=settings.prestashop_detail_timeout,
        )
    except RemoteApiError as e:
        log.info(f"Sorted order listing unavailable on {client.base_url}: {e}")
        return None

    orders = as_record_list(data, "orders")
    if not orders:
        return None
    return safe_int(orders[0].get("id"))


async def order_exists(client: PrestaShopClient, order_id: int) -> bool:
    return await client.exists(f"orders/{order_id}", timeout=settings.prestashop_probe_timeout)


async def search_forward_for_max(
    client: PrestaShopClient,
    start_id: int,
    step: int = INITIAL_STEP,
    min_step: int = MIN_STEP,
) -> int:
    """Step 3: climb from a known id; halve the step on each miss."""
    current_max = start_id
    while step >= min_step:
        candidate = current_max + step
        if await order_exists(client, candidate):
            current_max = candidate
        else:
            step //= 2
    return current_max


async def find_max_order_id(client: PrestaShopClient) -> int | None:
    """Highest existing order id, or None when no probe succeeds."""
    max_id = await max_id_from_sorted_listing(client)
    if max_id:
        return max_id

    for candidate in PROBE_CANDIDATES:
        if await order_exists(client, candidate):
            log.info(f"Order {candidate} exists on {client.base_url}, searching forward")
            return await search_forward_for_max(client, candidate)

    log.warning(f"Could not determine max order id for {client.base_url}")
    return None


def legacy_scan_floor(max_order_id: int, days: int) -> int:
    """Lowest id the legacy scan visits for a `days` window.

    Ids are not chronological, so the range is an estimate (~100 orders/day)
    and the scan never stops early on an old order. days <= 0 (all history)
    scans from id 1.
    """
    if days <= 0 or days > 3650:
        return 1
    if days > 365:
        estimated = days * 100
    else:
        estimated = max(1000, days * 100)
    return max(1, max_order_id - estimated)


def split_id_range(max_id: int, chunk_size: int | None = None, start_id: int = 1) -> list[tuple[int, int]]:
    """Split [start_id, max_id] into contiguous, disjoint (start, end) chunks.

    >>> split_id_range(12345, 5000)
    [(1, 5000), (5001, 10000), (10001, 12345)]
    """
    chunk_size = chunk_size or settings.order_chunk_size
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")
    chunks = []
    for chunk_start in range(start_id, max_id + 1, chunk_size):
        chunks.append((chunk_start, min(chunk_start + chunk_size - 1, max_id)))
    return chunks


def descending_batches(start_id: int, end_id: int, batch_size: int) -> list[tuple[int, int]]:
    """(batch_start, batch_end) pairs walking from end_id down to start_id."""
    batches = []
    batch_end = end_id
    while batch_end >= start_id:
        batch_start = max(start_id, batch_end - batch_size + 1)
        batches.append((batch_start, batch_end))
        batch_end = batch_start - 1
    return batches
