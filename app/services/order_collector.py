"""Order collection — date-filtered sync, legacy id scan, chunked backfill.

Retrieval strategies:
  A. Date-filtered (default): list ids with filter[date_add]=[cutoff,],
     then fetch each order in batches of 50.
  B. Legacy scan (fallback when A's listing fails): discover the max order
     id, walk ids downward in batches of 50, keep orders dated on or after
     the cutoff. Ids are not chronological, so the whole estimated range is
     scanned.
  Chunk: scan one [start_id, end_id] range with no date filter, used by the
     full-history backfill (one queued task per 5000 ids).

Persistence is an upsert keyed by (boutique_id, remote_order_id). Orders
that already have items and a customer name skip the detail refetch.
Accumulated orders are flushed to the database every ~50 and dropped from
memory.

Best-effort enrichment (customer, delivery address, wholesale price)
never aborts an order; failures leave the fields NULL.

Called by: services/collector.py
Depends on: connectors/prestashop.py, services/order_id_discovery.py, models
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from ..config import settings
from ..connectors.prestashop import PrestaShopClient, RemoteApiError
from ..models import Order, OrderItem
from ..utils import safe_decimal, safe_int
from ..utils.normalization import (
    as_record_list,
    as_row_list,
    normalize_localized_text,
    normalize_reference,
    parse_prestashop_datetime,
)
from .order_id_discovery import descending_batches, find_max_order_id, legacy_scan_floor

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int | None], None]

_ZERO = Decimal("0")


class OrderCollector:
    """Collects one boutique's orders into the database.

    Holds the per-run state: the wholesale price memo and progress counters.
    Build a new one per collection run.
    """

    def __init__(
        self,
        db,
        boutique,
        client: PrestaShopClient,
        logger=None,
        on_progress: ProgressCallback | None = None,
        batch_size: int | None = None,
        flush_threshold: int | None = None,
        pause_seconds: float | None = None,
    ):
        self.db = db
        self.boutique = boutique
        self.client = client
        self.log = logger or log
        self.on_progress = on_progress
        self.batch_size = batch_size or settings.order_batch_size
        self.flush_threshold = flush_threshold or settings.order_flush_threshold
        self.pause_seconds = (
            settings.batch_pause_seconds if pause_seconds is None else pause_seconds
        )
        self._wholesale_cache: dict[int, Decimal | None] = {}
        self._processed = 0

    # ── Entry points ─────────────────────────────────────────────────

    async def collect_since(self, cutoff: datetime, days: int) -> dict:
        """Strategy A, falling back to B. Returns orders_count and saved_count."""
        try:
            order_ids = await self.fetch_order_ids_since(cutoff)
        except RemoteApiError as e:
            self.log.warning(
                f"Boutique {self.boutique.id}: date-filtered order listing failed ({e}), "
                "falling back to id scan"
            )
            return await self.collect_legacy(cutoff, days)

        self.log.info(f"Boutique {self.boutique.id}: {len(order_ids)} order ids since {cutoff:%Y-%m-%d}")
        return await self.collect_by_ids(order_ids)

    async def collect_by_ids(self, order_ids: list[int]) -> dict:
        total = len(order_ids)
        fetched = 0
        saved = 0
        batches = [order_ids[i:i + self.batch_size] for i in range(0, total, self.batch_size)]

        for index, batch_ids in enumerate(batches, start=1):
            self.log.debug(
                f"Boutique {self.boutique.id}: order batch {index}/{len(batches)} ({len(batch_ids)} ids)"
            )
            orders = await self.fetch_orders(batch_ids, quiet=False)
            fetched += len(orders)
            saved += await self.save_orders(orders)
            self._advance(len(batch_ids), total)
            if index < len(batches):
                await self._pause()

        return {"orders_count": fetched, "saved_count": saved}

    async def collect_legacy(self, cutoff: datetime, days: int) -> dict:
        max_order_id = await find_max_order_id(self.client)
        if not max_order_id:
            self.log.warning(f"Boutique {self.boutique.id}: could not determine max order id")
            return {"orders_count": 0, "saved_count": 0}

        min_order_id = legacy_scan_floor(max_order_id, days)
        if min_order_id == 1:
            self.log.warning(f"Boutique {self.boutique.id}: scanning every order id up to {max_order_id}")
        self.log.info(
            f"Boutique {self.boutique.id}: legacy scan of order ids {min_order_id}..{max_order_id}"
        )
        found, saved = await self.scan_range(min_order_id, max_order_id, cutoff=cutoff)
        return {"orders_count": found, "saved_count": saved}

    async def collect_chunk(self, start_id: int, end_id: int) -> dict:
        found, saved = await self.scan_range(start_id, end_id)
        return {"orders_found": found, "saved_count": saved}

    # ── Retrieval ────────────────────────────────────────────────────

    async def fetch_order_ids_since(self, cutoff: datetime) -> list[int]:
        data = await self.client.get(
            "orders",
            params={
                "display": "[id]",
                "filter[date_add]": f"[{cutoff:%Y-%m-%d},]",
                "sort": "[id_DESC]",
            },
            timeout=settings.prestashop_listing_timeout,
        )
        ids = [safe_int(o.get("id")) for o in as_record_list(data, "orders")]
        return [i for i in ids if i]

    async def fetch_order(self, order_id: int, quiet: bool = True) -> dict | None:
        """One order payload. Scans expect holes, so misses are quiet there."""
        try:
            data = await self.client.get(
                f"orders/{order_id}", timeout=settings.prestashop_detail_timeout
            )
        except RemoteApiError as e:
            if not quiet:
                self.log.warning(f"Boutique {self.boutique.id}: failed to fetch order {order_id}: {e}")
            return None
        if isinstance(data, dict) and isinstance(data.get("order"), dict):
            return data["order"]
        return None

    async def fetch_orders(self, order_ids: list[int], quiet: bool = True) -> list[dict]:
        """Fetch a batch concurrently (at most batch_size in flight)."""
        sem = asyncio.Semaphore(self.batch_size)

        async def _one(order_id):
            async with sem:
                return await self.fetch_order(order_id, quiet=quiet)

        results = await asyncio.gather(*[_one(i) for i in order_ids])
        return [r for r in results if r]

    async def scan_range(self, start_id: int, end_id: int, cutoff: datetime | None = None) -> tuple[int, int]:
        """Walk [start_id, end_id] downward; returns (orders found, orders saved)."""
        total = max(0, end_id - start_id + 1)
        pending: list[dict] = []
        found = 0
        saved = 0
        batches = descending_batches(start_id, end_id, self.batch_size)

        for index, (batch_start, batch_end) in enumerate(batches, start=1):
            orders = await self.fetch_orders(list(range(batch_end, batch_start - 1, -1)))
            for order in orders:
                if cutoff is not None:
                    order_date = parse_prestashop_datetime(order.get("date_add"))
                    # Older orders are skipped, not a stop signal
                    if order_date is None or order_date < cutoff:
                        continue
                pending.append(order)
                found += 1
            self._advance(batch_end - batch_start + 1, total)

            if len(pending) >= self.flush_threshold:
                self.log.debug(f"Boutique {self.boutique.id}: flushing {len(pending)} scanned orders")
                saved += await self.save_orders(pending)
                pending = []

            if index < len(batches):
                await self._pause()

        if pending:
            saved += await self.save_orders(pending)
        return found, saved

    # ── Persistence ──────────────────────────────────────────────────

    async def save_orders(self, payloads: list[dict]) -> int:
        """Upsert payloads; commits every flush_threshold orders. Returns saved count.

        Each order runs in its own SAVEPOINT: a bad order is rolled back and
        logged, the rest of the batch is kept.
        """
        collected_at = datetime.now(timezone.utc)
        boutique_id = self.boutique.id
        saved = 0
        for payload in payloads:
            try:
                with self.db.begin_nested():
                    stored = await self.upsert_order(payload, collected_at)
            except Exception as e:
                self.log.warning(f"Boutique {boutique_id}: order {payload.get('id')} skipped: {e}")
                continue
            if stored:
                saved += 1
            if saved and saved % self.flush_threshold == 0:
                self.db.commit()
        self.db.commit()
        return saved

    def find_order(self, remote_order_id: int) -> Order | None:
        return (
            self.db.query(Order)
            .filter_by(boutique_id=self.boutique.id, remote_order_id=remote_order_id)
            .first()
        )

    async def upsert_order(self, payload: dict, collected_at: datetime) -> bool:
        """Find-or-create the order, refresh its header, fetch missing details.

        Returns False when the order was already complete and details were
        not refetched.
        """
        remote_id = safe_int(payload.get("id"))
        if not remote_id:
            return False

        order = self.find_order(remote_id)
        is_new = order is None
        if is_new:
            order = Order(boutique_id=self.boutique.id, remote_order_id=remote_id)

        order.reference = normalize_reference(payload.get("reference"))
        order.total_paid = safe_decimal(payload.get("total_paid"), default=_ZERO)
        order.current_state = normalize_reference(payload.get("current_state")) or "unknown"
        order.payment = normalize_localized_text(payload.get("payment"), default=None)
        order.order_date = parse_prestashop_datetime(payload.get("date_add")) or collected_at
        order.collected_at = collected_at

        if is_new:
            self.db.add(order)
            self.db.flush()
        elif order.is_complete:
            return False

        await self.attach_details(order, remote_id, with_items=not order.items)
        return True

    # ── Enrichment ───────────────────────────────────────────────────

    async def attach_details(self, order: Order, remote_id: int, with_items: bool) -> None:
        """Fetch the order detail; add line items (if none yet), customer, address."""
        detail = await self.fetch_order(remote_id, quiet=False)
        if detail is None:
            return

        customer_id = safe_int(detail.get("id_customer"))
        if customer_id:
            customer = await self.fetch_customer(customer_id)
            if customer:
                order.customer_name = customer["name"]
                order.customer_email = customer["email"]

        address_id = safe_int(detail.get("id_address_delivery"))
        if address_id:
            address = await self.fetch_address(address_id)
            if address:
                order.delivery_address = address["address"]
                order.delivery_postcode = address["postcode"]
                order.delivery_city = address["city"]
                order.delivery_country = address["country"]
                order.customer_phone = address["phone"]

        if not with_items:
            return

        rows = as_row_list((detail.get("associations") or {}).get("order_rows"))
        for row in rows:
            product_id = safe_int(row.get("product_id")) or 0
            unit_price = safe_decimal(row.get("product_price"), default=_ZERO)
            total_price = safe_decimal(row.get("total_price_tax_incl"), default=None)
            order.items.append(
                OrderItem(
                    remote_product_id=product_id,
                    product_name=normalize_localized_text(row.get("product_name"), default="Unknown product"),
                    product_reference=normalize_reference(row.get("product_reference")),
                    quantity=safe_int(row.get("product_quantity")) or 1,
                    unit_price=unit_price,
                    total_price=unit_price if total_price is None else total_price,
                    wholesale_price=await self.fetch_wholesale_price(product_id) if product_id > 0 else None,
                )
            )

    async def fetch_customer(self, customer_id: int) -> dict | None:
        data = await self.client.get_optional(
            f"customers/{customer_id}", timeout=settings.prestashop_detail_timeout
        )
        customer = data.get("customer") if isinstance(data, dict) else None
        if not isinstance(customer, dict) or not customer:
            return None
        first = normalize_localized_text(customer.get("firstname"), default="")
        last = normalize_localized_text(customer.get("lastname"), default="")
        name = f"{first} {last}".strip()
        return {"name": name or None, "email": normalize_reference(customer.get("email"))}

    async def fetch_address(self, address_id: int) -> dict | None:
        data = await self.client.get_optional(
            f"addresses/{address_id}", timeout=settings.prestashop_detail_timeout
        )
        address = data.get("address") if isinstance(data, dict) else None
        if not isinstance(address, dict) or not address:
            return None
        fields = {
            k: normalize_reference(address.get(k))
            for k in ("address1", "address2", "postcode", "city", "country", "phone", "phone_mobile")
        }
        lines = [fields[k] for k in ("address1", "address2") if fields[k]]
        return {
            "address": ", ".join(lines) or None,
            "postcode": fields["postcode"],
            "city": fields["city"],
            "country": fields["country"],
            "phone": fields["phone"] or fields["phone_mobile"],
        }

    async def fetch_wholesale_price(self, product_id: int) -> Decimal | None:
        """Product cost for margins; None when unknown. Memoised per run."""
        if product_id in self._wholesale_cache:
            return self._wholesale_cache[product_id]

        data = await self.client.get_optional(
            f"products/{product_id}",
            params={"display": "[wholesale_price]"},
            timeout=settings.prestashop_probe_timeout,
        )
        price = None
        product = data.get("product") if isinstance(data, dict) else None
        if isinstance(product, dict):
            price = safe_decimal(product.get("wholesale_price"))
            if price is not None and price <= 0:
                price = None
        elif isinstance(data, dict):
            # display=[...] listings wrap a single product in "products"
            products = as_record_list(data, "products")
            if products:
                price = safe_decimal(products[0].get("wholesale_price"))
                if price is not None and price <= 0:
                    price = None

        self._wholesale_cache[product_id] = price
        return price

    # ── Helpers ──────────────────────────────────────────────────────

    def _advance(self, count: int, total: int | None) -> None:
        self._processed += count
        if self.on_progress:
            self.on_progress(self._processed, total)

    async def _pause(self) -> None:
        if self.pause_seconds > 0:
            await asyncio.sleep(self.pause_seconds)
