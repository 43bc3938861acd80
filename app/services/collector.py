"""PrestaShopCollector — the collection entry points used by handlers and the CLI.

Every public method returns a result dict and never raises:
  {"success": True, ...counts}  or  {"success": False, "error": "..."}

The collector holds its collaborators explicitly (DB session, HTTP client,
logger); nothing is read from module-level state beyond settings.

Called by: services/collection_handlers.py, scripts/collect_prestashop_data.py
Depends on: services/stock_collector.py, services/order_collector.py,
            connectors/prestashop.py
"""

import logging
from datetime import datetime, timedelta, timezone

import httpx

from ..config import settings
from ..connectors.prestashop import PrestaShopClient, RemoteApiError
from ..utils.normalization import as_record_list
from .order_collector import OrderCollector, ProgressCallback
from .stock_collector import collect_stock_snapshot

log = logging.getLogger(__name__)

# days=0 means "all history"
ALL_HISTORY_CUTOFF = datetime(2000, 1, 1, tzinfo=timezone.utc)


def orders_cutoff(days: int, now: datetime | None = None) -> datetime:
    if days <= 0:
        return ALL_HISTORY_CUTOFF
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=days)


class PrestaShopCollector:
    def __init__(self, db, http: httpx.AsyncClient | None = None, logger=None):
        self.db = db
        self.http = http
        self.log = logger or log

    def client_for(self, boutique) -> PrestaShopClient:
        return PrestaShopClient.for_boutique(boutique, http=self.http)

    def _failure(self, boutique, what: str, exc: Exception) -> dict:
        # A failed flush leaves the session unusable until rolled back
        self.db.rollback()
        self.log.error(f"Boutique {boutique.id}: {what} failed: {exc}")
        return {"success": False, "error": str(exc)}

    # ── Stock ────────────────────────────────────────────────────────

    async def collect_stock_data(self, boutique) -> dict:
        """Fetch products, stock and categories; insert one new snapshot."""
        self.log.info(f"Boutique {boutique.id}: starting stock collection")
        try:
            return await collect_stock_snapshot(
                self.db, boutique, self.client_for(boutique), logger=self.log
            )
        except Exception as e:
            return self._failure(boutique, "stock collection", e)

    # ── Orders ───────────────────────────────────────────────────────

    async def collect_orders_data(
        self, boutique, days: int = 30, on_progress: ProgressCallback | None = None
    ) -> dict:
        """Upsert the orders placed in the last `days` days (0 = all history)."""
        cutoff = orders_cutoff(days)
        self.log.info(f"Boutique {boutique.id}: collecting orders since {cutoff:%Y-%m-%d}")
        try:
            orders = OrderCollector(
                self.db, boutique, self.client_for(boutique), logger=self.log, on_progress=on_progress
            )
            counts = await orders.collect_since(cutoff, days)
        except Exception as e:
            return self._failure(boutique, "order collection", e)

        self.log.info(
            f"Boutique {boutique.id}: {counts['orders_count']} orders fetched, "
            f"{counts['saved_count']} saved"
        )
        return {"success": True, **counts}

    async def collect_orders_chunk(
        self,
        boutique,
        start_id: int,
        end_id: int,
        on_progress: ProgressCallback | None = None,
    ) -> dict:
        """Scan order ids [start_id, end_id] with no date filter."""
        self.log.info(f"Boutique {boutique.id}: collecting order chunk {start_id}..{end_id}")
        try:
            orders = OrderCollector(
                self.db, boutique, self.client_for(boutique), logger=self.log, on_progress=on_progress
            )
            counts = await orders.collect_chunk(start_id, end_id)
        except Exception as e:
            return self._failure(boutique, f"order chunk {start_id}..{end_id}", e)

        self.log.info(
            f"Boutique {boutique.id}: chunk {start_id}..{end_id} done, "
            f"{counts['orders_found']} found, {counts['saved_count']} saved"
        )
        return {"success": True, **counts}

    # ── Branding ─────────────────────────────────────────────────────

    async def fetch_shop_configuration(self, boutique) -> dict | None:
        try:
            data = await self.client_for(boutique).get("shops")
        except RemoteApiError as e:
            self.log.warning(f"Boutique {boutique.id}: could not fetch shop configuration: {e}")
            return None

        shops = as_record_list(data, "shops")
        if not shops:
            return None
        shop = shops[0]
        return {
            "logo": shop.get("logo"),
            "favicon": shop.get("favicon"),
            "theme_color": shop.get("theme_color"),
        }

    async def collect_branding_data(self, boutique) -> dict:
        """Copy logo, favicon and theme colour from /api/shops onto the boutique."""
        self.log.info(f"Boutique {boutique.id}: starting branding collection")
        try:
            shop_data = await self.fetch_shop_configuration(boutique)
            if not shop_data:
                return {"success": False, "error": "No shop data found"}

            if shop_data["logo"] is not None:
                boutique.logo_url = shop_data["logo"]
            if shop_data["favicon"] is not None:
                boutique.favicon_url = shop_data["favicon"]
            if shop_data["theme_color"] is not None:
                boutique.theme_color = shop_data["theme_color"]
            boutique.updated_at = datetime.now(timezone.utc)
            self.db.commit()
        except Exception as e:
            return self._failure(boutique, "branding collection", e)

        return {"success": True, "data": shop_data}

    # ── Stock movements ──────────────────────────────────────────────

    async def fetch_stock_movements(self, boutique, start_date: datetime | None = None) -> list[dict]:
        """Raw stock movements, newest first. Empty list on any failure."""
        params = {
            "display": (
                "[id,id_product,id_product_attribute,physical_quantity,sign,"
                "date_add,id_stock_mvt_reason,product_name,reference]"
            ),
            "sort": "[date_add_DESC]",
        }
        if start_date:
            params["filter[date_add]"] = f"[{start_date:%Y-%m-%d},]"

        try:
            data = await self.client_for(boutique).get(
                "stock_movements", params=params, timeout=settings.prestashop_listing_timeout
            )
        except RemoteApiError as e:
            self.log.error(f"Boutique {boutique.id}: error fetching stock movements: {e}")
            return []

        if not isinstance(data, dict) or "stock_movements" not in data:
            self.log.warning(f"Boutique {boutique.id}: no stock_movements key in response")
            return []
        movements = as_record_list(data, "stock_movements")
        self.log.info(f"Boutique {boutique.id}: {len(movements)} stock movements fetched")
        return movements
