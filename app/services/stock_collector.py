"""Stock collection — products + stock_availables + categories → one snapshot.

Flow: fetch products → fetch stock levels → fetch categories (best-effort)
→ left-join by product id → insert a new batch of StockSnapshot rows that
share one collected_at.

Rows already written are never updated. Rows flushed before a late failure
are kept (no rollback), so a failed run can leave a truncated snapshot at
its collected_at until the next successful run.

Called by: services/collector.py
Depends on: connectors/prestashop.py, utils/normalization.py, models.StockSnapshot
"""

import logging
from datetime import datetime, timezone

from ..config import settings
from ..connectors.prestashop import PrestaShopClient, RemoteApiError
from ..models import StockSnapshot
from ..utils import safe_int
from ..utils.normalization import (
    as_record_list,
    build_category_map,
    normalize_localized_text,
    normalize_reference,
    resolve_category,
)

log = logging.getLogger(__name__)


async def fetch_products(client: PrestaShopClient) -> list[dict]:
    data = await client.get(
        "products",
        params={"display": "[id,reference,name,id_category_default]"},
        timeout=settings.prestashop_listing_timeout,
    )
    return as_record_list(data, "products")


async def fetch_stocks(client: PrestaShopClient) -> list[dict]:
    data = await client.get(
        "stock_availables",
        params={"display": "[id,id_product,quantity]"},
        timeout=settings.prestashop_listing_timeout,
    )
    return as_record_list(data, "stock_availables")


async def fetch_categories(client: PrestaShopClient, logger=None) -> dict[int, str]:
    """{category_id: name}; empty when the categories endpoint fails."""
    logger = logger or log
    try:
        data = await client.get(
            "categories",
            params={"display": "[id,name]"},
            timeout=settings.prestashop_listing_timeout,
        )
    except RemoteApiError as e:
        logger.warning(f"Could not fetch categories from {client.base_url}: {e}")
        return {}
    return build_category_map(as_record_list(data, "categories"))


def merge_products_and_stocks(
    products: list[dict],
    stocks: list[dict],
    categories: dict[int, str] | None = None,
) -> list[dict]:
    """Left-join products with stock by product id; missing stock → quantity 0."""
    categories = categories or {}
    stock_by_product = {}
    for stock in stocks:
        product_id = safe_int(stock.get("id_product"))
        if product_id:
            stock_by_product[product_id] = stock

    merged = []
    for product in products:
        product_id = safe_int(product.get("id"))
        if not product_id:
            continue
        stock = stock_by_product.get(product_id) or {}
        merged.append(
            {
                "id": product_id,
                "reference": normalize_reference(product.get("reference")),
                "name": normalize_localized_text(product.get("name"), default="Unknown"),
                "quantity": safe_int(stock.get("quantity")) or 0,
                "category": resolve_category(categories, product.get("id_category_default")),
            }
        )
    return merged


def save_stock_snapshot(db, boutique_id: int, rows: list[dict], collected_at=None) -> int:
    """Insert one snapshot; flush every `stock_flush_every` rows, commit at the end."""
    collected_at = collected_at or datetime.now(timezone.utc)
    flush_every = max(1, settings.stock_flush_every)
    count = 0

    for row in rows:
        db.add(
            StockSnapshot(
                boutique_id=boutique_id,
                remote_product_id=row["id"],
                reference=row["reference"],
                name=row["name"],
                category=row.get("category"),
                quantity=row["quantity"],
                collected_at=collected_at,
            )
        )
        count += 1
        if count % flush_every == 0:
            db.commit()

    db.commit()
    return count


async def collect_stock_snapshot(db, boutique, client: PrestaShopClient, logger=None) -> dict:
    """Run the whole stock flow for one boutique. Raises on primary fetch failure."""
    logger = logger or log

    products = await fetch_products(client)
    logger.info(f"Boutique {boutique.id}: {len(products)} products fetched")

    stocks = await fetch_stocks(client)
    logger.info(f"Boutique {boutique.id}: {len(stocks)} stock rows fetched")

    categories = await fetch_categories(client, logger=logger)
    logger.info(f"Boutique {boutique.id}: {len(categories)} categories fetched")

    merged = merge_products_and_stocks(products, stocks, categories)
    saved = save_stock_snapshot(db, boutique.id, merged)
    logger.info(f"Boutique {boutique.id}: stock snapshot saved ({saved} rows)")

    return {
        "success": True,
        "products_count": len(products),
        "stocks_count": len(stocks),
        "saved_count": saved,
    }
