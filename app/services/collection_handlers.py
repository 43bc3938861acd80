"""Queue handlers — one per collection message type.

Each handler opens its own DB session, loads the boutique(s) and calls the
PrestaShopCollector. A missing boutique is logged and ignored. Unexpected
exceptions are logged and re-raised so the DispatchQueue can retry them.

Failed chunk collections raise CollectionFailed so the chunk is retried on
its own. Whole-boutique and periodic syncs record the failure (SyncJob or
log) and are picked up again by the next trigger.

Called by: app/main.py (register_handlers at startup)
Depends on: services/collector.py, services/sync_job_service.py,
            services/order_service.py, dispatch.py
"""

import logging
from datetime import datetime, timezone

import httpx

from ..database import SessionLocal
from ..models import Boutique
from ..schemas.messages import (
    CollectBoutiqueDataMessage,
    CollectOrdersChunkMessage,
    SyncOrdersMessage,
    SyncStocksMessage,
)
from .collector import PrestaShopCollector, orders_cutoff
from .order_service import count_orders, total_revenue
from .sync_job_service import SyncJobTracker

log = logging.getLogger(__name__)


class CollectionFailed(Exception):
    """A collector returned success=False for a retryable unit of work."""


def job_type_for(message: CollectBoutiqueDataMessage) -> str:
    if message.collect_stocks and message.collect_orders:
        return "both"
    return "orders" if message.collect_orders else "stocks"


class CollectionHandlers:
    def __init__(self, session_factory=None, http: httpx.AsyncClient | None = None):
        self.session_factory = session_factory or SessionLocal
        self.http = http

    def register(self, queue) -> None:
        queue.register(CollectBoutiqueDataMessage, self.collect_boutique_data)
        queue.register(CollectOrdersChunkMessage, self.collect_orders_chunk)
        queue.register(SyncOrdersMessage, self.sync_orders)
        queue.register(SyncStocksMessage, self.sync_stocks)

    def _boutiques(self, db, boutique_id: int | None) -> list[Boutique]:
        if boutique_id is None:
            return db.query(Boutique).order_by(Boutique.id).all()
        boutique = db.get(Boutique, boutique_id)
        if not boutique:
            log.warning(f"Boutique {boutique_id} not found, nothing to sync")
            return []
        return [boutique]

    # ── Collect boutique data ────────────────────────────────────────

    async def collect_boutique_data(self, message: CollectBoutiqueDataMessage) -> None:
        log.info(
            f"Collection job for boutique {message.boutique_id} "
            f"(stocks={message.collect_stocks}, orders={message.collect_orders}, days={message.orders_days})"
        )
        db = self.session_factory()
        job = None
        try:
            boutique = db.get(Boutique, message.boutique_id)
            if not boutique:
                log.warning(f"Boutique {message.boutique_id} not found for data collection")
                return

            tracker = SyncJobTracker(db)
            if message.sync_job_id:
                job = tracker.get(message.sync_job_id)
            if job is None:
                job = tracker.create(boutique.id, job_type_for(message), orders_days=message.orders_days)
                # Retries of this message keep updating the same job
                message.sync_job_id = job.id
            tracker.mark_running(job)

            collector = PrestaShopCollector(db, http=self.http)
            errors = []
            processed = 0

            if message.collect_stocks:
                stock_result = await collector.collect_stock_data(boutique)
                if stock_result["success"]:
                    processed += stock_result["saved_count"]
                    tracker.advance(job, processed)
                    log.info(
                        f"Boutique {boutique.id}: stocks collected "
                        f"({stock_result['products_count']} products, {stock_result['saved_count']} saved)"
                    )
                else:
                    errors.append(f"stocks: {stock_result['error']}")
                    log.error(f"Boutique {boutique.id}: failed to collect stocks: {stock_result['error']}")

            if message.collect_orders:
                base = processed

                def _progress(done, total):
                    tracker.advance(job, base + done, base + total if total is not None else None)

                orders_result = await collector.collect_orders_data(
                    boutique, message.orders_days, on_progress=_progress
                )
                if orders_result["success"]:
                    processed += orders_result["saved_count"]
                    log.info(f"Boutique {boutique.id}: orders collected ({orders_result['saved_count']} saved)")
                else:
                    errors.append(f"orders: {orders_result['error']}")
                    log.error(f"Boutique {boutique.id}: failed to collect orders: {orders_result['error']}")

            if errors:
                tracker.fail(job, "; ".join(errors))
            else:
                tracker.complete(job, processed)
            log.info(f"Collection job {job.id} for boutique {boutique.id} finished: {job.status}")
        except Exception as e:
            log.error(f"Exception during data collection for boutique {message.boutique_id}: {e}")
            db.rollback()
            if job is not None:
                SyncJobTracker(db).fail(job, str(e))
            raise
        finally:
            db.close()

    # ── Orders chunk ─────────────────────────────────────────────────

    async def collect_orders_chunk(self, message: CollectOrdersChunkMessage) -> None:
        log.info(
            f"Order chunk {message.start_id}..{message.end_id} for boutique {message.boutique_id} "
            f"({message.end_id - message.start_id + 1} ids)"
        )
        db = self.session_factory()
        try:
            boutique = db.get(Boutique, message.boutique_id)
            if not boutique:
                log.warning(f"Boutique {message.boutique_id} not found for chunk collection")
                return

            result = await PrestaShopCollector(db, http=self.http).collect_orders_chunk(
                boutique, message.start_id, message.end_id
            )
            if not result["success"]:
                raise CollectionFailed(
                    f"chunk {message.start_id}..{message.end_id}: {result['error']}"
                )
        except Exception as e:
            log.error(f"Exception during chunk collection for boutique {message.boutique_id}: {e}")
            raise
        finally:
            db.close()

    # ── Periodic syncs ───────────────────────────────────────────────

    async def sync_orders(self, message: SyncOrdersMessage) -> None:
        log.info(f"[Sync Orders] Starting sync (boutique={message.boutique_id}, days={message.days})")
        db = self.session_factory()
        try:
            for boutique in self._boutiques(db, message.boutique_id):
                end = datetime.now(timezone.utc)
                start = orders_cutoff(message.days, now=end)

                count_before = count_orders(db, boutique.id, start, end)
                revenue_before = total_revenue(db, boutique.id, start, end)

                result = await PrestaShopCollector(db, http=self.http).collect_orders_data(
                    boutique, message.days
                )
                if not result["success"]:
                    log.error(f"[Sync Orders] {boutique.name}: {result['error']}")
                    continue

                count_after = count_orders(db, boutique.id, start)
                revenue_after = total_revenue(db, boutique.id, start)
                log.info(
                    f"[Sync Orders] {boutique.name}: {count_after - count_before} new orders, "
                    f"{count_after} total, revenue {revenue_before} → {revenue_after}"
                )
            log.info("[Sync Orders] All boutiques synced")
        except Exception as e:
            log.error(f"[Sync Orders] Error during sync: {e}")
            raise
        finally:
            db.close()

    async def sync_stocks(self, message: SyncStocksMessage) -> None:
        log.info(f"[Sync Stocks] Starting sync (boutique={message.boutique_id})")
        db = self.session_factory()
        try:
            for boutique in self._boutiques(db, message.boutique_id):
                result = await PrestaShopCollector(db, http=self.http).collect_stock_data(boutique)
                if result["success"]:
                    log.info(f"[Sync Stocks] {boutique.name}: {result['saved_count']} rows saved")
                else:
                    log.error(f"[Sync Stocks] {boutique.name}: {result['error']}")
            log.info("[Sync Stocks] All boutiques synced")
        except Exception as e:
            log.error(f"[Sync Stocks] Error during sync: {e}")
            raise
        finally:
            db.close()
