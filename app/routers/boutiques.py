"""
routers/boutiques.py — Boutique & Collection Trigger Routes

Creates boutiques and exposes the manual collection triggers and job
progress polling. Collection never runs inside the request: routes only
enqueue messages on the DispatchQueue.

Business Rules:
- Creating a boutique schedules stocks + 30 days of orders
- Manual sync defaults to stocks + 7 days of orders and returns its job id
- sync-all queues one stock job plus one job per 5000 order ids
- sync-status reports stored counts and the active job, if any

Called by: main.py (router mount)
Depends on: models, dependencies, services
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_boutique_or_404, get_http, get_queue
from ..models import Boutique
from ..schemas.boutiques import BoutiqueCreate, BoutiqueOut
from ..schemas.messages import CollectBoutiqueDataMessage, SyncRequest
from ..services.backfill_service import dispatch_full_history_sync
from ..services.boutique_service import create_boutique
from ..services.collection_handlers import job_type_for
from ..services.order_service import count_orders
from ..services.stock_service import (
    count_snapshots,
    latest_collection_date,
    latest_snapshot_stats,
    low_stock_products,
    out_of_stock_products,
)
from ..services.sync_job_service import SyncJobTracker, sync_job_to_dict

log = logging.getLogger(__name__)

router = APIRouter(tags=["boutiques"])


def _stock_row(s) -> dict:
    return {
        "product_id": s.remote_product_id,
        "reference": s.reference,
        "name": s.name,
        "category": s.category,
        "quantity": s.quantity,
        "collected_at": s.collected_at.isoformat() if s.collected_at else None,
    }


# ── Boutiques ───────────────────────────────────────────────────────────


@router.post("/api/boutiques", status_code=201, response_model=BoutiqueOut)
async def create_boutique_route(
    body: BoutiqueCreate,
    db: Session = Depends(get_db),
    queue=Depends(get_queue),
):
    return create_boutique(
        db,
        name=body.name,
        domain=body.domain,
        api_key=body.api_key,
        low_stock_threshold=body.low_stock_threshold,
        queue=queue,
    )


@router.get("/api/boutiques", response_model=list[BoutiqueOut])
async def list_boutiques(db: Session = Depends(get_db)):
    return db.query(Boutique).order_by(Boutique.name).all()


@router.get("/api/boutiques/{boutique_id}/stock-summary")
async def stock_summary(
    boutique: Boutique = Depends(get_boutique_or_404),
    db: Session = Depends(get_db),
):
    latest = latest_collection_date(db, boutique.id)
    return {
        "collected_at": latest.isoformat() if latest else None,
        "stats": latest_snapshot_stats(db, boutique),
        "low_stock": [_stock_row(s) for s in low_stock_products(db, boutique)],
        "out_of_stock": [_stock_row(s) for s in out_of_stock_products(db, boutique.id)],
    }


# ── Collection triggers ─────────────────────────────────────────────────


@router.post("/api/boutiques/{boutique_id}/sync", status_code=202)
async def sync_boutique(
    body: SyncRequest | None = None,
    boutique: Boutique = Depends(get_boutique_or_404),
    db: Session = Depends(get_db),
    queue=Depends(get_queue),
):
    body = body or SyncRequest()
    if not body.collect_stocks and not body.collect_orders:
        raise HTTPException(400, "Nothing to collect")

    message = CollectBoutiqueDataMessage(
        boutique_id=boutique.id,
        collect_stocks=body.collect_stocks,
        collect_orders=body.collect_orders,
        orders_days=body.orders_days,
    )
    job = SyncJobTracker(db).create(boutique.id, job_type_for(message), orders_days=body.orders_days)
    message.sync_job_id = job.id
    queue.dispatch(message)
    log.info(f"Manual sync queued for boutique {boutique.id} (job {job.id})")
    return {"ok": True, "job_id": job.id}


@router.post("/api/boutiques/{boutique_id}/sync-all", status_code=202)
async def sync_all_history(
    boutique: Boutique = Depends(get_boutique_or_404),
    queue=Depends(get_queue),
    http=Depends(get_http),
):
    result = await dispatch_full_history_sync(boutique, queue, http=http)
    return {"ok": result["chunks_dispatched"] > 0, **result}


# ── Progress ────────────────────────────────────────────────────────────


@router.get("/api/boutiques/{boutique_id}/sync-status")
async def sync_status(
    boutique: Boutique = Depends(get_boutique_or_404),
    db: Session = Depends(get_db),
):
    active = SyncJobTracker(db).find_active(boutique.id)
    return {
        "orders_count": count_orders(db, boutique.id),
        "stocks_count": count_snapshots(db, boutique.id),
        "active_job": sync_job_to_dict(active) if active else None,
    }


@router.get("/api/boutiques/{boutique_id}/sync-jobs")
async def list_sync_jobs(
    limit: int = 10,
    boutique: Boutique = Depends(get_boutique_or_404),
    db: Session = Depends(get_db),
):
    jobs = SyncJobTracker(db).find_recent(boutique.id, limit=max(1, min(limit, 100)))
    return {"jobs": [sync_job_to_dict(j) for j in jobs]}


@router.get("/api/sync-jobs/{job_id}")
async def get_sync_job(job_id: int, db: Session = Depends(get_db)):
    job = SyncJobTracker(db).get(job_id)
    if not job:
        raise HTTPException(404, "Sync job not found")
    return sync_job_to_dict(job)
