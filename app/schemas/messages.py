"""
schemas/messages.py — Queue message contracts for collection jobs

Each message is consumed by exactly one handler in
services/collection_handlers.py via the DispatchQueue.

Business Rules:
- boutique_id=None on the periodic sync messages means every boutique
- orders_days / days = 0 means "all history"
- A chunk's start_id must not exceed its end_id

Called by: dispatch.py, scheduler.py, routers/boutiques.py,
           services/boutique_service.py, services/backfill_service.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class CollectBoutiqueDataMessage(BaseModel):
    boutique_id: int
    collect_stocks: bool = True
    collect_orders: bool = False
    orders_days: int = Field(default=30, ge=0)
    sync_job_id: int | None = None


class CollectOrdersChunkMessage(BaseModel):
    boutique_id: int
    start_id: int = Field(ge=1)
    end_id: int = Field(ge=1)

    @model_validator(mode="after")
    def check_range(self) -> "CollectOrdersChunkMessage":
        if self.start_id > self.end_id:
            raise ValueError("start_id must not exceed end_id")
        return self


class SyncOrdersMessage(BaseModel):
    boutique_id: int | None = None
    days: int = Field(default=7, ge=0)


class SyncStocksMessage(BaseModel):
    boutique_id: int | None = None


# ── Trigger request bodies ──────────────────────────────────────────────


class SyncRequest(BaseModel):
    collect_stocks: bool = True
    collect_orders: bool = True
    orders_days: int = Field(default=7, ge=0)
