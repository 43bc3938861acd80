"""
dependencies.py — Shared FastAPI Dependencies

Reusable dependency functions for the boutique routes. Tests override
get_queue / get_http through app.dependency_overrides.

Called by: routers/boutiques.py
Depends on: models, database, dispatch, http_client
"""

import logging

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from .database import get_db
from .models import Boutique

log = logging.getLogger(__name__)


def get_queue():
    """The process-wide DispatchQueue."""
    from .dispatch import queue

    return queue


def get_http():
    """The shared httpx.AsyncClient used for synchronous shop lookups."""
    from .http_client import http

    return http


def get_boutique_or_404(boutique_id: int, db: Session = Depends(get_db)) -> Boutique:
    boutique = db.get(Boutique, boutique_id)
    if not boutique:
        raise HTTPException(404, "Boutique not found")
    return boutique
