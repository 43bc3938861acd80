"""
PrestaBoost — PrestaShop stock & order collection service.

Startup wires the dispatch queue workers, the collection handlers and the
periodic scheduler; shutdown stops them and closes the shared HTTP pool.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .dispatch import queue
from .http_client import close_clients
from .logging_config import setup_logging
from .routers import boutiques
from .scheduler import start_scheduler, stop_scheduler
from .services.collection_handlers import CollectionHandlers

log = logging.getLogger(__name__)


def register_handlers(dispatch_queue=None) -> None:
    CollectionHandlers().register(dispatch_queue or queue)


# Handlers are registered at import so routes can dispatch before startup
register_handlers()


# --- App Lifecycle ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await queue.start()
    start_scheduler(queue)
    log.info(f"PrestaBoost started ({settings.queue_workers} queue workers)")
    yield
    stop_scheduler()
    await queue.stop()
    await close_clients()


# --- FastAPI App ---
app = FastAPI(title="PrestaBoost", version="1.0.0", lifespan=lifespan)
app.include_router(boutiques.router)


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "queue_running": queue.running,
        "queue_pending": queue.pending(),
        "dead_letters": len(queue.dead_letters),
    }
