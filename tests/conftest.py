"""
conftest.py — Shared Test Fixtures for PrestaBoost

Provides an in-memory SQLite database, a fake PrestaShop webservice
served through httpx.MockTransport, and boutique fixtures.

Business Rules:
- All tests run against isolated in-memory DB (no prod data risk)
- No test touches the network: every PrestaShop call hits FakePrestaShop
- Each test function gets fresh tables

Called by: all test files via pytest autodiscovery
Depends on: app.models (Base), app.database (get_db)
"""

import os

# Must be set before importing app modules
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BATCH_PAUSE_SECONDS"] = "0"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"

import base64
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base, Boutique

# ── In-memory SQLite engine ──────────────────────────────────────────

TEST_DB_URL = "sqlite://"

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def ps_date(dt: datetime) -> str:
    """PrestaShop date_add format."""
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def recent(days: float = 1) -> str:
    return ps_date(datetime.now(timezone.utc) - timedelta(days=days))


# ── Fake PrestaShop webservice ───────────────────────────────────────


class FakePrestaShop:
    """Canned PrestaShop /api answers keyed by resource.

    Every request is recorded in `requests` as (path, params) so tests can
    count detail fetches and check query strings.
    """

    API_KEY = "WSKEY123"

    def __init__(self):
        self.products: list[dict] = []
        self.stocks: list[dict] = []
        self.categories: list[dict] = []
        self.orders: dict[int, dict] = {}
        self.customers: dict[int, dict] = {}
        self.addresses: dict[int, dict] = {}
        self.wholesale: dict[int, str] = {}
        self.shops: list[dict] = []
        self.stock_movements: list[dict] | None = []
        self.fail: set[str] = set()  # resources answering HTTP 500
        self.sorted_listing = True  # orders?sort=[id_DESC]&limit=1 supported
        self.requests: list[tuple[str, dict]] = []

    # ── helpers ──

    def add_order(self, order_id: int, date_add: str | None = None, rows=None, **fields) -> dict:
        order = {
            "id": order_id,
            "reference": f"REF{order_id}",
            "total_paid": "59.90",
            "current_state": "2",
            "payment": "Carte bancaire",
            "date_add": date_add or recent(),
            "id_customer": fields.pop("id_customer", 0),
            "id_address_delivery": fields.pop("id_address_delivery", 0),
            "associations": {"order_rows": rows if rows is not None else []},
        }
        order.update(fields)
        self.orders[order_id] = order
        return order

    def count(self, path: str) -> int:
        return sum(1 for p, _ in self.requests if p == path)

    def paths(self) -> list[str]:
        return [p for p, _ in self.requests]

    # ── transport ──

    def _authorized(self, request: httpx.Request) -> bool:
        header = request.headers.get("authorization", "")
        if not header.startswith("Basic "):
            return False
        user, _, password = base64.b64decode(header[6:]).decode().partition(":")
        return user == self.API_KEY and password == ""

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.split("/api/", 1)[-1]
        params = dict(request.url.params)
        self.requests.append((path, params))

        if not self._authorized(request):
            return httpx.Response(401, text="Unauthorized")
        if params.get("output_format") != "JSON":
            return httpx.Response(200, text="<prestashop/>")

        resource, _, ident = path.partition("/")
        if resource in self.fail or path in self.fail:
            return httpx.Response(500, text="Internal Server Error")

        if resource == "products" and ident:
            price = self.wholesale.get(int(ident))
            if price is None:
                return httpx.Response(404, json={"errors": [{"code": 1}]})
            return httpx.Response(200, json={"product": {"wholesale_price": price}})
        if resource == "products":
            return httpx.Response(200, json={"products": self.products} if self.products else [])
        if resource == "stock_availables":
            return httpx.Response(200, json={"stock_availables": self.stocks})
        if resource == "categories":
            return httpx.Response(200, json={"categories": self.categories})
        if resource == "orders" and ident:
            order = self.orders.get(int(ident))
            if order is None:
                return httpx.Response(404, json={"errors": [{"code": 3}]})
            return httpx.Response(200, json={"order": order})
        if resource == "orders":
            return self._order_listing(params)
        if resource == "customers":
            customer = self.customers.get(int(ident))
            if customer is None:
                return httpx.Response(404, json={})
            return httpx.Response(200, json={"customer": customer})
        if resource == "addresses":
            address = self.addresses.get(int(ident))
            if address is None:
                return httpx.Response(404, json={})
            return httpx.Response(200, json={"address": address})
        if resource == "shops":
            return httpx.Response(200, json={"shops": self.shops} if self.shops else [])
        if resource == "stock_movements":
            if self.stock_movements is None:
                return httpx.Response(200, json={})
            return httpx.Response(200, json={"stock_movements": self.stock_movements})
        return httpx.Response(404, json={})

    def _order_listing(self, params: dict) -> httpx.Response:
        ids = sorted(self.orders, reverse=True)
        date_filter = params.get("filter[date_add]")
        if date_filter is not None:
            if "orders:date_filter" in self.fail:
                return httpx.Response(500, text="filter not supported")
            since = date_filter.strip("[]").split(",")[0]
            ids = [i for i in ids if self.orders[i]["date_add"][:10] >= since]
        elif params.get("limit") == "1":
            if not self.sorted_listing:
                return httpx.Response(400, text="sort not supported")
            ids = ids[:1]
        if not ids:
            return httpx.Response(200, json=[])
        return httpx.Response(200, json={"orders": [{"id": i} for i in ids]})


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def fake_shop() -> FakePrestaShop:
    return FakePrestaShop()


@pytest_asyncio.fixture()
async def shop_http(fake_shop: FakePrestaShop):
    """An AsyncClient whose every request is answered by fake_shop."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_shop.handler)) as client:
        yield client


@pytest.fixture()
def boutique(db_session: Session) -> Boutique:
    b = Boutique(
        name="Maison Test",
        domain="https://shop.example.com/",
        api_key=FakePrestaShop.API_KEY,
        low_stock_threshold=10,
    )
    db_session.add(b)
    db_session.commit()
    db_session.refresh(b)
    return b


@pytest.fixture()
def session_factory():
    """Factory handed to code that opens its own sessions (queue handlers, CLI)."""
    return TestSessionLocal


class RecordingQueue:
    """Stands in for the DispatchQueue: keeps dispatched messages in order."""

    def __init__(self):
        self.messages: list = []
        self.fail = False

    def dispatch(self, message) -> None:
        if self.fail:
            raise LookupError(f"No handler registered for {type(message).__name__}")
        self.messages.append(message)


@pytest.fixture()
def recording_queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture()
def client(db_session: Session, recording_queue: RecordingQueue, fake_shop: FakePrestaShop) -> TestClient:
    """FastAPI TestClient on the test DB, a recording queue and the fake shop.

    Not entered as a context manager: the lifespan (queue workers,
    scheduler) stays off.
    """
    from app.database import get_db
    from app.dependencies import get_http, get_queue
    from app.main import app

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_queue] = lambda: recording_queue
    shop_http = httpx.AsyncClient(transport=httpx.MockTransport(fake_shop.handler))
    app.dependency_overrides[get_http] = lambda: shop_http

    yield TestClient(app)

    app.dependency_overrides.clear()
