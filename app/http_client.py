"""Shared HTTP client — connection pooling for all outbound PrestaShop requests.

One module-level singleton httpx.AsyncClient shared by every boutique.
The pool is sized above the 50-request batch used by order scans so a
full batch can be in flight at once.

Per-request timeout overrides via http.get(url, timeout=5).

Usage:
    from app.http_client import http
    resp = await http.get(url, params=params, auth=(api_key, ""), timeout=30)
"""

import httpx

_LIMITS = httpx.Limits(
    max_connections=60,
    max_keepalive_connections=20,
    keepalive_expiry=30,
)

http = httpx.AsyncClient(
    timeout=30,
    limits=_LIMITS,
    follow_redirects=True,
)


async def close_clients():
    """Shut down the shared client. Call from app lifespan shutdown."""
    try:
        await http.aclose()
    except RuntimeError:
        pass
