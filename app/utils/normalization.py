"""Deterministic normalization of PrestaShop webservice payloads — pure Python.

Multi-language shops return text fields in several shapes:
  - plain scalar:                  "Café"
  - mapping keyed by language id:  {"1": "Café", "2": "Coffee"}
  - list of language entries:      [{"id": "1", "value": "Café"}, ...]
  - one more level of wrapping:    {"1": {"value": "Café"}}

Each raw field is decoded once into a TextValue (Scalar | Localized) and
resolved into a plain string before any business logic touches it.

Design: never raise. Anything unresolvable degrades to the caller's default.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

from . import safe_int

PRESTASHOP_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


# ── Text values ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Scalar:
    value: str


@dataclass(frozen=True)
class Localized:
    # Insertion order is the shop's language order; the first entry wins
    entries: dict = field(default_factory=dict)


TextValue = Union[Scalar, Localized, None]


def _is_scalar(raw: Any) -> bool:
    return isinstance(raw, (str, int, float)) and not isinstance(raw, bool)


def decode_text_value(raw: Any) -> TextValue:
    """Decode a raw JSON field into Scalar, Localized, or None."""
    if raw is None:
        return None
    if _is_scalar(raw):
        return Scalar(str(raw))
    if isinstance(raw, dict):
        return Localized(dict(raw))
    if isinstance(raw, list):
        return Localized({str(i): v for i, v in enumerate(raw)})
    return None


def resolve_text_value(value: TextValue) -> str | None:
    """Resolve a decoded TextValue to a plain string (None if unresolvable)."""
    if value is None:
        return None
    if isinstance(value, Scalar):
        return value.value
    if not value.entries:
        return None

    first = next(iter(value.entries.values()))
    if not first and first != 0:
        return None
    if isinstance(first, dict):
        if "value" not in first:
            return None
        first = first["value"]
    if _is_scalar(first):
        return str(first)
    return None


def normalize_localized_text(raw: Any, default: str | None = "Unknown") -> str | None:
    """Plain string from a scalar or language-keyed field, else default.

    >>> normalize_localized_text({"1": "Café", "2": "Coffee"})
    'Café'
    """
    resolved = resolve_text_value(decode_text_value(raw))
    return default if resolved is None else resolved


def normalize_reference(raw: Any) -> str | None:
    """Product reference: same shapes as localized text, blank → None."""
    resolved = resolve_text_value(decode_text_value(raw))
    if resolved is None or not resolved.strip():
        return None
    return resolved


# ── Collections ──────────────────────────────────────────────────────


def as_record_list(payload: Any, key: str) -> list[dict]:
    """Records under `key`, tolerating a single object or an empty result.

    PrestaShop answers an empty listing with `[]` instead of `{key: []}`
    and a one-row listing sometimes with `{key: {...}}`.
    """
    if not isinstance(payload, dict):
        return []
    records = payload.get(key)
    if isinstance(records, dict):
        return [records]
    if isinstance(records, list):
        return [r for r in records if isinstance(r, dict)]
    return []


def as_row_list(rows: Any) -> list[dict]:
    """Order rows: a single row object (has `id`) is wrapped into a list."""
    if isinstance(rows, dict):
        if "id" in rows or "product_id" in rows:
            return [rows]
        return [r for r in rows.values() if isinstance(r, dict)]
    if isinstance(rows, list):
        return [r for r in rows if isinstance(r, dict)]
    return []


# ── Categories ───────────────────────────────────────────────────────


def build_category_map(categories: list[dict]) -> dict[int, str]:
    """{category_id: name} built once per collection run."""
    result = {}
    for category in categories:
        category_id = safe_int(category.get("id"))
        if not category_id:
            continue
        result[category_id] = normalize_localized_text(
            category.get("name"), default="Uncategorized"
        )
    return result


def resolve_category(category_map: dict[int, str], category_id: Any) -> str | None:
    cid = safe_int(category_id)
    if not cid:
        return None
    return category_map.get(cid)


# ── Dates ────────────────────────────────────────────────────────────


def parse_prestashop_datetime(raw: Any) -> datetime | None:
    """Parse "YYYY-MM-DD HH:MM:SS" into an aware UTC datetime."""
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        parsed = datetime.strptime(raw.strip(), PRESTASHOP_DATETIME_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)
