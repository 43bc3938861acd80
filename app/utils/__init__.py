"""Shared utility helpers used across the PrestaShop connector and collectors."""

from decimal import Decimal, InvalidOperation


def safe_int(v):
    """Safely convert a value to int, returning None on failure."""
    if v is None:
        return None
    try:
        return int(v)
    except (ValueError, TypeError):
        return None


def safe_decimal(v, default=None):
    """Convert a money value ("12.50", 12.5, "abc") to Decimal, or default."""
    if v is None or v == "":
        return default
    try:
        d = Decimal(str(v).strip())
    except (InvalidOperation, ValueError, TypeError):
        return default
    if not d.is_finite():
        return default
    return d
