"""
schemas/boutiques.py — Pydantic models for boutique endpoints

Business Rules:
- Domain must be an http(s) URL; a trailing slash is dropped
- low_stock_threshold clamped 1-100 (the model clamps again on assignment)
- The API key is write-only: never returned in responses

Called by: routers/boutiques.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class BoutiqueCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    domain: str = Field(min_length=1, max_length=255)
    api_key: str = Field(min_length=1)
    low_stock_threshold: int = Field(default=10, ge=1, le=100)

    @field_validator("domain")
    @classmethod
    def check_domain(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("domain must start with http:// or https://")
        return v.rstrip("/")


class BoutiqueOut(BaseModel):
    id: int
    name: str
    domain: str
    low_stock_threshold: int
    logo_url: str | None = None
    favicon_url: str | None = None
    theme_color: str | None = None

    model_config = {"from_attributes": True}
