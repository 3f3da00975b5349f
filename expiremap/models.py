from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class PutEntryRequest(BaseModel):
    value: Any = None
    ttl_ms: int | None = Field(default=None, description="Time-to-live in milliseconds; server default when omitted.")


class PutEntryResponse(BaseModel):
    key: str
    ttl_ms: int


class EntryResponse(BaseModel):
    key: str
    value: Any = None


class RemoveEntryResponse(BaseModel):
    key: str
    removed: bool


class StatsResponse(BaseModel):
    entries: int
    buckets: int
    load_factor: float
    resizes: int
    swept: int
    reclaimer_running: bool
