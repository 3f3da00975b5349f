from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import Depends, FastAPI, HTTPException

from expiremap.config import Settings, get_settings
from expiremap.expiring_map import ExpiringMap
from expiremap.models import (
    EntryResponse,
    PutEntryRequest,
    PutEntryResponse,
    RemoveEntryResponse,
    StatsResponse,
)

logger = logging.getLogger("expiremap")

_MISSING = object()


class ServiceContainer:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.store = ExpiringMap(
            initial_bucket_count=settings.initial_bucket_count,
            load_factor=settings.load_factor,
            sweep_period=settings.sweep_period_seconds,
        )

    def close(self) -> None:
        self.store.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    container = ServiceContainer(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.setLevel(settings.log_level.upper())
        logger.info("%s %s ready (buckets=%d)", settings.app_name, settings.app_version, container.store.bucket_count)
        yield
        container.close()

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.container = container

    def get_store() -> ExpiringMap:
        return app.state.container.store

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    # Map routes are sync: they wait on the map lock in the threadpool, not on the event loop.
    @app.put("/v1/entries/{key}", response_model=PutEntryResponse)
    def put_entry(
        key: str,
        body: PutEntryRequest,
        store: ExpiringMap = Depends(get_store),
    ) -> PutEntryResponse:
        ttl_ms = settings.default_ttl_ms if body.ttl_ms is None else body.ttl_ms
        if ttl_ms > settings.max_ttl_ms:
            raise HTTPException(status_code=422, detail=f"ttl_ms must not exceed {settings.max_ttl_ms}")
        store.put(key, body.value, ttl_ms)
        return PutEntryResponse(key=key, ttl_ms=ttl_ms)

    @app.get("/v1/entries/{key}", response_model=EntryResponse)
    def get_entry(key: str, store: ExpiringMap = Depends(get_store)) -> EntryResponse:
        value = store.get(key, _MISSING)
        if value is _MISSING:
            raise HTTPException(status_code=404, detail="Entry not found or expired")
        return EntryResponse(key=key, value=value)

    @app.delete("/v1/entries/{key}", response_model=RemoveEntryResponse)
    def remove_entry(key: str, store: ExpiringMap = Depends(get_store)) -> RemoveEntryResponse:
        return RemoveEntryResponse(key=key, removed=store.remove(key))

    @app.get("/v1/stats", response_model=StatsResponse)
    def stats(store: ExpiringMap = Depends(get_store)) -> StatsResponse:
        return StatsResponse(**asdict(store.stats()), reclaimer_running=store.reclaimer.is_running)

    return app


app = create_app()
