from __future__ import annotations
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api import router
from app.web import router as web_router
from logging_config import configure_logging
from services.refresh import build_default_orchestrator
from services.scheduler import AutoRefresher
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    orchestrator = build_default_orchestrator()
    interval = get_settings().refresh_interval_seconds
    auto_refresher = AutoRefresher(orchestrator, interval) if interval > 0 else None
    if auto_refresher is not None:
        await auto_refresher.start()
    try:
        yield
    finally:
        if auto_refresher is not None:
            await auto_refresher.stop()
        orchestrator.cancel_in_flight()
        await orchestrator.source.aclose()
        build_default_orchestrator.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Room Occupancy Dashboard",
        description="Read-only dashboard of the latest occupancy reading per room.",
        version="0.1.0",
        lifespan=lifespan,
    )
    static_dir = Path(__file__).resolve().parent.parent / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    app.include_router(router)
    app.include_router(web_router)
    return app

app = create_app()
