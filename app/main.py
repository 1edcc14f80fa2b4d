from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.monitor import build_default_monitor
from services.pump import ReadingPump
from services.sources import SyntheticReadingSource
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    monitor = build_default_monitor()
    pump: Optional[ReadingPump] = None
    if settings.simulator_enabled:
        source = SyntheticReadingSource(
            interval_seconds=settings.simulator_interval,
            minimum=settings.simulator_min,
            maximum=settings.simulator_max,
        )
        pump = ReadingPump(monitor, source, interval_seconds=settings.simulator_interval)
        pump.start()
    try:
        yield
    finally:
        if pump is not None:
            await pump.stop()
        build_default_monitor.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Household Water Monitor",
        description="Flow aggregation and edge-triggered leak alerts for a single household.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
