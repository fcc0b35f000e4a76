from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.api import router
from logging_config import configure_logging
from services.pipeline import build_default_service
from storage.feeds import FeedUnavailableError
from storage.thingspeak import build_default_feed_source

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    service = build_default_service()
    try:
        yield
    finally:
        service.shutdown()
        build_default_service.cache_clear()
        build_default_feed_source.cache_clear()


async def feed_unavailable_handler(request: Request, exc: FeedUnavailableError) -> JSONResponse:
    logger.warning("Sensor feed unavailable", extra={"reason": str(exc)})
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": str(exc)})


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Poultry Environment Analytics",
        description="Statistics, forecasts, insights and report numbers for poultry house sensor feeds.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(FeedUnavailableError, feed_unavailable_handler)
    app.include_router(router)
    return app

app = create_app()
