"""FastAPI application entry point for the ticker tracker."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .tracker import (
    PriceFetcher,
    SessionRegistry,
    StreamDriver,
    TickerService,
    create_price_fetcher,
    create_tracker_router,
)

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, fetcher: PriceFetcher | None = None) -> FastAPI:
    """Wire the registry, driver and service into a FastAPI app.

    ``fetcher`` overrides the one chosen by settings (used by tests).
    """
    settings = settings or Settings.from_env()
    fetcher = fetcher or create_price_fetcher(settings)

    registry = SessionRegistry()
    driver = StreamDriver(
        registry,
        fetcher,
        poll_interval=settings.poll_interval,
        fetch_timeout=settings.fetch_timeout,
        max_concurrent_fetches=settings.max_concurrent_fetches,
    )
    service = TickerService(registry, driver)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Ticker tracker starting")
        yield
        # The shared fetch engine is released exactly once, at shutdown
        await fetcher.close()
        logger.info("Ticker tracker stopped")

    app = FastAPI(title="Ticker Tracker", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(create_tracker_router(service))

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "clients": len(registry)}

    app.state.settings = settings
    app.state.registry = registry
    app.state.service = service
    return app


def main() -> None:
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Running the backend on %s:%d", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
