"""HTTP endpoints: ticker modification and the SSE price stream."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from contextlib import aclosing

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from . import cancellation
from .service import TickerService

logger = logging.getLogger(__name__)


class ModifyTickersRequest(BaseModel):
    # Optional so a missing or null client_id is a soft failure, not a 422
    client_id: str | None = None
    add: str | None = None
    remove: str | None = None


def create_tracker_router(service: TickerService) -> APIRouter:
    """Create the tracker router bound to a TickerService.

    This factory pattern lets us inject the service without globals.
    """
    router = APIRouter(prefix="/api", tags=["tickers"])

    @router.post("/tickers")
    async def modify_tickers(body: ModifyTickersRequest) -> dict:
        """Add and/or remove a ticker for a client. Always 200; see ``success``."""
        result = service.modify_tickers(body.client_id, add=body.add, remove=body.remove)
        return result.to_dict()

    @router.get("/tickers/{client_id}")
    async def get_tickers(client_id: str) -> dict:
        return {"client_id": client_id, "tickers": service.get_tickers(client_id)}

    @router.get("/stream/prices")
    async def stream_prices(request: Request, client_id: str = "") -> StreamingResponse:
        """SSE endpoint for live price updates.

        Streams one event per ticker as each fetch completes:

            data: {"ticker": "BTCUSDT", "price": "50000 USDT", "timestamp": ...}
            data: {"ticker": "NOPE", "error": "...", "timestamp": ...}

        The stream stays open until the client disconnects.
        """
        return StreamingResponse(
            _generate_events(service, client_id, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    service: TickerService,
    client_id: str,
    request: Request,
    disconnect_poll: float = 0.5,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted price events.

    A watcher task turns the client's disconnect into the stream's
    cancellation token, which unwinds in-flight fetches and the wait
    between cycles.
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    cancel = asyncio.Event()
    watcher = asyncio.create_task(
        _watch_disconnect(request, client_id, cancel, disconnect_poll),
        name=f"disconnect-watch-{client_id}",
    )
    logger.info("SSE client connected: %s", client_id or "<missing id>")

    try:
        async with aclosing(service.stream_prices(client_id, cancel)) as results:
            async for result in results:
                yield f"data: {json.dumps(result.to_dict())}\n\n"
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_id)
    finally:
        cancel.set()
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)


async def _watch_disconnect(
    request: Request,
    client_id: str,
    cancel: asyncio.Event,
    interval: float,
) -> None:
    """Set ``cancel`` once the HTTP client goes away."""
    while not cancel.is_set():
        if await request.is_disconnected():
            logger.info("SSE client disconnected: %s", client_id)
            cancel.set()
            return
        if await cancellation.sleep(interval, cancel):
            return
