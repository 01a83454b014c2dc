# main.py
from __future__ import annotations

import logging
import os
from typing import Optional

import httpx
from fastapi import FastAPI

from wikigraph.api.routes import router as api_router
from wikigraph.clients.config import VERSION, ClientConfig
from wikigraph.clients.pending import CompletionMode
from wikigraph.clients.wiki import WikiClient
from wikigraph.di import set_session
from wikigraph.session import ExplorerSession

MAX_WORKERS: int = 8
USER_AGENT: str = f"wikigraph/{VERSION} (interactive Wikipedia link explorer)"
HTTP_TIMEOUT_SECONDS: float = 5.0
LANGUAGE: str = os.environ.get("WIKIGRAPH_LANGUAGE", "en")

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title="Wikipedia Graph Explorer API", version=VERSION)

_session: Optional[ExplorerSession] = None


@app.on_event("startup")
async def on_startup() -> None:
    """
    Build one WikiClient for the whole app and the session that owns the
    graph. The event loop is single-threaded, so fetches complete through
    polled cells.
    """
    global _session

    config = (
        ClientConfig()
        .with_language(LANGUAGE)
        .with_timeout(HTTP_TIMEOUT_SECONDS)
        .with_user_agent(USER_AGENT)
    )
    client = WikiClient(
        config,
        client=httpx.Client(),
        mode=CompletionMode.POLLED,
        max_workers=MAX_WORKERS,
    )
    _session = ExplorerSession(client)
    set_session(_session)

    result = await client.ping().wait_async()
    if result.ok:
        logger.info("Startup complete: %s.wikipedia.org is reachable.", config.language.wiki_code)
    else:
        logger.warning("Startup complete, but Wikipedia is unreachable: %s", result.error)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    """Close the shared client cleanly."""
    global _session

    if _session is not None:
        try:
            _session.close()
        finally:
            _session = None
            set_session(None)

    logger.info("Shutdown complete: client closed.")


@app.get("/")
async def healthcheck() -> dict:
    return {"status": "ok"}


app.include_router(api_router)
