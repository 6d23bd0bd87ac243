"""traceview FastAPI application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from traceview import config
from traceview.log_state import log_store
from traceview.observability import initialize as initialize_observability, shutdown as shutdown_observability
from traceview.routers.viewer import viewer_router
from traceview.watcher import log_watcher

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("traceview")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("traceview starting up")
    initialize_observability(app)

    # The CLI configures the store before serving; env config covers `uvicorn traceview.main:app`.
    if log_store.path is None and config.LOG_PATH:
        log_store.configure(config.LOG_PATH, config.LITELLM_MODE, config.GRAMMAR_PROFILE)

    if config.WATCH_ENABLED:
        await log_watcher.start(log_store)

    yield

    logger.info("traceview shutting down")
    await log_watcher.stop()
    shutdown_observability(app)


app = FastAPI(
    title="traceview",
    description="Structured viewer for semi-structured LLM and shell logs",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(viewer_router)
