"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic (SRP). Used by main.py;
no business logic here, only wiring of infrastructure (shared HTTP client,
DB engine dispose).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI

from talentmail.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup: shared HTTP client for OAuth token endpoints, Gmail and Graph.
    Shutdown order: shared HTTP client close, SQL engine dispose.
    """
    settings = get_settings()

    # ---- Startup ----
    app.state.email_http_client = httpx.AsyncClient(
        timeout=settings.email_http_timeout_seconds
    )
    logger.info("%s %s started", settings.app_name, settings.app_version)

    yield

    # ---- Shutdown ----
    if getattr(app.state, "email_http_client", None) is not None:
        await app.state.email_http_client.aclose()
        app.state.email_http_client = None
        logger.info("Email HTTP client closed")

    from talentmail.infrastructure.persistence import database

    if getattr(database, "engine", None) is not None:
        await database.dispose_engine()
        logger.info("Database engine disposed")
