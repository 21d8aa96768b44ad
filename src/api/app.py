# src/api/app.py
"""FastAPI application factory."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docreview.api.errors import register_exception_handlers
from docreview.api.routes import router
from docreview.config.settings import Settings, load_settings
from docreview.llm.base_client import BaseLLMClient
from docreview.llm.client import ProviderClient
from docreview.pipeline.controller import StageController
from docreview.session.expiry import expiry_from_settings
from docreview.session.store import SessionStore
from docreview.version import __version__

logger = logging.getLogger(__name__)


async def _session_sweep_loop(store: SessionStore, interval_s: float) -> None:
    """Drop expired sessions every ``interval_s`` seconds."""
    while True:
        try:
            await asyncio.sleep(interval_s)
            store.purge_expired()
        except asyncio.CancelledError:
            break
        except Exception:
            logger.exception("Session sweep failed")


def create_app(
    settings: Settings | None = None,
    client: BaseLLMClient | None = None,
    store: SessionStore | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Application settings; loaded from the environment if omitted.
        client: Provider client; an httpx-backed ProviderClient if omitted.
        store: Session store; an empty store with the configured expiry if omitted.
    """
    settings = settings or load_settings()
    if store is None:
        store = SessionStore(expiry_from_settings(settings))
    client = client or ProviderClient(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("%s API started", settings.app_name)
        sweep = asyncio.create_task(
            _session_sweep_loop(store, settings.session_sweep_interval_s)
        )
        try:
            yield
        finally:
            sweep.cancel()
            with suppress(asyncio.CancelledError):
                await sweep
            logger.info("%s API shutdown", settings.app_name)

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.client = client
    app.state.controller = StageController(client, store, settings)

    origins = settings.cors_origins_list
    # Credentialed requests cannot use the wildcard origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app
