# src/api/routes.py
"""HTTP routes: analyze, continue, validate-key, health.

Input problems are answered with a JSON error before any stream opens.
Once streaming, failures arrive as an ``error`` frame inside the stream.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from docreview.api.deps import get_client, get_controller, get_settings, get_store
from docreview.api.errors import (
    InvalidRequestError,
    SessionBusyHTTPError,
    SessionNotFoundHTTPError,
)
from docreview.api.models import (
    AnalyzeRequest,
    ContinueRequest,
    HealthResponse,
    ValidateKeyRequest,
    ValidateKeyResponse,
)
from docreview.config.settings import Settings
from docreview.core.models import ProviderConfig
from docreview.document.decoder import DocumentDecodeError, decode_document
from docreview.llm.base_client import BaseLLMClient
from docreview.llm.errors import ProviderConfigError
from docreview.llm.providers import resolve_endpoint
from docreview.pipeline.controller import StageController
from docreview.session.store import SessionStore
from docreview.streaming.emitter import StreamEmitter, stream_run
from docreview.version import __version__

logger = logging.getLogger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def _check_provider(config: ProviderConfig, settings: Settings) -> None:
    try:
        resolve_endpoint(config, settings)
    except ProviderConfigError as e:
        raise InvalidRequestError("Invalid provider configuration", str(e)) from e


@router.post("/analyze")
async def analyze(
    body: AnalyzeRequest,
    controller: StageController = Depends(get_controller),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """Start a fresh analysis and stream its events."""
    config = body.to_provider_config()
    _check_provider(config, settings)
    try:
        text = await asyncio.to_thread(decode_document, body.file_content, body.file_name)
    except DocumentDecodeError as e:
        raise InvalidRequestError("Document parsing failed", str(e)) from e

    logger.info(
        "Analyze request: provider=%s, file=%s, chars=%d",
        config.provider.value, body.file_name, len(text),
    )
    emitter = StreamEmitter()
    return StreamingResponse(
        stream_run(lambda: controller.start(text, body.file_name, config, emitter), emitter),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/analyze/continue")
async def analyze_continue(
    body: ContinueRequest,
    controller: StageController = Depends(get_controller),
    store: SessionStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """Resume an interrupted analysis and stream its events."""
    session = store.get(body.file_id)
    if session is None:
        raise SessionNotFoundHTTPError(body.file_id)
    if store.is_locked(body.file_id):
        raise SessionBusyHTTPError(body.file_id)

    overrides = body.overrides()
    _check_provider(session.provider_config.with_overrides(**overrides), settings)

    logger.info(
        "Continue request: file_id=%s, completed=%s",
        body.file_id, ",".join(s.value for s in session.completed_stages) or "none",
    )
    emitter = StreamEmitter()
    return StreamingResponse(
        stream_run(
            lambda: controller.resume(body.file_id, emitter, overrides),
            emitter,
            file_id=body.file_id,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/validate-key", response_model=ValidateKeyResponse, response_model_by_alias=True)
async def validate_key(
    body: ValidateKeyRequest,
    client: BaseLLMClient = Depends(get_client),
    settings: Settings = Depends(get_settings),
) -> ValidateKeyResponse:
    """Check an API key against its provider with a minimal request."""
    config = body.to_provider_config()
    _check_provider(config, settings)
    valid = await client.validate_api_key(config)
    return ValidateKeyResponse(valid=valid)


@router.get("/health", response_model=HealthResponse, response_model_by_alias=True)
async def health() -> HealthResponse:
    return HealthResponse(message="Service is running", version=__version__)
