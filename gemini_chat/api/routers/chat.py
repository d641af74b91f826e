import logging
import os
import platform
import sys
import time
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from gemini_chat.api.deps import get_app_settings, get_discovery, get_registry, get_relay
from gemini_chat.config import PLACEHOLDER_API_KEY, Settings
from gemini_chat.models.api_io import (
    AvailableModelsView,
    ChatRequest,
    ErrorResponse,
    RelayResponse,
    StatusResponse,
    TextPart,
)
from gemini_chat.services.analytics import format_timestamp, utcnow
from gemini_chat.services.discovery import ModelDiscovery, ModelRegistry
from gemini_chat.services.errors import IMAGE_ERROR, InvalidRequest
from gemini_chat.services.relay import RequestRelay, check_image_upload

router = APIRouter(prefix="/api", tags=["chat"])

_ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 401, 404, 413, 415, 429, 500, 502, 503)}


@router.get("/test", response_model=StatusResponse)
async def api_test(
    settings: Settings = Depends(get_app_settings),
    registry: ModelRegistry = Depends(get_registry),
):
    """Liveness check plus the models selected at startup."""
    logging.info("API test endpoint called")
    models = registry.current
    return StatusResponse(
        status="Server is running",
        timestamp=format_timestamp(utcnow()),
        apiKeySet=settings.api_key_set,
        availableModels=AvailableModelsView(
            text=models.text or "None detected",
            vision=models.vision or "None detected",
            allModels=list(models.all_models),
        ),
    )


@router.post("/chat", response_model=RelayResponse, responses=_ERROR_RESPONSES)
async def chat(body: ChatRequest, relay: RequestRelay = Depends(get_relay)):
    result = await relay.complete_chat(
        body.messages, requested_model=body.model, max_tokens=body.max_tokens
    )
    return RelayResponse(content=[TextPart(text=result.text)], model=result.model)


@router.post("/analyze-image", response_model=RelayResponse, responses=_ERROR_RESPONSES)
async def analyze_image(
    image: Optional[UploadFile] = File(None),
    prompt: str = Form(""),
    relay: RequestRelay = Depends(get_relay),
    settings: Settings = Depends(get_app_settings),
):
    """Describe an uploaded image with the discovered vision model."""
    if image is None:
        logging.error("No image file in request")
        raise InvalidRequest(
            "No image uploaded",
            error=IMAGE_ERROR,
            troubleshooting=["Attach an image in the 'image' form field"],
        )

    # one byte past the limit is enough to detect an oversized upload
    data = await image.read(settings.max_upload_bytes + 1)
    check_image_upload(image.content_type, len(data), settings.max_upload_bytes)
    logging.info("File '%s' uploaded successfully (%d bytes)", image.filename, len(data))

    result = await relay.analyze_image(data, image.content_type, prompt)
    return RelayResponse(content=[TextPart(text=result.text)], model=result.model)


@router.get("/diagnostics")
async def diagnostics(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    registry: ModelRegistry = Depends(get_registry),
    discovery: ModelDiscovery = Depends(get_discovery),
):
    logging.info("Diagnostics endpoint called")
    key = settings.google_api_key
    return {
        "server": {
            "python_version": platform.python_version(),
            "implementation": platform.python_implementation(),
            "platform": sys.platform,
            "arch": platform.machine(),
            "pid": os.getpid(),
            "uptime": time.monotonic() - request.app.state.started_at,
            "env": {"LOG_LEVEL": settings.log_level, "PORT": settings.port},
        },
        "api": {
            "key_configured": bool(key) and key != PLACEHOLDER_API_KEY,
            "key_length": len(key),
            "models": registry.current.as_public(),
            "discovered": [info.model_dump() for info in discovery.models],
        },
    }
