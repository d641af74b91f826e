"""Request relay – maps UI chat/image requests onto Gemini calls."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..models.api_io import ChatMessage
from ..models.domain import RelayResult
from ..utils.logging import log_ai_response, log_user_message
from .discovery import ModelRegistry
from .errors import (
    CHAT_ERROR,
    IMAGE_ERROR,
    ContentSafetyBlocked,
    EmptyResponse,
    InvalidRequest,
    NoModelAvailable,
    NoVisionModelAvailable,
    PayloadTooLarge,
    RelayError,
    UnsupportedFormat,
    classify_upstream_error,
    troubleshooting_for,
)
from .llm_service import GenerationResult, LLMService, TextContent, inline_image, to_contents

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_PROMPT = "What's in this image?"
DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024


def check_image_upload(mime_type: Optional[str], size: int, max_bytes: int = DEFAULT_MAX_IMAGE_BYTES) -> None:
    """Reject non-image or oversized uploads before any upstream call."""
    if not mime_type or not mime_type.startswith("image/"):
        logger.error("Rejected file upload (%s) - Not an image", mime_type)
        raise UnsupportedFormat(
            "Only image files are allowed!",
            error="File upload failed",
            troubleshooting=troubleshooting_for(UnsupportedFormat.kind),
        )
    if size > max_bytes:
        logger.error("File upload rejected: File too large (max %d bytes)", max_bytes)
        raise PayloadTooLarge(
            f"Maximum file size is {max_bytes // (1024 * 1024)}MB",
            error="File too large",
            troubleshooting=troubleshooting_for(PayloadTooLarge.kind),
        )


class RequestRelay:
    """Forwards chat and image-analysis requests to the discovered models."""

    def __init__(
        self,
        llm: LLMService,
        registry: ModelRegistry,
        *,
        default_image_prompt: str = DEFAULT_IMAGE_PROMPT,
        max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
    ) -> None:
        self.llm = llm
        self.registry = registry
        self.default_image_prompt = default_image_prompt
        self.max_image_bytes = max_image_bytes

    # ─────────────────────────── Text completion ───────────────────────────
    async def complete_chat(
        self,
        messages: Sequence[ChatMessage],
        requested_model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> RelayResult:
        if not messages:
            logger.warning("Invalid request: missing or empty messages array")
            raise InvalidRequest("Invalid messages format")
        if messages[-1].role != "user":
            logger.warning("Invalid request: last message is from '%s'", messages[-1].role)
            raise InvalidRequest("The last message must be a user message")

        models = self.registry.current
        if not models.text:
            logger.error("No working text model available")
            raise NoModelAvailable()

        model_name = requested_model or models.text
        prompt = messages[-1].content
        logger.info("Chat request received: %d messages, using model %s", len(messages), model_name)
        log_user_message(logger, prompt)
        logger.info("Conversation history: %d previous messages", len(messages) - 1)

        try:
            result = await self.llm.generate(
                model_name, to_contents(messages), max_output_tokens=max_tokens
            )
        except Exception as exc:
            logger.error("Error in chat relay: %s", exc, exc_info=True)
            raise classify_upstream_error(exc, error=CHAT_ERROR) from exc

        text = self._require_text(result, error=CHAT_ERROR)
        log_ai_response(logger, text)
        logger.info("Chat response generated: %d characters", len(text))
        return RelayResult(text=text, model=model_name)

    # ─────────────────────────── Image analysis ────────────────────────────
    async def analyze_image(self, data: bytes, mime_type: str, prompt: Optional[str] = None) -> RelayResult:
        try:
            return await self._analyze_image(data, mime_type, prompt)
        except RelayError as err:
            if err.error == CHAT_ERROR:
                err.error = IMAGE_ERROR
            if not err.troubleshooting:
                err.troubleshooting = troubleshooting_for(err.kind)
            raise

    async def _analyze_image(self, data: bytes, mime_type: str, prompt: Optional[str]) -> RelayResult:
        logger.info("==== IMAGE ANALYSIS REQUEST ====")
        vision_model = self.registry.current.vision
        if not vision_model:
            logger.error("No working vision model available")
            raise NoVisionModelAvailable()

        check_image_upload(mime_type, len(data), self.max_image_bytes)

        prompt = prompt if prompt and prompt.strip() else self.default_image_prompt
        log_user_message(logger, f"[IMAGE] {prompt}")
        logger.info("Image size: %d bytes (%s), using vision model: %s", len(data), mime_type, vision_model)

        image = inline_image(data, mime_type)
        result = await self._generate_image(vision_model, [prompt, image])
        if not isinstance(result, TextContent) and not result.blocked:
            logger.warning("Empty image analysis result (%s); retrying with image first", result.reason)
            result = await self._generate_image(vision_model, [image, prompt])

        text = self._require_text(result, error=IMAGE_ERROR)
        log_ai_response(logger, f"[IMAGE ANALYSIS] {text}")
        logger.info("Image analysis successful! Response: %d characters", len(text))
        return RelayResult(text=text, model=vision_model)

    async def _generate_image(self, model: str, contents: list) -> GenerationResult:
        try:
            return await self.llm.generate(model, contents)
        except Exception as exc:
            logger.error("API call failed during image analysis: %s", exc, exc_info=True)
            raise classify_upstream_error(exc, error=IMAGE_ERROR) from exc

    @staticmethod
    def _require_text(result: GenerationResult, *, error: str) -> str:
        if isinstance(result, TextContent):
            return result.text
        if result.blocked:
            raise ContentSafetyBlocked(error=error)
        raise EmptyResponse(error=error)
