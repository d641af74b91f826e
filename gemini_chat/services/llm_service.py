import logging
from typing import Any, List, Optional, Sequence, Union

from google import genai
from google.genai import types as gt              # pydantic config classes
from pydantic import BaseModel

from ..models.api_io import ChatMessage

logger = logging.getLogger(__name__)

GENERATE_ACTION = "generateContent"
# finish reasons meaning the reply was withheld by a content filter
BLOCKED_FINISH_REASONS = ("SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII")


# ---------- decoded generation results -------------------------------------
class TextContent(BaseModel):
    text: str


class UnexpectedShape(BaseModel):
    reason: str
    blocked: bool = False


GenerationResult = Union[TextContent, UnexpectedShape]


def decode_response(resp: Any) -> GenerationResult:
    """Decode a generate_content response once, at the relay boundary."""
    try:
        text = getattr(resp, "text", None)
    except ValueError:
        # older SDKs raise when the candidate carries no text part
        text = None
    if text and text.strip():
        return TextContent(text=text)

    candidates = getattr(resp, "candidates", None) or []
    if candidates:
        candidate = candidates[0]
        content = getattr(candidate, "content", None)
        texts = [
            part.text
            for part in (getattr(content, "parts", None) or [])
            if getattr(part, "text", None)
        ]
        joined = "".join(texts)
        if joined.strip():
            return TextContent(text=joined)

        finish_reason = str(getattr(candidate, "finish_reason", "") or "")
        if any(marker in finish_reason.upper() for marker in BLOCKED_FINISH_REASONS):
            return UnexpectedShape(reason=f"finish_reason={finish_reason}", blocked=True)

    feedback = getattr(resp, "prompt_feedback", None)
    block_reason = getattr(feedback, "block_reason", None)
    if block_reason:
        return UnexpectedShape(reason=f"block_reason={block_reason}", blocked=True)

    logger.warning("Empty or filtered response: %s", resp)
    return UnexpectedShape(reason="empty")


# ---------- request content builders ---------------------------------------
def to_contents(messages: Sequence[ChatMessage]) -> List[gt.Content]:
    """Translate UI roles into Gemini roles (assistant -> model)."""
    return [
        gt.Content(
            role="model" if msg.role == "assistant" else "user",
            parts=[gt.Part(text=msg.content)],
        )
        for msg in messages
    ]


def inline_image(data: bytes, mime_type: str) -> gt.Part:
    # inline bytes travel base64-encoded inside the request body
    return gt.Part.from_bytes(data=data, mime_type=mime_type)


class LLMService:
    """Wrapper around the Google Gen AI SDK (listing + generation)."""

    def __init__(self, api_key: str, client: Optional[genai.Client] = None) -> None:
        logger.info("Initialising Google Gen AI client …")

        # One client for the whole lifetime of the service
        self.client = client or genai.Client(api_key=api_key)

    # ---------- model listing --------------------------------------------------
    async def list_models(self) -> List[str]:
        """Return names of models that can generate content.

        Models that report no ``supported_actions`` are kept.
        """
        names: List[str] = []
        pager = await self.client.aio.models.list()
        async for model in pager:
            actions = getattr(model, "supported_actions", None)
            if actions and GENERATE_ACTION not in actions:
                continue
            if model.name:
                names.append(model.name)
        return names

    # ---------- text generation ------------------------------------------------
    async def generate(
        self,
        model: str,
        contents: Any,
        *,
        max_output_tokens: Optional[int] = None,
    ) -> GenerationResult:
        """Run one generate_content call; SDK errors propagate to the caller."""
        cfg = None
        if max_output_tokens:
            cfg = gt.GenerateContentConfig(max_output_tokens=max_output_tokens)

        resp = await self.client.aio.models.generate_content(
            model=model,
            contents=contents,
            config=cfg,
        )
        return decode_response(resp)
