"""Startup discovery of the Gemini models usable with the configured key.

Discovery first asks the API for its model list. When listing fails or comes
back empty it probes a fixed catalog of known model names one at a time.
The finished selection is published to a `ModelRegistry` as one immutable
snapshot, so request handlers never observe a half-built state.
"""

from __future__ import annotations

import base64
import logging
from typing import List, Optional, Sequence, Tuple

from ..models.domain import AvailableModels, ModelInfo
from .llm_service import LLMService, TextContent, inline_image
from .scoring import is_better_model, is_vision_name, score

logger = logging.getLogger(__name__)

# Vision-named candidates first, then text-only ones.
CANDIDATE_MODELS: Tuple[str, ...] = (
    "gemini-2.0-vision",
    "gemini-1.5-vision",
    "gemini-1.5-pro-vision",
    "gemini-pro-vision",
    "gemini-vision",
    "gemini-2.0-pro-vision",
    "gemini-ultra-vision",
    "gemini-2.0-flash",
    "gemini-2.0-pro",
    "gemini-1.5-flash",
    "gemini-1.5-pro",
    "gemini-pro",
)

LIVENESS_PROMPT = "Test"
PROBE_QUESTION = "What color is this image?"
# 1x1 PNG
PROBE_IMAGE_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8DwHwAFBQIAX8jx0gAAAABJRU5ErkJggg=="
)


class ModelRegistry:
    """Process-wide handle on the current `AvailableModels` snapshot."""

    def __init__(self, initial: Optional[AvailableModels] = None) -> None:
        self._current = initial or AvailableModels()

    @property
    def current(self) -> AvailableModels:
        return self._current

    def publish(self, snapshot: AvailableModels) -> None:
        # single reference swap; readers see the old or the new snapshot
        self._current = snapshot


def best_model(names: Sequence[str], *, vision_capable: bool = False) -> Optional[str]:
    """Highest-scoring name; the earliest one wins on equal scores."""
    if not names:
        return None
    return max(names, key=lambda name: score(name, probed_vision=vision_capable))


def classify_listed_models(names: Sequence[str]) -> AvailableModels:
    """Select text + vision models from an API listing (name-based only)."""
    vision_models = [name for name in names if is_vision_name(name)]
    text_models = [name for name in names if not is_vision_name(name)]

    if vision_models:
        logger.info("Found %d vision models: %s", len(vision_models), ", ".join(vision_models))
    else:
        logger.warning('No models with "vision" in the name were found')

    if text_models:
        logger.info("Found %d text models: %s", len(text_models), ", ".join(text_models))

    return AvailableModels(
        text=best_model(text_models or list(names)),
        vision=best_model(vision_models),
        all_models=tuple(names),
    )


class ModelDiscovery:
    """Finds the best text and vision model and publishes them."""

    def __init__(
        self,
        llm: LLMService,
        registry: ModelRegistry,
        candidates: Sequence[str] = CANDIDATE_MODELS,
    ) -> None:
        self.llm = llm
        self.registry = registry
        self.candidates = tuple(candidates)
        self.models: Tuple[ModelInfo, ...] = ()

    async def discover(self) -> bool:
        """Run discovery to completion; report failure instead of raising."""
        try:
            logger.info("Discovering available Gemini models...")
            listed = await self._list_models()
            if listed:
                logger.info("Processing models returned by API...")
                snapshot = classify_listed_models(listed)
                self.models = tuple(
                    ModelInfo(name=name, supports_vision=is_vision_name(name)) for name in listed
                )
            else:
                snapshot = await self._probe_candidates()
        except Exception as exc:
            logger.error("Error discovering models: %s", exc, exc_info=True)
            return False

        self.registry.publish(snapshot)
        self._log_selection(snapshot)

        if not snapshot.text and not snapshot.vision:
            logger.error(
                "No working models found! API key may be invalid or service might be unavailable."
            )
            return False

        if snapshot.vision:
            logger.info("Vision model is available and ready to use")
        else:
            logger.warning("No vision model was found - image analysis will not be available")
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _list_models(self) -> List[str]:
        try:
            names = await self.llm.list_models()
        except Exception as exc:
            logger.warning("Could not list models from API: %s", exc)
            logger.info("Will try predefined model names instead")
            return []
        logger.info("Available models from API: %s", names)
        return names

    async def _probe_candidates(self) -> AvailableModels:
        logger.info("Testing predefined model names (prioritizing vision models)...")

        text: Optional[str] = None
        vision: Optional[str] = None
        found: List[str] = []
        infos: List[ModelInfo] = []

        for name in self.candidates:
            try:
                await self.llm.generate(name, LIVENESS_PROMPT)
            except Exception as exc:
                logger.debug("Model '%s' is not available: %s", name, exc)
                continue

            logger.info("Model '%s' is available", name)
            found.append(name)

            info = ModelInfo(name=name, supports_vision=is_vision_name(name))
            if not info.supports_vision and await self._probe_vision(name):
                info = ModelInfo(name=name, supports_vision=True, probed_vision=True)
            infos.append(info)

            if info.supports_vision:
                if vision is None:
                    logger.info("Found vision model: %s", name)
                    vision = name
                elif is_better_model(name, vision, vision_capable=True):
                    logger.info("Found potentially better vision model: %s (replacing %s)", name, vision)
                    vision = name

            if not is_vision_name(name):
                if text is None:
                    logger.info("Found text model: %s", name)
                    text = name
                elif is_better_model(name, text):
                    logger.info("Found potentially better text model: %s (replacing %s)", name, text)
                    text = name

        if text is None and found:
            # only vision-named models answered; they still take text prompts
            text = best_model(found)

        self.models = tuple(infos)
        return AvailableModels(text=text, vision=vision, all_models=tuple(found))

    async def _probe_vision(self, name: str) -> bool:
        """One multimodal request to detect undocumented vision support."""
        try:
            result = await self.llm.generate(
                name, [inline_image(PROBE_IMAGE_PNG, "image/png"), PROBE_QUESTION]
            )
        except Exception as exc:
            logger.debug("Model '%s' did not accept image input: %s", name, exc)
            return False
        if isinstance(result, TextContent):
            logger.info("Model '%s' answered an image probe; treating it as a vision model", name)
            return True
        return False

    @staticmethod
    def _log_selection(snapshot: AvailableModels) -> None:
        logger.info("==== SELECTED MODELS ====")
        logger.info("Text model: %s", snapshot.text or "None available")
        logger.info("Vision model: %s", snapshot.vision or "None available")
        logger.info("All available models:")
        for index, name in enumerate(snapshot.all_models, start=1):
            logger.info("%d. %s", index, name)
