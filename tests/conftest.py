# tests/conftest.py
"""
Shared pytest fixtures for gemini_chat tests.

The Gemini SDK is never contacted: `FakeLLM` exposes the same surface as
`LLMService` (``list_models`` + ``generate``) and records every call.
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from gemini_chat.config import Settings
from gemini_chat.models.domain import AvailableModels
from gemini_chat.services.analytics import AnalyticsAggregator
from gemini_chat.services.discovery import ModelRegistry
from gemini_chat.services.llm_service import TextContent
from gemini_chat.services.relay import RequestRelay
from gemini_chat.services.storage import KeyValueStore

logging.basicConfig(level=logging.WARNING)
logging.getLogger("gemini_chat").setLevel(logging.DEBUG)


class FakeLLM:
    """In-process stand-in for LLMService.

    * ``listed`` / ``list_error`` drive ``list_models``.
    * ``replies`` is a queue of results (or exceptions) for ``generate``;
      once it is empty, ``live`` decides which models answer text prompts
      and ``vision_ok`` which of them accept image input.
    """

    def __init__(self, listed=None, list_error=None, live=(), vision_ok=(), replies=None):
        self.listed = list(listed or [])
        self.list_error = list_error
        self.live = set(live)
        self.vision_ok = set(vision_ok)
        self.replies = list(replies or [])
        self.calls = []

    async def list_models(self):
        if self.list_error is not None:
            raise self.list_error
        return list(self.listed)

    async def generate(self, model, contents, *, max_output_tokens=None):
        self.calls.append((model, contents, max_output_tokens))
        if self.replies:
            reply = self.replies.pop(0)
            if isinstance(reply, BaseException):
                raise reply
            return reply
        if model not in self.live:
            raise RuntimeError(f"404 NOT_FOUND. models/{model} is not found for API version v1beta")
        if isinstance(contents, list) and model not in self.vision_ok:
            raise RuntimeError("400 INVALID_ARGUMENT. Image input not supported by this model")
        return TextContent(text="ok")


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def registry():
    return ModelRegistry(
        AvailableModels(
            text="gemini-2.0-flash",
            vision="gemini-pro-vision",
            all_models=("gemini-pro-vision", "gemini-2.0-flash"),
        )
    )


@pytest.fixture
def relay(fake_llm, registry):
    return RequestRelay(fake_llm, registry)


@pytest.fixture
def store(tmp_path):
    return KeyValueStore(tmp_path / "state.json")


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def analytics(store, clock):
    return AnalyticsAggregator(store, clock=clock)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        GOOGLE_API_KEY="AIza-test-key-0123456789",
        STATE_PATH=str(tmp_path / "state.json"),
        STATIC_DIR=str(tmp_path / "no-ui"),
        CORS_ORIGINS="http://localhost:3000",
    )


@pytest.fixture
def make_llm():
    return FakeLLM
