"""FastAPI entrypoint - thin layer that wires together services & routes.

All heavy lifting lives in sibling modules:
  • config.py          - env/config
  • services/          - discovery, relay, analytics, storage
  • api/routers/       - HTTP routes
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from gemini_chat import __version__
from gemini_chat.config import Settings, get_settings
from gemini_chat.services.analytics import AnalyticsAggregator
from gemini_chat.services.discovery import ModelDiscovery, ModelRegistry
from gemini_chat.services.errors import RelayError
from gemini_chat.services.llm_service import LLMService
from gemini_chat.services.relay import RequestRelay
from gemini_chat.services.storage import KeyValueStore, ThemeStore
from gemini_chat.utils.logging import configure_logging

from .routers import analytics, chat

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Discovery finishes before the first request is accepted.
    settings: Settings = app.state.settings
    if settings.discover_on_startup:
        logger.info("Testing API key validity...")
        if await app.state.discovery.discover():
            logger.info("Server started successfully with working models")
        else:
            logger.warning("Server started with invalid API key or no working models found!")
            logger.warning("Chat functionality will not work until this is resolved.")
            logger.warning("Please check your API key and restart the server.")
    yield


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.details, exc.kind)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def create_app(settings: Optional[Settings] = None, llm: Optional[LLMService] = None) -> FastAPI:
    settings = settings or get_settings()
    llm = llm or LLMService(api_key=settings.resolve_api_key())

    app = FastAPI(
        title="Gemini Chat Relay",
        description="Relays chat and image-analysis requests to Gemini and tracks usage analytics.",
        version=__version__,
        lifespan=lifespan,
    )

    registry = ModelRegistry()
    store = KeyValueStore(settings.state_path)
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.registry = registry
    app.state.discovery = ModelDiscovery(llm, registry)
    app.state.relay = RequestRelay(
        llm,
        registry,
        default_image_prompt=settings.default_image_prompt,
        max_image_bytes=settings.max_upload_bytes,
    )
    app.state.analytics = AnalyticsAggregator(store)
    app.state.themes = ThemeStore(store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RelayError, relay_error_handler)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    app.include_router(chat.router)
    app.include_router(analytics.router)
    app.include_router(analytics.preferences_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="ui")
    else:
        logger.info("No UI directory at %s, serving the API only", static_dir)

    return app


def run() -> None:
    import uvicorn
    from dotenv import load_dotenv

    # LOG_LEVEL may come from .env before settings are built
    load_dotenv()
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Server running on port %d", settings.port)
    logger.info("Visit http://localhost:%d to view the application", settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
