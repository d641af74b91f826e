"""FastAPI dependencies.

Services are built once per application in `create_app()` and parked on
``app.state``; these helpers hand them to the routes.
"""

from fastapi import Request

from gemini_chat.config import Settings
from gemini_chat.services.analytics import AnalyticsAggregator
from gemini_chat.services.discovery import ModelDiscovery, ModelRegistry
from gemini_chat.services.relay import RequestRelay
from gemini_chat.services.storage import ThemeStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> ModelRegistry:
    return request.app.state.registry


def get_discovery(request: Request) -> ModelDiscovery:
    return request.app.state.discovery


def get_relay(request: Request) -> RequestRelay:
    return request.app.state.relay


def get_analytics(request: Request) -> AnalyticsAggregator:
    return request.app.state.analytics


def get_theme_store(request: Request) -> ThemeStore:
    return request.app.state.themes
