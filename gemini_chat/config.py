"""Global configuration using pydantic settings management.

Values are loaded from environment variables (or an .env file) and
exposed via the cached `get_settings()` accessor.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "your-api-key-here"


class Settings(BaseSettings):
    """Application configuration loaded from env or defaults."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Gemini API
    google_api_key: str = Field(default="", alias="GOOGLE_API_KEY")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS - accept comma-separated string
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    # UI + uploads
    static_dir: str = Field(default="public", alias="STATIC_DIR")
    max_upload_bytes: int = Field(default=5 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")
    default_image_prompt: str = Field(default="What's in this image?", alias="DEFAULT_IMAGE_PROMPT")

    # Local key/value state (analytics + theme)
    state_path: str = Field(default=".chat_state.json", alias="STATE_PATH")

    discover_on_startup: bool = Field(default=True, alias="DISCOVER_ON_STARTUP")

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert comma-separated CORS origins to list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def api_key_set(self) -> bool:
        key = self.google_api_key
        return bool(key) and key != PLACEHOLDER_API_KEY and len(key) > 10

    def resolve_api_key(self) -> str:
        """Return the key handed to the SDK, logging a masked copy.

        Falls back to the placeholder so the SDK client can still be built;
        every upstream call then fails and discovery reports degraded service.
        """
        key = self.google_api_key
        if not key:
            logger.warning("No API key found in environment variables, using fallback key")
            logger.error("The fallback API key is still set to the default placeholder.")
            logger.error("Set GOOGLE_API_KEY in the environment or in .env.")
            return PLACEHOLDER_API_KEY

        logger.info("Using API key from environment variable: %s", mask_key(key))
        if len(key) < 10 or key == PLACEHOLDER_API_KEY:
            logger.warning("The API key from environment looks suspicious (too short or default value)")
        return key


def mask_key(key: str) -> str:
    if len(key) > 8:
        return f"{key[:4]}...{key[-4:]}"
    return "****"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
