import logging
import os

AI_PREVIEW_CHARS = 150


def configure_logging(level: str | None = None) -> None:
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=level.upper(),
        format="%(levelname)s: %(message)s"
    )


def log_user_message(logger: logging.Logger, text: str) -> None:
    logger.info("[USER] %s", text)


def log_ai_response(logger: logging.Logger, text: str) -> None:
    # Long replies are cut for console readability
    if len(text) > AI_PREVIEW_CHARS:
        text = text[:AI_PREVIEW_CHARS] + "..."
    logger.info("[AI] %s", text)
