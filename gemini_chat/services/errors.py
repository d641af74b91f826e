"""Relay error taxonomy and upstream error classification."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

CHAT_ERROR = "An error occurred while processing your request"
IMAGE_ERROR = "An error occurred while processing your image"


class RelayError(Exception):
    """Base class for every failure surfaced to the HTTP caller."""

    status_code: int = 500
    kind: str = "generic_upstream_error"
    default_details: str = "An unexpected error occurred."

    def __init__(
        self,
        details: Optional[str] = None,
        *,
        error: Optional[str] = None,
        troubleshooting: Optional[Iterable[str]] = None,
    ) -> None:
        self.details = details or self.default_details
        self.error = error or CHAT_ERROR
        self.troubleshooting: List[str] = list(troubleshooting or [])
        super().__init__(self.details)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.error, "details": self.details}
        if self.troubleshooting:
            payload["troubleshooting"] = self.troubleshooting
        return payload


class InvalidRequest(RelayError):
    status_code = 400
    kind = "invalid_request"
    default_details = "Invalid messages format"


class NoModelAvailable(RelayError):
    status_code = 503
    kind = "no_model_available"
    default_details = "The server could not find any working Gemini text models"

    def __init__(self, details: Optional[str] = None, **kwargs: Any) -> None:
        kwargs.setdefault("error", "No working text model available")
        super().__init__(details, **kwargs)


class NoVisionModelAvailable(RelayError):
    status_code = 503
    kind = "no_vision_model_available"
    default_details = "The server could not find any working Gemini vision models"

    def __init__(self, details: Optional[str] = None, **kwargs: Any) -> None:
        kwargs.setdefault("error", "No working vision model available")
        super().__init__(details, **kwargs)


class InvalidCredentials(RelayError):
    status_code = 401
    kind = "invalid_credentials"
    default_details = "Invalid API key. Please check your Gemini API key configuration."


class ModelNotFound(RelayError):
    status_code = 404
    kind = "model_not_found"
    default_details = "The requested model was not found. Please check your model name."


class QuotaExceeded(RelayError):
    status_code = 429
    kind = "quota_exceeded"
    default_details = "API quota exceeded. Please try again later or check your usage limits."


class EmptyResponse(RelayError):
    status_code = 502
    kind = "empty_response"
    default_details = "The model returned an empty response."


class ContentSafetyBlocked(RelayError):
    status_code = 400
    kind = "content_safety_blocked"
    default_details = "The request was blocked by the model's safety filters."


class PayloadTooLarge(RelayError):
    status_code = 413
    kind = "payload_too_large"
    default_details = "Image size too large. Please use a smaller image."


class UnsupportedFormat(RelayError):
    status_code = 415
    kind = "unsupported_format"
    default_details = "Image format not supported. Supported formats include JPEG, PNG, WEBP, and GIF."


class GenericUpstreamError(RelayError):
    status_code = 500
    kind = "generic_upstream_error"


# First match wins.
_UPSTREAM_PATTERNS: Tuple[Tuple[Tuple[str, ...], Type[RelayError]], ...] = (
    (("api key not valid", "api_key_invalid"), InvalidCredentials),
    (("not found",), ModelNotFound),
    (("quota", "resource_exhausted"), QuotaExceeded),
    (("safety", "blocked"), ContentSafetyBlocked),
    (("exceeds the maximum size", "too large"), PayloadTooLarge),
    (("not supported", "unsupported"), UnsupportedFormat),
)

IMAGE_TROUBLESHOOTING: Dict[str, List[str]] = {
    InvalidCredentials.kind: [
        "Check that GOOGLE_API_KEY is set to a valid Gemini API key",
        "Make sure the key has not been rotated or revoked",
    ],
    QuotaExceeded.kind: [
        "Wait a moment and try again",
        "Check the usage limits of your Gemini API project",
    ],
    ModelNotFound.kind: [
        "Restart the server to re-run model discovery",
        "Verify that your API key has access to Gemini vision models",
    ],
    ContentSafetyBlocked.kind: [
        "Try a different image or rephrase the prompt",
    ],
    PayloadTooLarge.kind: [
        "Use an image smaller than 5MB",
        "Resize or compress the image before uploading",
    ],
    UnsupportedFormat.kind: [
        "Use a JPEG, PNG, WEBP or GIF image",
    ],
    EmptyResponse.kind: [
        "Try again with a more specific prompt",
        "Try a clearer or higher-contrast image",
    ],
    NoVisionModelAvailable.kind: [
        "Check the server log for the model discovery results",
        "Verify that your API key has access to Gemini vision models",
    ],
}

GENERIC_IMAGE_TROUBLESHOOTING = [
    "Check that the image is a valid JPEG, PNG, WEBP or GIF file",
    "Try a smaller image (maximum 5MB)",
    "Check the server log for details",
]


def troubleshooting_for(kind: str) -> List[str]:
    return list(IMAGE_TROUBLESHOOTING.get(kind, GENERIC_IMAGE_TROUBLESHOOTING))


def classify_upstream_error(exc: BaseException, *, error: str = CHAT_ERROR) -> RelayError:
    """Map an SDK/transport exception onto the taxonomy by its description."""
    description = str(exc) or exc.__class__.__name__
    lowered = description.lower()
    for markers, error_cls in _UPSTREAM_PATTERNS:
        if any(marker in lowered for marker in markers):
            return error_cls(error=error)
    return GenericUpstreamError(description, error=error)
