"""
Failure normalization for the image generation runner.
Single source of truth for mapping raw provider failures (HTTP status + message)
to an ErrorKind, and for which kinds may be retried.
"""
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    AUTH_ERROR = "auth_error"
    QUOTA_EXCEEDED = "quota_exceeded"  # 429, RESOURCE_EXHAUSTED
    SERVICE_OVERLOADED = "service_overloaded"  # 503, "model is overloaded"
    MALFORMED_RESPONSE = "malformed_response"  # 200 OK without an image part
    TRANSPORT_ERROR = "transport_error"  # no response: DNS, connect, timeout
    UNKNOWN = "unknown"


AUTH_STATUSES = frozenset({401, 403})

# Matched case-insensitively against the provider message, in rule order
AUTH_MARKERS = (
    "leaked",
    "revoked",
    "api key not valid",
    "api_key_invalid",
    "invalid api key",
    "permission denied",
    "permission_denied",
    "unauthenticated",
)
QUOTA_MARKERS = (
    "quota",
    "resource_exhausted",
    "resource exhausted",
    "rate limit",
    "too many requests",
)
OVERLOAD_MARKERS = (
    "overloaded",
    "unavailable",
    "busy",
)

RETRYABLE_KINDS = frozenset({
    ErrorKind.QUOTA_EXCEEDED,
    ErrorKind.SERVICE_OVERLOADED,
})


def _has_marker(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def classify_failure(
    http_status: int | None,
    detail: dict[str, Any] | None = None,
    message: str = "",
) -> ErrorKind:
    """
    Classify a failed remote call. Rules apply in order; the first match wins:
    auth > quota > overload > malformed response > transport > unknown.
    """
    detail = detail or {}
    text = (message or "").lower()

    if http_status in AUTH_STATUSES or _has_marker(text, AUTH_MARKERS):
        return ErrorKind.AUTH_ERROR
    if http_status == 429 or _has_marker(text, QUOTA_MARKERS):
        return ErrorKind.QUOTA_EXCEEDED
    if http_status == 503 or _has_marker(text, OVERLOAD_MARKERS):
        return ErrorKind.SERVICE_OVERLOADED
    if http_status is None and detail.get("response_received"):
        return ErrorKind.MALFORMED_RESPONSE
    if detail.get("transport"):
        return ErrorKind.TRANSPORT_ERROR
    return ErrorKind.UNKNOWN


def is_retryable(kind: ErrorKind, retry_transport_errors: bool = False) -> bool:
    if kind in RETRYABLE_KINDS:
        return True
    return retry_transport_errors and kind == ErrorKind.TRANSPORT_ERROR


def user_message_for(
    kind: ErrorKind,
    message: str = "",
    retry_after_seconds: int | None = None,
) -> str:
    """User-facing text for a terminal failure; always ends with a next action."""
    if kind == ErrorKind.AUTH_ERROR:
        return "The API key is missing, invalid or revoked. Check your API key configuration."
    if kind == ErrorKind.QUOTA_EXCEEDED:
        if retry_after_seconds:
            return f"Rate limit reached. Please wait {retry_after_seconds} seconds and try again."
        return "Rate limit reached. Please wait a minute and try again."
    if kind == ErrorKind.SERVICE_OVERLOADED:
        return "The image service is busy right now. Please try again shortly."
    if kind == ErrorKind.MALFORMED_RESPONSE:
        return "The service returned no image for this photo. Please try again."
    if kind == ErrorKind.TRANSPORT_ERROR:
        return "Could not reach the image service. Check your connection and try again."
    if message:
        return f"{message.rstrip('.')}. Please try again."
    return "Failed to generate image. Please try again."
