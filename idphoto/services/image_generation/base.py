"""
Base classes and types for image generation providers.
Used by the runner, the factory and the Gemini provider.
"""
import base64
import binascii
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from idphoto.services.image_generation.failure_types import ErrorKind, user_message_for

DATA_URL_PREFIX = "data:"


@dataclass(frozen=True)
class EncodedImage:
    """Base64 image payload with its declared media type."""
    data: str
    media_type: str

    @classmethod
    def from_data_url(cls, value: str, media_type: str | None = None) -> "EncodedImage":
        """
        Accept either a full data URL (data:image/jpeg;base64,...) or bare base64.
        An explicit media_type wins over the one declared in the URL.
        """
        value = (value or "").strip()
        declared = None
        if value.startswith(DATA_URL_PREFIX) and "," in value:
            header, value = value.split(",", 1)
            declared = header[len(DATA_URL_PREFIX):].split(";", 1)[0] or None
        return cls(data="".join(value.split()), media_type=media_type or declared or "image/jpeg")

    def to_data_url(self) -> str:
        return f"{DATA_URL_PREFIX}{self.media_type};base64,{self.data}"

    def decode(self) -> bytes:
        """Raw image bytes. Raises ValueError on invalid base64."""
        # Line-wrapped base64 (MIME style) is still valid input
        compact = "".join(self.data.split())
        try:
            return base64.b64decode(compact, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 image data: {e}") from e

    @classmethod
    def from_bytes(cls, raw: bytes, media_type: str) -> "EncodedImage":
        return cls(data=base64.standard_b64encode(raw).decode("ascii"), media_type=media_type)


@dataclass(frozen=True)
class ImageGenerationRequest:
    """Request for image generation: one source photo plus the instruction text."""
    image: EncodedImage
    prompt: str
    model: str | None = None


@dataclass(frozen=True)
class ImageGenerationResponse:
    """Response from image generation."""
    image_b64: str
    mime_type: str
    model: str
    provider: str
    attempts: int = 1
    raw_response_sanitized: dict[str, Any] | None = None

    @property
    def image_data_url(self) -> str:
        return f"{DATA_URL_PREFIX}{self.mime_type};base64,{self.image_b64}"


class ImageGenerationError(Exception):
    """
    Raised by providers when the remote call fails.
    detail holds the fields the classifier looks at: http_status, response_received,
    transport, finish_reason, block_reason.
    """
    def __init__(self, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.detail = detail or {}


class GenerationError(Exception):
    """Terminal failure surfaced to the caller: a classified kind plus the raw diagnostic."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        retry_after_seconds: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.retry_after_seconds = retry_after_seconds

    @property
    def user_message(self) -> str:
        return user_message_for(self.kind, self.message, self.retry_after_seconds)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class CooldownActiveError(GenerationError):
    """New request rejected pre-flight while the rate-limit cooldown is running."""

    def __init__(self, remaining_seconds: int) -> None:
        super().__init__(
            ErrorKind.QUOTA_EXCEEDED,
            f"Cooldown active: {remaining_seconds}s remaining",
            retry_after_seconds=remaining_seconds,
        )
        self.remaining_seconds = remaining_seconds


def as_dict(value: Any) -> dict[str, Any]:
    """Provider JSON node as a dict; anything else counts as missing."""
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def build_gemini_error_detail(result: dict[str, Any]) -> dict[str, Any]:
    """
    Extract error-related fields from raw Gemini API response for logging.
    Normalized keys: prompt_feedback, block_reason, finish_reason, finish_message.
    """
    detail: dict[str, Any] = {}
    if not isinstance(result, dict):
        return detail
    prompt_feedback = as_dict(result.get("promptFeedback"))
    if prompt_feedback:
        detail["prompt_feedback"] = prompt_feedback
        if prompt_feedback.get("blockReason"):
            detail["block_reason"] = prompt_feedback.get("blockReason")
    candidates = as_list(result.get("candidates"))
    if candidates:
        c0 = as_dict(candidates[0])
        if "finishReason" in c0:
            detail["finish_reason"] = c0["finishReason"]
        if "finishMessage" in c0:
            detail["finish_message"] = c0["finishMessage"]
    return detail


def _sanitize_value(value: Any) -> Any:
    """Recursively replace base64 data with placeholder."""
    if value is None:
        return None
    if isinstance(value, dict):
        if "data" in value and "mimeType" in value:
            return {"mimeType": value.get("mimeType"), "data": "[REDACTED]"}
        return {k: _sanitize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_sanitize_value(v) for v in value]
    return value


def sanitize_gemini_response_for_log(result: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of the Gemini response safe for logging (no base64 image data)."""
    if not result:
        return {}
    out = _sanitize_value(result)
    return out if isinstance(out, dict) else {}


class ImageGenerationProvider(ABC):
    """Base class for image generation providers (the remote call boundary)."""

    name = "base"

    def __init__(self, config: dict) -> None:
        self.config = config

    @abstractmethod
    def is_available(self) -> bool:
        """Check if provider is configured (credential present and well-formed)."""
        pass

    @abstractmethod
    async def generate(self, request: ImageGenerationRequest) -> ImageGenerationResponse:
        """Edit the request image per its prompt. Raises ImageGenerationError on failure."""
        pass

    async def aclose(self) -> None:
        """Release network resources. Providers without any keep the no-op."""
        return None
