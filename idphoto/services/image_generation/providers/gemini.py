"""
Gemini image editing provider (Google AI generateContent).
Uses generativelanguage.googleapis.com with api_key.
200 OK without an image part is never a silent success: it raises with
response_received=True so the runner classifies it as a malformed response.
"""
import logging
import re
from typing import Any

import httpx

from idphoto.services.image_generation.base import (
    ImageGenerationProvider,
    ImageGenerationRequest,
    ImageGenerationResponse,
    ImageGenerationError,
    as_dict,
    as_list,
    build_gemini_error_detail,
    sanitize_gemini_response_for_log,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-image"
DEFAULT_OUTPUT_MIME_TYPE = "image/png"
# Google AI Studio keys: "AIza" followed by 35 url-safe characters
API_KEY_PATTERN = re.compile(r"^AIza[0-9A-Za-z_\-]{35}$")


def is_valid_api_key(api_key: str | None) -> bool:
    return bool(api_key) and API_KEY_PATTERN.match(api_key.strip()) is not None


def _error_message(err_body: dict[str, Any], fallback: str) -> str:
    """'STATUS: message' from a Google API error body."""
    error = err_body.get("error") if isinstance(err_body, dict) else None
    if not isinstance(error, dict):
        return fallback
    message = error.get("message") or fallback
    status = error.get("status")
    return f"{status}: {message}" if status else message


class GeminiImageProvider(ImageGenerationProvider):
    """Passport photo editing via Gemini generateContent API."""

    name = "gemini"

    def __init__(self, config: dict) -> None:
        super().__init__(config)
        self.api_key = (config.get("api_key") or "").strip()
        endpoint = (config.get("api_endpoint") or "https://generativelanguage.googleapis.com").rstrip("/")
        self.base_url = f"{endpoint}/v1beta/models"
        self.timeout = float(config.get("timeout", 120.0))
        self.model_name = (config.get("model") or DEFAULT_MODEL).strip()
        # httpx.MockTransport in tests
        self._transport: httpx.AsyncBaseTransport | None = config.get("transport")

    def is_available(self) -> bool:
        return is_valid_api_key(self.api_key)

    def build_payload(self, request: ImageGenerationRequest) -> dict[str, Any]:
        return {
            "contents": [{
                "role": "user",
                "parts": [
                    {"inlineData": {"data": request.image.data, "mimeType": request.image.media_type}},
                    {"text": request.prompt},
                ],
            }],
        }

    async def generate(self, request: ImageGenerationRequest) -> ImageGenerationResponse:
        model = (request.model or self.model_name).strip() or self.model_name
        url = f"{self.base_url}/{model}:generateContent"
        params = {"key": self.api_key}
        payload = self.build_payload(request)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, params=params, json=payload)
                resp.raise_for_status()
                result = resp.json()
        except httpx.HTTPStatusError as e:
            try:
                err_body = e.response.json()
            except ValueError:
                err_body = {}
            detail = build_gemini_error_detail(err_body)
            detail["http_status"] = e.response.status_code
            msg = _error_message(err_body, f"HTTP {e.response.status_code}")
            raise ImageGenerationError(msg, detail=detail) from e
        except httpx.RequestError as e:
            raise ImageGenerationError(
                f"{type(e).__name__}: {e}" if str(e) else type(e).__name__,
                detail={"transport": True},
            ) from e
        except ValueError as e:
            raise ImageGenerationError(
                f"Invalid JSON in Gemini response: {e}",
                detail={"response_received": True},
            ) from e

        return self._parse_result(result, model)

    def _parse_result(self, result: Any, model: str) -> ImageGenerationResponse:
        if not isinstance(result, dict):
            raise ImageGenerationError(
                "Unexpected Gemini response shape", detail={"response_received": True}
            )

        prompt_feedback = as_dict(result.get("promptFeedback"))
        if prompt_feedback.get("blockReason"):
            detail = build_gemini_error_detail(result)
            detail["response_received"] = True
            raise ImageGenerationError(
                f"Request blocked: {prompt_feedback['blockReason']}", detail=detail
            )

        candidates = as_list(result.get("candidates"))
        if not candidates:
            detail = build_gemini_error_detail(result)
            detail["response_received"] = True
            raise ImageGenerationError("No content generated", detail=detail)

        content = as_dict(as_dict(candidates[0]).get("content"))
        for part in as_list(content.get("parts")):
            part = as_dict(part)
            inline = as_dict(part.get("inlineData") or part.get("inline_data"))
            if isinstance(inline.get("data"), str) and inline["data"]:
                mime_type = inline.get("mimeType") or inline.get("mime_type") or DEFAULT_OUTPUT_MIME_TYPE
                return ImageGenerationResponse(
                    image_b64=inline["data"],
                    mime_type=mime_type,
                    model=model,
                    provider=self.name,
                    raw_response_sanitized=sanitize_gemini_response_for_log(result),
                )

        detail = build_gemini_error_detail(result)
        detail["response_received"] = True
        finish_message = detail.get("finish_message")
        logger.warning(
            "gemini_no_image_in_response",
            extra={"finish_reason": detail.get("finish_reason"), "model_version": model},
        )
        raise ImageGenerationError(
            finish_message or "No image data found in response", detail=detail
        )
