"""Tests for GeminiImageProvider against httpx.MockTransport (no network)."""
import json
import unittest

import httpx

from idphoto.services.image_generation.base import EncodedImage, ImageGenerationError, ImageGenerationRequest
from idphoto.services.image_generation.factory import ImageProviderFactory
from idphoto.services.image_generation.failure_types import ErrorKind, classify_failure
from idphoto.services.image_generation.providers.gemini import GeminiImageProvider, is_valid_api_key

API_KEY = "AIza" + "A" * 35
REQUEST = ImageGenerationRequest(
    image=EncodedImage(data="aGVsbG8=", media_type="image/jpeg"),
    prompt="Create a passport photo",
)


def make_provider(handler) -> GeminiImageProvider:
    return GeminiImageProvider({
        "api_key": API_KEY,
        "transport": httpx.MockTransport(handler),
    })


def image_body(mime_type: str = "image/png") -> dict:
    return {
        "candidates": [{
            "content": {"parts": [
                {"text": "Here is your photo"},
                {"inlineData": {"mimeType": mime_type, "data": "UE5HREFUQQ=="}},
            ]},
            "finishReason": "STOP",
        }],
    }


class TestGeminiProvider(unittest.IsolatedAsyncioTestCase):
    async def test_success_returns_first_image_part(self):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=image_body("image/jpeg"))

        result = await make_provider(handler).generate(REQUEST)

        self.assertEqual(result.image_data_url, "data:image/jpeg;base64,UE5HREFUQQ==")
        self.assertEqual(result.model, "gemini-2.5-flash-image")
        self.assertEqual(result.provider, "gemini")
        self.assertEqual(result.raw_response_sanitized["candidates"][0]["content"]["parts"][1]["inlineData"]["data"], "[REDACTED]")
        self.assertTrue(seen["url"].path.endswith("/v1beta/models/gemini-2.5-flash-image:generateContent"))
        self.assertEqual(seen["url"].params["key"], API_KEY)
        parts = seen["body"]["contents"][0]["parts"]
        self.assertEqual(parts[0], {"inlineData": {"data": "aGVsbG8=", "mimeType": "image/jpeg"}})
        self.assertEqual(parts[1], {"text": "Create a passport photo"})

    async def test_missing_mime_type_defaults_to_png(self):
        body = {"candidates": [{"content": {"parts": [{"inlineData": {"data": "QUJD"}}]}}]}
        provider = make_provider(lambda request: httpx.Response(200, json=body))
        result = await provider.generate(REQUEST)
        self.assertEqual(result.image_data_url, "data:image/png;base64,QUJD")

    async def test_rate_limit_status_and_message(self):
        body = {"error": {"code": 429, "message": "Resource has been exhausted", "status": "RESOURCE_EXHAUSTED"}}
        provider = make_provider(
            lambda request: httpx.Response(429, json=body)
        )
        with self.assertRaises(ImageGenerationError) as ctx:
            await provider.generate(REQUEST)
        err = ctx.exception
        self.assertEqual(err.detail["http_status"], 429)
        self.assertEqual(str(err), "RESOURCE_EXHAUSTED: Resource has been exhausted")
        self.assertEqual(classify_failure(429, err.detail, str(err)), ErrorKind.QUOTA_EXCEEDED)

    async def test_invalid_key_classified_as_auth(self):
        body = {"error": {"code": 400, "message": "API key not valid. Please pass a valid API key.", "status": "INVALID_ARGUMENT"}}
        provider = make_provider(lambda request: httpx.Response(400, json=body))
        with self.assertRaises(ImageGenerationError) as ctx:
            await provider.generate(REQUEST)
        err = ctx.exception
        self.assertEqual(classify_failure(err.detail["http_status"], err.detail, str(err)), ErrorKind.AUTH_ERROR)

    async def test_non_json_error_body(self):
        provider = make_provider(lambda request: httpx.Response(503, text="<html>down</html>"))
        with self.assertRaises(ImageGenerationError) as ctx:
            await provider.generate(REQUEST)
        self.assertEqual(ctx.exception.detail["http_status"], 503)
        self.assertEqual(str(ctx.exception), "HTTP 503")

    async def test_no_image_part_is_malformed(self):
        body = {"candidates": [{"content": {"parts": [{"text": "I cannot edit this photo."}]}, "finishReason": "STOP"}]}
        provider = make_provider(lambda request: httpx.Response(200, json=body))
        with self.assertRaises(ImageGenerationError) as ctx:
            await provider.generate(REQUEST)
        err = ctx.exception
        self.assertTrue(err.detail["response_received"])
        self.assertEqual(classify_failure(None, err.detail, str(err)), ErrorKind.MALFORMED_RESPONSE)

    async def test_no_candidates_is_malformed(self):
        provider = make_provider(lambda request: httpx.Response(200, json={"candidates": []}))
        with self.assertRaises(ImageGenerationError) as ctx:
            await provider.generate(REQUEST)
        self.assertEqual(str(ctx.exception), "No content generated")
        self.assertTrue(ctx.exception.detail["response_received"])

    async def test_blocked_prompt_is_malformed(self):
        body = {"promptFeedback": {"blockReason": "SAFETY"}}
        provider = make_provider(lambda request: httpx.Response(200, json=body))
        with self.assertRaises(ImageGenerationError) as ctx:
            await provider.generate(REQUEST)
        self.assertEqual(ctx.exception.detail["block_reason"], "SAFETY")
        self.assertTrue(ctx.exception.detail["response_received"])

    async def test_invalid_json_is_malformed(self):
        provider = make_provider(lambda request: httpx.Response(200, text="not json"))
        with self.assertRaises(ImageGenerationError) as ctx:
            await provider.generate(REQUEST)
        self.assertTrue(ctx.exception.detail["response_received"])

    async def test_unexpected_node_types_are_malformed(self):
        bodies = (
            {"candidates": [{"content": {"parts": ["oops"]}}]},
            {"candidates": ["x"]},
            {"candidates": [{"content": {"parts": [{"inlineData": "abc"}]}}]},
            {"candidates": [{"content": []}]},
            {"candidates": {"content": {}}},
            {"promptFeedback": "SAFETY", "candidates": [None]},
        )
        for body in bodies:
            provider = make_provider(lambda request, body=body: httpx.Response(200, json=body))
            with self.assertRaises(ImageGenerationError, msg=json.dumps(body)) as ctx:
                await provider.generate(REQUEST)
            err = ctx.exception
            self.assertTrue(err.detail["response_received"])
            self.assertEqual(classify_failure(None, err.detail, str(err)), ErrorKind.MALFORMED_RESPONSE)

    async def test_image_found_after_unexpected_parts(self):
        body = {"candidates": [{"content": {"parts": [
            "caption",
            {"inlineData": None},
            {"inlineData": {"mimeType": "image/png", "data": "QUJD"}},
        ]}}]}
        provider = make_provider(lambda request: httpx.Response(200, json=body))
        result = await provider.generate(REQUEST)
        self.assertEqual(result.image_data_url, "data:image/png;base64,QUJD")

    async def test_list_error_body_keeps_status(self):
        provider = make_provider(lambda request: httpx.Response(500, json=[{"error": "boom"}]))
        with self.assertRaises(ImageGenerationError) as ctx:
            await provider.generate(REQUEST)
        self.assertEqual(ctx.exception.detail, {"http_status": 500})
        self.assertEqual(str(ctx.exception), "HTTP 500")

    async def test_connection_error_is_transport(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(ImageGenerationError) as ctx:
            await make_provider(handler).generate(REQUEST)
        err = ctx.exception
        self.assertEqual(err.detail, {"transport": True})
        self.assertEqual(classify_failure(None, err.detail, str(err)), ErrorKind.TRANSPORT_ERROR)

    async def test_timeout_is_transport(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with self.assertRaises(ImageGenerationError) as ctx:
            await make_provider(handler).generate(REQUEST)
        self.assertTrue(ctx.exception.detail["transport"])


class TestApiKeyShape(unittest.TestCase):
    def test_valid_key(self):
        self.assertTrue(is_valid_api_key(API_KEY))
        self.assertTrue(GeminiImageProvider({"api_key": API_KEY}).is_available())

    def test_invalid_keys(self):
        for key in ("", None, "AIza-short", "sk-" + "a" * 40, "AIza" + "A" * 36, "AIza" + "A" * 34 + "!"):
            self.assertFalse(is_valid_api_key(key), key)
        self.assertFalse(GeminiImageProvider({}).is_available())


class TestFactory(unittest.TestCase):
    def test_create_gemini(self):
        provider = ImageProviderFactory.create("Gemini", {"api_key": API_KEY, "model": "gemini-3-pro-image-preview"})
        self.assertIsInstance(provider, GeminiImageProvider)
        self.assertEqual(provider.model_name, "gemini-3-pro-image-preview")

    def test_unknown_provider(self):
        with self.assertRaises(ValueError):
            ImageProviderFactory.create("dall-e", {})
