"""Tests for classify_failure: rule order, status codes and message markers."""
import pytest

from idphoto.services.image_generation.failure_types import (
    ErrorKind,
    classify_failure,
    is_retryable,
    user_message_for,
)


@pytest.mark.parametrize(
    "http_status,detail,message,expected",
    [
        (403, {}, "PERMISSION_DENIED: Your API key was reported as leaked.", ErrorKind.AUTH_ERROR),
        (400, {}, "INVALID_ARGUMENT: API key not valid. Please pass a valid API key.", ErrorKind.AUTH_ERROR),
        (401, {}, "", ErrorKind.AUTH_ERROR),
        (None, {}, "The key has been REVOKED", ErrorKind.AUTH_ERROR),
        (429, {}, "", ErrorKind.QUOTA_EXCEEDED),
        (None, {}, "RESOURCE_EXHAUSTED: Quota exceeded for metric", ErrorKind.QUOTA_EXCEEDED),
        (500, {}, "Rate limit hit", ErrorKind.QUOTA_EXCEEDED),
        (503, {}, "", ErrorKind.SERVICE_OVERLOADED),
        (500, {}, "The model is overloaded. Please try again later.", ErrorKind.SERVICE_OVERLOADED),
        (None, {"response_received": True}, "No image data found in response", ErrorKind.MALFORMED_RESPONSE),
        (None, {"transport": True}, "ReadTimeout", ErrorKind.TRANSPORT_ERROR),
        (500, {}, "Internal error encountered.", ErrorKind.UNKNOWN),
        (None, {}, "", ErrorKind.UNKNOWN),
    ],
)
def test_classify_failure(http_status, detail, message, expected):
    assert classify_failure(http_status, detail, message) == expected


def test_auth_takes_precedence_over_quota():
    assert classify_failure(429, {}, "API key was reported as leaked") == ErrorKind.AUTH_ERROR


def test_quota_takes_precedence_over_overload():
    assert classify_failure(503, {}, "quota exceeded") == ErrorKind.QUOTA_EXCEEDED


def test_status_on_received_response_is_not_malformed():
    # HTTP error bodies are "received" but the status decides
    assert classify_failure(500, {"response_received": True}, "boom") == ErrorKind.UNKNOWN


def test_classify_is_deterministic():
    detail = {"http_status": 429}
    results = {classify_failure(429, detail, "Too Many Requests") for _ in range(10)}
    assert results == {ErrorKind.QUOTA_EXCEEDED}
    assert detail == {"http_status": 429}


def test_only_quota_and_overload_are_retryable_by_default():
    retryable = {kind for kind in ErrorKind if is_retryable(kind)}
    assert retryable == {ErrorKind.QUOTA_EXCEEDED, ErrorKind.SERVICE_OVERLOADED}


def test_transport_retryable_when_enabled():
    assert is_retryable(ErrorKind.TRANSPORT_ERROR, retry_transport_errors=True)
    assert not is_retryable(ErrorKind.AUTH_ERROR, retry_transport_errors=True)


def test_user_messages_name_a_next_action():
    assert "API key" in user_message_for(ErrorKind.AUTH_ERROR)
    assert "wait 42 seconds" in user_message_for(ErrorKind.QUOTA_EXCEEDED, retry_after_seconds=42)
    assert "try again" in user_message_for(ErrorKind.SERVICE_OVERLOADED)
    assert user_message_for(ErrorKind.UNKNOWN, "Something odd.") == "Something odd. Please try again."
