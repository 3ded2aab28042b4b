"""
Image generation runner: preprocess, call the provider, classify failures and
retry transient ones with exponential backoff and jitter.

Holds no state between calls. The remote call and the backoff wait are both
awaited, so cancelling the calling task stops the loop before the next attempt.
"""
import asyncio
import dataclasses
import logging
import random
import time
from typing import Any, Awaitable, Callable

from idphoto.services.image_generation.backoff import BackoffPolicy
from idphoto.services.image_generation.base import (
    GenerationError,
    ImageGenerationError,
    ImageGenerationProvider,
    ImageGenerationRequest,
    ImageGenerationResponse,
)
from idphoto.services.image_generation.failure_types import ErrorKind, classify_failure
from idphoto.services.image_generation.preprocess import DEFAULT_JPEG_QUALITY, prepare_image
from idphoto.utils.metrics import (
    generation_retries_total,
    provider_attempts_total,
    provider_request_duration_seconds,
)

logger = logging.getLogger(__name__)

# Keys for structured logging
LOG_KEYS = (
    "model_version",
    "finish_reason",
    "block_reason",
    "http_status",
    "attempt_number",
    "success_after_retry",
    "failure_type",
    "retry_allowed",
)


async def generate_with_retry(
    provider: ImageGenerationProvider,
    request: ImageGenerationRequest,
    policy: BackoffPolicy,
    *,
    max_dimension: int,
    jpeg_quality: int = DEFAULT_JPEG_QUALITY,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rng: random.Random | None = None,
) -> ImageGenerationResponse:
    """
    Generate an image, retrying QUOTA_EXCEEDED/SERVICE_OVERLOADED failures
    (and TRANSPORT_ERROR when the policy allows) up to policy.max_attempts calls.
    Raises GenerationError with the classified kind on terminal failure.
    """
    # Pillow decode/resize runs in a worker thread, not on the event loop
    image = await asyncio.to_thread(prepare_image, request.image, max_dimension, quality=jpeg_quality)
    if image is not request.image:
        request = dataclasses.replace(request, image=image)
    model_version = request.model or getattr(provider, "model_name", "")

    last_error: GenerationError | None = None
    for attempt_index in range(policy.max_attempts):
        attempt_number = attempt_index + 1
        started = time.monotonic()
        try:
            result = await provider.generate(request)
        except ImageGenerationError as e:
            provider_request_duration_seconds.labels(provider=provider.name).observe(
                time.monotonic() - started
            )
            detail = e.detail or {}
            http_status = detail.get("http_status")
            kind = classify_failure(http_status, detail, str(e))
            retry_allowed = policy.should_retry(kind)
            provider_attempts_total.labels(provider=provider.name, outcome=kind.value).inc()
            _log_structured(
                model_version=model_version,
                finish_reason=detail.get("finish_reason"),
                block_reason=detail.get("block_reason"),
                http_status=http_status,
                attempt_number=attempt_number,
                success_after_retry=False,
                failure_type=kind.value,
                retry_allowed=retry_allowed,
            )
            last_error = GenerationError(kind, str(e))
            if not retry_allowed:
                raise last_error from e

            delay_ms = policy.next_delay(attempt_index, rng)
            if delay_ms is None:
                logger.warning(
                    "image_generation_retries_exhausted",
                    extra={
                        "attempt": attempt_number,
                        "max_attempts": policy.max_attempts,
                        "failure_type": kind.value,
                    },
                )
                raise last_error from e

            generation_retries_total.labels(failure_type=kind.value).inc()
            logger.info(
                "image_generation_retry_scheduled",
                extra={
                    "attempt": attempt_number,
                    "max_attempts": policy.max_attempts,
                    "delay_seconds": round(delay_ms / 1000, 2),
                    "failure_type": kind.value,
                },
            )
            await sleep(delay_ms / 1000)
            continue

        provider_request_duration_seconds.labels(provider=provider.name).observe(
            time.monotonic() - started
        )
        provider_attempts_total.labels(provider=provider.name, outcome="success").inc()
        if attempt_index > 0:
            _log_structured(
                model_version=model_version,
                attempt_number=attempt_number,
                success_after_retry=True,
            )
        if result.raw_response_sanitized:
            logger.debug(
                "image_generation_raw_response",
                extra={"model_version": model_version, "raw_response": result.raw_response_sanitized},
            )
        return dataclasses.replace(result, attempts=attempt_number)

    # Only reachable with max_attempts < 1, which BackoffPolicy rejects
    if last_error is not None:
        raise last_error
    raise GenerationError(ErrorKind.UNKNOWN, "generate_with_retry: no attempts made")


def _log_structured(**kwargs: Any) -> None:
    """Emit one structured log line per attempt outcome."""
    extra = {k: v for k, v in kwargs.items() if k in LOG_KEYS and v is not None}
    logger.info("image_generation_result", extra=extra)
