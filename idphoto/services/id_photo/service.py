"""
Caller-facing ID photo generation: cooldown and credential gates in front of the
retry runner, cooldown fed with the outcome.
"""
import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable

from idphoto.services.id_photo.history import GenerationHistory
from idphoto.services.id_photo.prompt import DEFAULT_CLOTHING, build_id_photo_prompt
from idphoto.services.image_generation import (
    BackoffPolicy,
    CooldownActiveError,
    CooldownCoordinator,
    EncodedImage,
    ErrorKind,
    GenerationError,
    ImageGenerationProvider,
    ImageGenerationRequest,
    ImageProviderFactory,
    generate_with_retry,
)
from idphoto.services.image_generation.preprocess import DEFAULT_JPEG_QUALITY
from idphoto.utils.metrics import generation_duration_seconds, generation_requests_total

logger = logging.getLogger(__name__)


class IdPhotoService:
    """
    One instance per client session: owns that session's cooldown and history.
    Requests are expected one at a time; concurrent calls are not deduplicated.
    """

    def __init__(
        self,
        provider: ImageGenerationProvider,
        policy: BackoffPolicy | None = None,
        cooldown: CooldownCoordinator | None = None,
        history: GenerationHistory | None = None,
        *,
        max_dimension: int = 1024,
        jpeg_quality: int = DEFAULT_JPEG_QUALITY,
        default_clothing: str = DEFAULT_CLOTHING,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.provider = provider
        self.policy = policy or BackoffPolicy()
        self.cooldown = cooldown or CooldownCoordinator()
        self.history = history if history is not None else GenerationHistory()
        self.max_dimension = max_dimension
        self.jpeg_quality = jpeg_quality
        self.default_clothing = default_clothing
        self._sleep = sleep
        self._rng = rng

    @classmethod
    def from_settings(cls, settings: Any, provider: ImageGenerationProvider | None = None) -> "IdPhotoService":
        return cls(
            provider or ImageProviderFactory.create_from_settings(settings),
            BackoffPolicy.from_settings(settings),
            CooldownCoordinator(settings.cooldown_seconds),
            GenerationHistory(settings.history_max_items),
            max_dimension=settings.image_max_dimension,
            jpeg_quality=settings.image_jpeg_quality,
            default_clothing=settings.default_clothing,
        )

    async def generate(self, image: str, media_type: str | None = None, instructions: str | None = None) -> str:
        """
        Turn a photo (base64 or data URL) into a passport-style photo data URL.
        Raises GenerationError (CooldownActiveError while cooling down).
        """
        try:
            self.cooldown.check()
        except CooldownActiveError:
            generation_requests_total.labels(status="cooldown").inc()
            logger.info(
                "generation_rejected_cooldown",
                extra={"remaining_seconds": self.cooldown.remaining_seconds},
            )
            raise

        if not self.provider.is_available():
            generation_requests_total.labels(status=ErrorKind.AUTH_ERROR.value).inc()
            raise GenerationError(
                ErrorKind.AUTH_ERROR,
                "API key is missing or malformed. Please check your environment variables.",
            )

        request = ImageGenerationRequest(
            image=EncodedImage.from_data_url(image, media_type),
            prompt=build_id_photo_prompt(instructions, self.default_clothing),
        )

        started = time.monotonic()
        try:
            result = await generate_with_retry(
                self.provider,
                request,
                self.policy,
                max_dimension=self.max_dimension,
                jpeg_quality=self.jpeg_quality,
                sleep=self._sleep,
                rng=self._rng,
            )
        except GenerationError as e:
            self.cooldown.observe(e)
            generation_requests_total.labels(status=e.kind.value).inc()
            logger.warning(
                "generation_failed",
                extra={"failure_type": e.kind.value, "error": e.message},
            )
            raise
        finally:
            generation_duration_seconds.observe(time.monotonic() - started)

        generation_requests_total.labels(status="success").inc()
        self.history.add(result.image_data_url)
        return result.image_data_url

    def close(self) -> None:
        self.cooldown.stop()
