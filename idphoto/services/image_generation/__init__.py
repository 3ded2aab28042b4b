"""
Image generation pipeline: preprocessing, provider call, failure classification,
retry with backoff and the rate-limit cooldown.
"""
from .base import (
    EncodedImage,
    ImageGenerationProvider,
    ImageGenerationRequest,
    ImageGenerationResponse,
    ImageGenerationError,
    GenerationError,
    CooldownActiveError,
)
from .backoff import BackoffPolicy
from .cooldown import CooldownCoordinator
from .factory import ImageProviderFactory
from .failure_types import ErrorKind, classify_failure, is_retryable
from .preprocess import prepare_image
from .runner import generate_with_retry

__all__ = [
    "EncodedImage",
    "ImageGenerationProvider",
    "ImageGenerationRequest",
    "ImageGenerationResponse",
    "ImageGenerationError",
    "GenerationError",
    "CooldownActiveError",
    "BackoffPolicy",
    "CooldownCoordinator",
    "ImageProviderFactory",
    "ErrorKind",
    "classify_failure",
    "is_retryable",
    "prepare_image",
    "generate_with_retry",
]
