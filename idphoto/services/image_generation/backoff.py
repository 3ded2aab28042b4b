"""
Retry budget and backoff delays for the image generation runner.
Pure decisions only: the runner does the actual waiting.
"""
import random
from dataclasses import dataclass
from typing import Any

from idphoto.services.image_generation.failure_types import ErrorKind, is_retryable


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff with jitter: delay(i) = base_ms * 2^i + uniform(0, jitter_ms).
    max_attempts counts all calls, the first one included.
    """
    max_attempts: int = 3
    base_ms: int = 2000
    jitter_ms: int = 1000
    retry_transport_errors: bool = False

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_ms < 0 or self.jitter_ms < 0:
            raise ValueError("base_ms and jitter_ms must not be negative")

    @classmethod
    def from_settings(cls, settings: Any) -> "BackoffPolicy":
        return cls(
            max_attempts=getattr(settings, "image_generation_retry_max_attempts", 3),
            base_ms=getattr(settings, "image_generation_retry_base_ms", 2000),
            jitter_ms=getattr(settings, "image_generation_retry_jitter_ms", 1000),
            retry_transport_errors=getattr(
                settings, "image_generation_retry_transport_errors", False
            ),
        )

    def should_retry(self, kind: ErrorKind) -> bool:
        return is_retryable(kind, self.retry_transport_errors)

    def is_exhausted(self, attempt_index: int) -> bool:
        return attempt_index >= self.max_attempts - 1

    def next_delay(self, attempt_index: int, rng: random.Random | None = None) -> float | None:
        """
        Milliseconds to wait after failed attempt `attempt_index` (0-based),
        or None when no attempts remain.
        """
        if attempt_index < 0:
            raise ValueError("attempt_index must be >= 0")
        if self.is_exhausted(attempt_index):
            return None
        jitter = (rng or random).uniform(0, self.jitter_ms) if self.jitter_ms else 0.0
        return self.base_ms * 2 ** attempt_index + jitter

    def max_total_delay_ms(self) -> int:
        """Upper bound on the time spent waiting across the whole retry budget."""
        return sum(
            self.base_ms * 2 ** i + self.jitter_ms
            for i in range(self.max_attempts - 1)
        )
