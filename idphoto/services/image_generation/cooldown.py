"""
Client-side cooldown after a terminal rate-limit failure.

While remaining_seconds > 0 new generations are rejected before any network call.
A single ticker task is the only writer: it decrements once per second and stops
itself at zero. Everything else only reads.
"""
import asyncio
import logging
from typing import Awaitable, Callable

from idphoto.services.image_generation.base import CooldownActiveError, GenerationError
from idphoto.services.image_generation.failure_types import ErrorKind
from idphoto.utils.metrics import cooldown_remaining_seconds, cooldowns_triggered_total

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 60


class CooldownCoordinator:
    def __init__(
        self,
        cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.cooldown_seconds = cooldown_seconds
        self._sleep = sleep
        self._remaining = 0
        self._ticker: asyncio.Task | None = None

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def is_cooling(self) -> bool:
        return self._remaining > 0

    def check(self) -> None:
        """Pre-flight gate: raise CooldownActiveError while cooling."""
        if self._remaining > 0:
            raise CooldownActiveError(self._remaining)

    def observe(self, error: BaseException) -> None:
        """Enter cooldown if a generation terminated with QUOTA_EXCEEDED."""
        if isinstance(error, CooldownActiveError):
            return
        if isinstance(error, GenerationError) and error.kind == ErrorKind.QUOTA_EXCEEDED:
            self.trigger()
            error.retry_after_seconds = self._remaining or None

    def trigger(self) -> None:
        """Idle/Cooling -> Cooling at the full policy value."""
        if self.cooldown_seconds <= 0:
            return
        self._set_remaining(self.cooldown_seconds)
        cooldowns_triggered_total.inc()
        logger.warning("cooldown_started", extra={"remaining_seconds": self._remaining})
        self._ensure_ticker()

    def tick(self) -> int:
        """One second elapsed. Returns the new remaining value."""
        if self._remaining > 0:
            self._set_remaining(self._remaining - 1)
            if self._remaining == 0:
                logger.info("cooldown_finished", extra={"remaining_seconds": 0})
        return self._remaining

    def stop(self) -> None:
        """Cancel the ticker and go back to idle (session end)."""
        if self._ticker is not None and not self._ticker.done():
            self._ticker.cancel()
        self._ticker = None
        self._set_remaining(0)

    def _set_remaining(self, value: int) -> None:
        self._remaining = value
        cooldown_remaining_seconds.set(value)

    def _ensure_ticker(self) -> None:
        if self._ticker is not None and not self._ticker.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (sync caller): remaining time only moves via tick()
            return
        self._ticker = loop.create_task(self._run_ticker())

    async def _run_ticker(self) -> None:
        while self._remaining > 0:
            await self._sleep(1)
            self.tick()
