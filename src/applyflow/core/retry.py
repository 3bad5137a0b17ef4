from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

StepVerdict = Literal["continue", "stuck", "exhausted"]


@dataclass(frozen=True, slots=True)
class AttemptPolicy:
    max_attempts: int = 3
    delay_sec: float = 2.0
    backoff_factor: float = 1.0

    def delay_for(self, attempt: int) -> float:
        """Delay before retrying after the given (1-based) failed attempt."""
        return self.delay_sec * (self.backoff_factor ** (attempt - 1))


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: AttemptPolicy,
    *,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    label: str = "operation",
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    if policy.max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= policy.max_attempts:
                logger.warning("%s failed after %s attempts: %s", label, attempt, exc)
                raise
            delay = policy.delay_for(attempt)
            logger.info("%s attempt %s/%s failed (%s); retrying in %.1fs", label, attempt, policy.max_attempts, exc, delay)
            await sleep(delay)


@dataclass(slots=True)
class StepTracker:
    """Bounds a multi-step loop and notices when the same step keeps repeating."""

    max_steps: int
    stuck_threshold: int
    steps: int = 0
    _last_signature: str | None = field(default=None, repr=False)
    _repeats: int = field(default=0, repr=False)

    def record(self, signature: str) -> StepVerdict:
        self.steps += 1
        if signature == self._last_signature:
            self._repeats += 1
        else:
            self._last_signature = signature
            self._repeats = 1

        if self._repeats >= self.stuck_threshold:
            return "stuck"
        if self.steps > self.max_steps:
            return "exhausted"
        return "continue"
