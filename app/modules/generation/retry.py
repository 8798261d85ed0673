"""Bounded retry with exponential backoff for completion calls.

Policy: one initial attempt plus up to ``max_retries`` retries. HTTP 429 and
5xx failures wait ``base_delay * 2**attempt`` seconds before the next try
(429 adds random jitter); timeouts retry immediately. Each attempt is capped
by ``timeout`` seconds. Anything else propagates on the first occurrence.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from app.core.config import GenerationSettings, settings
from app.core.errors import GenerationFailedError, TransientCallError
from app.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 1.0
    jitter: float = 1.0
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, gen: Optional[GenerationSettings] = None) -> "RetryPolicy":
        gen = gen or settings.generation
        return cls(
            max_retries=gen.max_retries,
            base_delay=gen.backoff_base_seconds,
            jitter=gen.jitter_seconds,
            timeout=gen.timeout_seconds,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(
        self, attempt: int, *, rate_limited: bool, rand: Callable[[], float] = random.random
    ) -> float:
        delay = self.base_delay * (2**attempt)
        if rate_limited:
            delay += rand() * self.jitter
        return delay


async def call_with_retry(
    call: Callable[[], Awaitable[T]],
    *,
    action: str,
    policy: Optional[RetryPolicy] = None,
    sleep: Sleep = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """Run ``call`` until it succeeds or the policy is exhausted.

    Raises ``GenerationFailedError`` (with the number of attempts made) once
    every attempt failed with a retryable error.
    """
    policy = policy or RetryPolicy.from_settings()
    last_error: Optional[TransientCallError] = None
    for attempt in range(policy.max_attempts):
        try:
            return await asyncio.wait_for(call(), timeout=policy.timeout)
        except asyncio.TimeoutError:
            last_error = TransientCallError("The request timed out", timed_out=True)
        except TransientCallError as e:
            last_error = e

        if attempt == policy.max_retries:
            break
        logger.warning(
            f"{action}: attempt {attempt + 1}/{policy.max_attempts} failed "
            f"({last_error.message}); retrying"
        )
        if last_error.timed_out:
            continue
        await sleep(policy.delay_for(attempt, rate_limited=last_error.rate_limited, rand=rand))

    raise GenerationFailedError(action, policy.max_attempts, last_error)
