"""Retry classification and backoff for remote Twilio calls.

``RetryPolicy.decide`` is pure: it only answers whether another attempt is
allowed and how long to wait first. ``call_with_retry`` is the loop that acts
on those decisions, re-invoking one logical operation with a fresh attempt
counter per call site.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from ..core.config import Settings, settings
from ..core.errors import (
    EscalationError,
    InvalidArgumentError,
    PermanentError,
    RetryExhaustedError,
    TransientError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
SleepCallable = Callable[[float], Awaitable[None]]
RandomSource = Callable[[], float]


class ErrorClass(str, enum.Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class RetryAction(str, enum.Enum):
    RETRY = "retry"
    FAIL = "fail"


@dataclass(slots=True, frozen=True)
class RetryDecision:
    action: RetryAction
    delay: float
    error_class: ErrorClass


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Bounded exponential backoff with additive jitter."""

    max_attempts: int = 3
    unknown_max_attempts: int = 1
    base_delay: float = 0.2
    multiplier: float = 2.0
    max_delay: float = 3.0
    jitter: float = 0.1

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "RetryPolicy":
        config = config or settings
        return cls(
            max_attempts=config.retry_max_attempts,
            unknown_max_attempts=config.retry_unknown_max_attempts,
            base_delay=config.retry_base_delay,
            multiplier=config.retry_multiplier,
            max_delay=config.retry_max_delay,
            jitter=config.retry_jitter,
        )

    @staticmethod
    def classify(error: BaseException) -> ErrorClass:
        if isinstance(error, TransientError):
            return ErrorClass.TRANSIENT
        if isinstance(error, (PermanentError, InvalidArgumentError, EscalationError)):
            return ErrorClass.PERMANENT
        return ErrorClass.UNKNOWN

    def backoff(self, attempt: int, rng: RandomSource = random.random) -> float:
        """Return the wait before retry number ``attempt`` (0-based)."""

        delay = min(self.max_delay, self.base_delay * (self.multiplier ** attempt))
        return delay + rng() * self.jitter

    def decide(
        self,
        error: BaseException,
        attempt: int,
        max_attempts: int | None = None,
        rng: RandomSource = random.random,
    ) -> RetryDecision:
        """Decide whether ``error`` raised on retry ``attempt`` deserves another try."""

        error_class = self.classify(error)
        ceiling = self.max_attempts if max_attempts is None else max_attempts
        if error_class is ErrorClass.UNKNOWN:
            ceiling = min(ceiling, self.unknown_max_attempts)

        if error_class is ErrorClass.PERMANENT or attempt >= ceiling:
            return RetryDecision(action=RetryAction.FAIL, delay=0.0, error_class=error_class)

        delay = self.backoff(attempt, rng)
        retry_after = getattr(error, "retry_after", None)
        if retry_after:
            delay = max(delay, min(float(retry_after), self.max_delay))
        return RetryDecision(action=RetryAction.RETRY, delay=delay, error_class=error_class)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    name: str,
    policy: RetryPolicy,
    sleep: SleepCallable = asyncio.sleep,
) -> T:
    """Await ``operation`` until it succeeds or ``policy`` says stop.

    Permanent errors propagate unchanged. Transient and unknown errors that
    run out of attempts are raised as :class:`RetryExhaustedError`.
    """

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            decision = policy.decide(exc, attempt)
            if decision.action is RetryAction.FAIL:
                if decision.error_class is ErrorClass.PERMANENT:
                    raise
                raise RetryExhaustedError(name, attempt + 1, exc) from exc

            logger.warning(
                "%s failed with %s error (retry %d of %d), waiting %.2fs: %s",
                name,
                decision.error_class.value,
                attempt + 1,
                policy.max_attempts,
                decision.delay,
                exc,
            )
            await sleep(decision.delay)
            attempt += 1
