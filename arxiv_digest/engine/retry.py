"""Pluggable retry policy with exponential backoff."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import structlog

from ..config import RetryPolicyConfig
from .cancellation import CancelToken, ensure_token
from .errors import FetchExhausted

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("RetryPolicy needs at least one attempt")

    @classmethod
    def from_config(cls, config: RetryPolicyConfig) -> "RetryPolicy":
        return cls(
            attempts=config.attempts,
            base_delay=config.base_delay,
            multiplier=config.multiplier,
        )

    def delay_for(self, failed_attempt: int) -> float:
        """Delay before the attempt following ``failed_attempt`` (1-based)."""

        return self.base_delay * self.multiplier ** (failed_attempt - 1)

    def delays(self) -> list[float]:
        return [self.delay_for(n) for n in range(1, self.attempts)]


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    token: CancelToken | None = None,
    logger: structlog.BoundLogger | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> T:
    """Run ``operation`` up to ``policy.attempts`` times.

    Only :class:`FetchExhausted` is retried; cancellation stops immediately.
    The last error is raised once the budget is spent.
    """

    token = ensure_token(token)
    log = logger or structlog.get_logger("arxiv_digest.retry")
    pause = sleep or token.sleep
    for attempt in range(1, policy.attempts):
        token.raise_if_cancelled()
        try:
            return await operation()
        except FetchExhausted as exc:
            delay = policy.delay_for(attempt)
            log.warning("retry_scheduled", attempt=attempt, delay=delay, error=str(exc))
            await pause(delay)
    token.raise_if_cancelled()
    # Final attempt: its FetchExhausted propagates unchanged.
    return await operation()


__all__ = ["RetryPolicy", "run_with_retry"]
