"""Bounded retry with backoff for calls into rate-limited services."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)

from photo_curator.domain.errors import (
    PermanentRemoteError,
    RateLimitedError,
    RemoteTimeoutError,
)

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry tuning for one class of remote calls."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    default_rate_limit_delay: float = 60.0
    timeout: float | None = 60.0


class _BackoffWait:
    """Tenacity wait strategy that carries the current delay between attempts."""

    def __init__(self, policy: RetryPolicy) -> None:
        self.policy = policy
        self.delay = policy.initial_delay

    def __call__(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, RateLimitedError):
            if exc.retry_after is not None:
                self.delay = exc.retry_after
            else:
                self.delay = self.policy.default_rate_limit_delay
        else:
            self.delay = min(
                self.delay * self.policy.backoff_factor, self.policy.max_delay
            )
        return self.delay


def is_retryable(exc: BaseException) -> bool:
    """Return False for failures that must propagate immediately."""
    if isinstance(exc, PermanentRemoteError):
        return False
    return isinstance(exc, Exception)


@dataclass
class RetryExecutor:
    """Runs one remote operation under a retry policy."""

    policy: RetryPolicy = field(default_factory=RetryPolicy)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def run(
        self, operation: Callable[[], Awaitable[T]], *, action: str = "remote call"
    ) -> T:
        """Call `operation` until it succeeds, fails permanently, or runs out."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=_BackoffWait(self.policy),
            retry=retry_if_exception(is_retryable),
            before_sleep=_log_before_sleep(action, self.policy.max_attempts),
            sleep=self.sleep,
            reraise=True,
        )
        return await retrying(self._attempt, operation, action)

    async def _attempt(self, operation: Callable[[], Awaitable[T]], action: str) -> T:
        if self.policy.timeout is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), timeout=self.policy.timeout)
        except TimeoutError as exc:
            raise RemoteTimeoutError(
                f"{action} timed out after {self.policy.timeout}s"
            ) from exc


def _log_before_sleep(
    action: str, max_attempts: int
) -> Callable[[RetryCallState], None]:
    def _log(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        _logger.warning(
            "%s failed (attempt %s/%s), retrying in %.1fs: %r",
            action,
            retry_state.attempt_number,
            max_attempts,
            delay,
            exc,
        )

    return _log
