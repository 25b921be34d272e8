"""Retry classification and backoff shared by every provider client."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from streamfall.config import RetryConfig
from streamfall.exceptions import (
    AuthError,
    NetworkError,
    RateLimitedError,
    StreamfallError,
    UpstreamError,
)
from streamfall.models.enums import Priority, RetryDecision

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Decides how a failed provider call is retried.

    - Auth failures rotate the credential and retry immediately.
    - Rate limits back off exponentially from a priority-dependent base.
    - Server errors and network failures back off linearly.
    - Everything else fails fast.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._config = config or RetryConfig()
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._config.max_attempts

    def classify(self, error: StreamfallError) -> RetryDecision:
        """Map an error to a retry decision."""
        if isinstance(error, AuthError):
            return RetryDecision.ROTATE
        if isinstance(error, RateLimitedError | NetworkError):
            return RetryDecision.BACKOFF
        if isinstance(error, UpstreamError) and error.is_server_error:
            return RetryDecision.BACKOFF
        return RetryDecision.FAIL_FAST

    def delay_for(
        self,
        error: StreamfallError,
        attempt: int,
        priority: Priority = Priority.LOW,
    ) -> float:
        """Backoff delay after the given (1-based) failed attempt."""
        config = self._config
        if isinstance(error, RateLimitedError):
            if error.retry_after is not None:
                delay = error.retry_after
            else:
                base = (
                    config.rate_limit_base_high
                    if priority == Priority.HIGH
                    else config.rate_limit_base_low
                )
                delay = base * 2 ** (attempt - 1)
        elif isinstance(error, NetworkError):
            delay = config.network_error_step * attempt
        else:
            delay = config.server_error_step * attempt
        return min(delay, config.max_delay)

    async def execute(
        self,
        attempt_fn: Callable[[], Awaitable[T]],
        *,
        priority: Priority = Priority.LOW,
        provider: str | None = None,
        rotate: Callable[[], object] | None = None,
        refresh: Callable[[], Awaitable[bool]] | None = None,
    ) -> T:
        """Run a call, retrying according to the classification.

        Args:
            attempt_fn: Performs one attempt; raises StreamfallError on failure.
            priority: Call priority, selects the rate-limit base delay.
            provider: Provider name, used in logs.
            rotate: Switches to the next credential after an auth failure.
            refresh: Obtains a fresh credential once attempts are exhausted
                by auth failures. Returns True when a new credential was
                installed, which earns one extra attempt.

        Returns:
            The first successful attempt's result.

        Raises:
            StreamfallError: The last failure, once retries are exhausted or
                the error is not retryable.
        """
        attempt = 0
        refreshed = False
        while True:
            attempt += 1
            try:
                return await attempt_fn()
            except StreamfallError as e:
                decision = self.classify(e)
                if decision == RetryDecision.FAIL_FAST:
                    raise

                if attempt >= self._config.max_attempts:
                    if (
                        decision == RetryDecision.ROTATE
                        and refresh is not None
                        and not refreshed
                    ):
                        refreshed = True
                        if await refresh():
                            logger.warning(
                                "Credentials for %s refreshed, retrying once more",
                                provider,
                            )
                            continue
                    logger.error(
                        "Giving up on %s request after %d attempts: %s",
                        provider,
                        attempt,
                        e,
                    )
                    raise

                if decision == RetryDecision.ROTATE:
                    logger.warning(
                        "Auth failure from %s (attempt %d/%d), rotating credential",
                        provider,
                        attempt,
                        self._config.max_attempts,
                    )
                    if rotate is not None:
                        rotate()
                    continue

                delay = self.delay_for(e, attempt, priority)
                logger.warning(
                    "Request to %s failed: %s (attempt %d/%d), retrying in %.1fs",
                    provider,
                    e.failure_kind.label,
                    attempt,
                    self._config.max_attempts,
                    delay,
                )
                await self._sleep(delay)
