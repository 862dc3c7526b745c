"""Retry policy for calls to external services.

One ``RetryPolicy`` per external dependency (ledger, escrow store, NDA
provider, assessment store, notifications). Built on tenacity's
``AsyncRetrying`` so backoff, stop and predicate logic are the library's,
not ours; the policy only adds a per-attempt timeout and the translation of
exhausted retries into ``TransientError``.

Delay before retry n (1-based):
    min(base_delay * 2**(n-1) + uniform(0, base_delay / 2), max_delay)

Only transient failures are retried: network errors (no HTTP status), 5xx
responses and per-attempt timeouts. A 4xx is the caller's fault and is
raised immediately.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from engagement_engine.domain.exceptions import ExternalServiceError, TransientError
from engagement_engine.logging_config import get_logger

if TYPE_CHECKING:
    from engagement_engine.config import Settings

logger = get_logger(__name__)

T = TypeVar("T")


def is_transient_failure(exc: BaseException) -> bool:
    """Default retry predicate: network errors, 5xx and timeouts."""
    if isinstance(exc, ExternalServiceError):
        return exc.is_retryable
    return isinstance(exc, TimeoutError | ConnectionError | httpx.TransportError)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry/timeout settings for one external dependency.

    Attributes:
        service: Name used in logs and in ``TransientError``.
        max_retries: Retries after the first attempt (0 = single attempt).
        base_delay: Seconds before the first retry (before jitter).
        max_delay: Upper bound for any single delay.
        timeout: Per-attempt timeout in seconds (None = unbounded).
        is_retryable: Predicate deciding whether a failure is transient.
        sleep: Async sleep used between attempts (swap out in tests).
    """

    service: str
    max_retries: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    timeout: float | None = 10.0
    is_retryable: Callable[[BaseException], bool] = is_transient_failure
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep

    @classmethod
    def from_settings(
        cls, service: str, settings: Settings, max_retries: int | None = None
    ) -> RetryPolicy:
        return cls(
            service=service,
            max_retries=settings.retry_max_retries if max_retries is None else max_retries,
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
            timeout=settings.external_timeout_seconds,
        )

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "retry.scheduled",
            service=self.service,
            attempt=retry_state.attempt_number,
            delay=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
            error=str(exc) or type(exc).__name__,
        )

    async def run(self, operation: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await ``operation(*args, **kwargs)`` under this policy.

        Raises:
            TransientError: Retries exhausted on a transient failure.
            Exception: Any non-retryable error, unchanged, on first occurrence.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential_jitter(
                multiplier=self.base_delay,
                max=self.max_delay,
                jitter=self.base_delay / 2,
            ),
            retry=retry_if_exception(self.is_retryable),
            sleep=self.sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await asyncio.wait_for(operation(*args, **kwargs), timeout=self.timeout)
        except Exception as exc:
            if not self.is_retryable(exc):
                raise
            attempts = retrying.statistics.get("attempt_number", self.max_retries + 1)
            logger.error(
                "retry.exhausted",
                service=self.service,
                attempts=attempts,
                error=str(exc) or type(exc).__name__,
            )
            raise TransientError(service=self.service, attempts=attempts) from exc
        raise AssertionError("unreachable: AsyncRetrying yielded no attempt")  # pragma: no cover
