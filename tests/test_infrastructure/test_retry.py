"""Tests for RetryPolicy: which failures are retried, backoff shape, timeouts."""

from __future__ import annotations

import asyncio
import warnings

import httpx
import pytest
from conftest import ADMIN

from engagement_engine.bootstrap import build_engine
from engagement_engine.domain.exceptions import ExternalServiceError, TransientError
from engagement_engine.infrastructure.memory import InMemoryEscrowStore
from engagement_engine.infrastructure.retry import RetryPolicy, is_transient_failure


class FlakyOperation:
    """Fails with ``error`` for the first ``failures`` calls, then returns "ok"."""

    def __init__(self, error: Exception, failures: int = 1_000) -> None:
        self.error = error
        self.failures = failures
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class TestPredicate:
    def test_transient_failures(self) -> None:
        assert is_transient_failure(ExternalServiceError("ledger", "down", status_code=503))
        assert is_transient_failure(ExternalServiceError("ledger", "reset"))
        assert is_transient_failure(TimeoutError())
        assert is_transient_failure(httpx.ConnectError("refused"))

    def test_caller_errors_are_not_transient(self) -> None:
        assert not is_transient_failure(ExternalServiceError("ledger", "bad", status_code=400))
        assert not is_transient_failure(ExternalServiceError("ledger", "gone", status_code=404))
        assert not is_transient_failure(ValueError("nope"))


class TestRetryPolicy:
    async def test_recovers_after_transient_failures(self, sleeps) -> None:
        operation = FlakyOperation(ExternalServiceError("escrow", "busy", 503), failures=2)
        policy = RetryPolicy("escrow", max_retries=3, sleep=sleeps)

        assert await policy.run(operation) == "ok"
        assert operation.calls == 3
        assert len(sleeps.delays) == 2

    async def test_exhaustion_raises_transient_with_non_decreasing_delays(self, sleeps) -> None:
        operation = FlakyOperation(ExternalServiceError("escrow", "busy", 503))
        policy = RetryPolicy("escrow", max_retries=3, base_delay=0.5, max_delay=8.0, sleep=sleeps)

        with pytest.raises(TransientError) as exc_info:
            await policy.run(operation)

        assert exc_info.value.service == "escrow"
        assert exc_info.value.attempts == 4
        assert operation.calls == 4
        assert len(sleeps.delays) == 3
        assert sleeps.delays == sorted(sleeps.delays)
        assert all(0.5 <= d <= 8.0 for d in sleeps.delays)

    async def test_backoff_configuration_is_warning_free(self, sleeps) -> None:
        operation = FlakyOperation(ExternalServiceError("escrow", "busy", 503), failures=1)
        policy = RetryPolicy("escrow", max_retries=1, base_delay=0.25, sleep=sleeps)

        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            assert await policy.run(operation) == "ok"
        assert 0.25 <= sleeps.delays[0] <= 0.375

    async def test_delay_capped(self, sleeps) -> None:
        operation = FlakyOperation(ExternalServiceError("escrow", "busy", 502))
        policy = RetryPolicy("escrow", max_retries=6, base_delay=1.0, max_delay=3.0, sleep=sleeps)

        with pytest.raises(TransientError):
            await policy.run(operation)
        assert max(sleeps.delays) <= 3.0

    async def test_client_error_not_retried(self, sleeps) -> None:
        operation = FlakyOperation(ExternalServiceError("escrow", "bad request", 400))
        policy = RetryPolicy("escrow", max_retries=3, sleep=sleeps)

        with pytest.raises(ExternalServiceError) as exc_info:
            await policy.run(operation)

        assert exc_info.value.status_code == 400
        assert operation.calls == 1
        assert sleeps.delays == []

    async def test_timeout_is_transient(self, sleeps) -> None:
        calls = 0

        async def hang() -> None:
            nonlocal calls
            calls += 1
            await asyncio.Event().wait()

        policy = RetryPolicy("ledger", max_retries=1, timeout=0.01, sleep=sleeps)
        with pytest.raises(TransientError):
            await policy.run(hang)
        assert calls == 2

    async def test_zero_retries_is_a_single_attempt(self, sleeps) -> None:
        operation = FlakyOperation(ExternalServiceError("nda", "busy", 503))
        policy = RetryPolicy("nda", max_retries=0, sleep=sleeps)

        with pytest.raises(TransientError):
            await policy.run(operation)
        assert operation.calls == 1


class UnavailableEscrowStore(InMemoryEscrowStore):
    def __init__(self, status_code: int) -> None:
        super().__init__()
        self.status_code = status_code
        self.saves = 0

    async def save_hold(self, hold):
        self.saves += 1
        raise ExternalServiceError("escrow", "unavailable", status_code=self.status_code)


class TestConfirmDepositRetries:
    async def test_503_surfaces_transient_after_retries(self, settings, ledger, sleeps) -> None:
        store = UnavailableEscrowStore(503)
        engine = build_engine(settings, ledger=ledger, escrow_store=store, retry_sleep=sleeps)
        ledger.create_engagement("E1", "student-1", "partner-1", requires_deposit=True)

        with pytest.raises(TransientError):
            await engine.escrow.confirm_deposit("E1", 50000, "wire", None, "admin", ADMIN)

        assert store.saves == settings.retry_max_retries + 1
        assert sleeps.delays == sorted(sleeps.delays)

    async def test_400_is_not_retried(self, settings, ledger, sleeps) -> None:
        store = UnavailableEscrowStore(400)
        engine = build_engine(settings, ledger=ledger, escrow_store=store, retry_sleep=sleeps)
        ledger.create_engagement("E1", "student-1", "partner-1", requires_deposit=True)

        with pytest.raises(ExternalServiceError):
            await engine.escrow.confirm_deposit("E1", 50000, "wire", None, "admin", ADMIN)

        assert store.saves == 1
        assert sleeps.delays == []
