"""Tests for store retry handling."""

import pytest

from accessmatrix.core.config import Settings
from accessmatrix.core.errors import ServiceUnavailable, StaleVersion, StoreUnavailable
from accessmatrix.store import RetryStrategy, call_with_retry


def flaky(failures, result="ok", error=None):
    """Operation that raises ``failures`` times before returning ``result``."""
    calls = {"count": 0}

    def operation():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise error or StoreUnavailable("timeout")
        return result

    return operation, calls


class TestRetryStrategy:
    """Test retry behaviour."""

    def setup_method(self):
        self.delays = []
        self.strategy = RetryStrategy(
            max_attempts=3, base_delay=0.1, max_delay=1.0, jitter=False, sleep=self.delays.append
        )

    def test_success_without_retry(self):
        operation, calls = flaky(0)
        assert self.strategy.call(operation) == "ok"
        assert calls["count"] == 1
        assert self.delays == []

    def test_recovers_from_transient_failure(self):
        operation, calls = flaky(2)
        assert self.strategy.call(operation) == "ok"
        assert calls["count"] == 3
        assert self.delays == [0.1, 0.2]

    def test_exhaustion_raises_service_unavailable(self):
        operation, calls = flaky(5)
        with pytest.raises(ServiceUnavailable) as exc_info:
            self.strategy.call(operation, "read matrix")

        assert calls["count"] == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.__cause__, StoreUnavailable)

    def test_stale_version_not_retried(self):
        operation, calls = flaky(1, error=StaleVersion("h", 0, 1))
        with pytest.raises(StaleVersion):
            self.strategy.call(operation)
        assert calls["count"] == 1

    def test_delay_capped(self):
        strategy = RetryStrategy(base_delay=1.0, max_delay=2.0, jitter=False)
        assert strategy.calculate_delay(0) == 1.0
        assert strategy.calculate_delay(5) == 2.0

    def test_jitter_stays_within_range(self):
        strategy = RetryStrategy(base_delay=1.0, max_delay=10.0, jitter=True)
        for _ in range(20):
            assert 0.75 <= strategy.calculate_delay(0) <= 1.25

    def test_from_settings(self):
        strategy = RetryStrategy.from_settings(Settings(store_retry_attempts=5, store_retry_base_delay=0.5))
        assert strategy.max_attempts == 5
        assert strategy.base_delay == 0.5

    def test_call_with_retry(self):
        operation, _ = flaky(1)
        assert call_with_retry(operation, self.strategy) == "ok"
