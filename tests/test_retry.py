"""Tests for the reconnection backoff policy."""

import pytest

from src.live_session.config import LiveSessionConfig
from src.live_session.retry import RetryPolicy


class TestRetryPolicy:
    def test_exponential_backoff_with_cap(self):
        policy = RetryPolicy(base_s=1, cap_s=10, max_attempts=5)
        assert [policy.delay(n) for n in range(6)] == [1, 2, 4, 8, 10, 10]

    def test_should_retry_is_bounded(self):
        policy = RetryPolicy(max_attempts=2)
        assert policy.should_retry(0)
        assert policy.should_retry(1)
        assert not policy.should_retry(2)

    def test_zero_attempts_never_retries(self):
        assert not RetryPolicy(max_attempts=0).should_retry(0)

    def test_negative_attempt_rejected(self):
        with pytest.raises(ValueError):
            RetryPolicy().delay(-1)

    def test_from_config(self):
        config = LiveSessionConfig(api_key="k", retry_base_s=0.5, retry_cap_s=4, max_reconnect_attempts=3)
        policy = RetryPolicy.from_config(config)
        assert policy == RetryPolicy(base_s=0.5, cap_s=4, max_attempts=3)
        assert policy.delay(5) == 4
