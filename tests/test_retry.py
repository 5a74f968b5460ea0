"""
Tests for the retry combinator.
"""

import pytest

from cryptosage.domain.exceptions import (
    BadServerResponseError,
    RateLimitedError,
    TransientNetworkError,
    is_transient,
)
from cryptosage.infrastructure.retry import retry_with_backoff


class Recorder:
    """Records requested sleep durations without sleeping."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def failing_then(result, failures):
    """Operation that raises each error in turn, then returns result."""
    errors = list(failures)
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if errors:
            raise errors.pop(0)
        return result

    return operation, calls


class TestRetryWithBackoff:
    """Tests for retry_with_backoff."""

    @pytest.mark.asyncio
    async def test_returns_after_transient_failure(self):
        """Test that a transient error is retried once."""
        sleep = Recorder()
        operation, calls = failing_then("ok", [TransientNetworkError("timeout")])

        result = await retry_with_backoff(operation, 2, 0.5, is_transient, sleep=sleep)

        assert result == "ok"
        assert calls["count"] == 2
        assert sleep.delays == [0.5]

    @pytest.mark.asyncio
    async def test_delays_double(self):
        """Test exponential delay growth."""
        sleep = Recorder()
        operation, _ = failing_then("ok", [TransientNetworkError("x")] * 3)

        await retry_with_backoff(operation, 4, 0.5, is_transient, sleep=sleep)

        assert sleep.delays == [0.5, 1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhausted_attempts_reraise_last_error(self):
        """Test that the original error surfaces after the final attempt."""
        last = TransientNetworkError("second")
        operation, calls = failing_then("ok", [TransientNetworkError("first"), last])

        with pytest.raises(TransientNetworkError) as exc_info:
            await retry_with_backoff(operation, 2, 0.5, is_transient, sleep=Recorder())

        assert exc_info.value is last
        assert calls["count"] == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [RateLimitedError("coingecko"), BadServerResponseError(500, "coingecko")],
    )
    async def test_non_transient_errors_are_not_retried(self, error):
        """Test that rate limits and server errors fail immediately."""
        sleep = Recorder()
        operation, calls = failing_then("ok", [error])

        with pytest.raises(type(error)):
            await retry_with_backoff(operation, 5, 0.5, is_transient, sleep=sleep)

        assert calls["count"] == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self):
        """Test attempts=1 disables retrying."""
        sleep = Recorder()
        operation, calls = failing_then("ok", [TransientNetworkError("x")])

        with pytest.raises(TransientNetworkError):
            await retry_with_backoff(operation, 1, 0.5, is_transient, sleep=sleep)

        assert calls["count"] == 1
        assert sleep.delays == []
