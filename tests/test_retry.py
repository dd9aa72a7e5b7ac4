"""
Tests for the bounded retry helper.
"""

from unittest.mock import AsyncMock

import pytest

from entitlements.services.retry import linear_backoff, retry_async


class TestLinearBackoff:
    """Tests for the linear delay strategy."""

    def test_delay_grows_with_attempt(self):
        delay = linear_backoff(1.0)
        assert [delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]

    def test_custom_base(self):
        assert linear_backoff(0.5)(2) == 1.0


class TestRetryAsync:
    """Tests for retry_async."""

    async def test_success_first_attempt_no_sleep(self, recording_sleep):
        operation = AsyncMock(return_value="ok")

        result = await retry_async(operation, max_attempts=3, sleep=recording_sleep)

        assert result == "ok"
        assert operation.await_count == 1
        assert recording_sleep.delays == []

    async def test_success_short_circuits(self, recording_sleep):
        """Stops at the first success and only waits between failures."""
        operation = AsyncMock(side_effect=[RuntimeError("1"), "ok"])

        result = await retry_async(
            operation, max_attempts=3, delay=linear_backoff(1.0), sleep=recording_sleep
        )

        assert result == "ok"
        assert operation.await_count == 2
        assert recording_sleep.delays == [1.0]

    async def test_exhausted_raises_last_error(self, recording_sleep):
        """Only the final attempt's error surfaces; no sleep after it."""
        errors = [RuntimeError("first"), RuntimeError("second"), RuntimeError("third")]
        operation = AsyncMock(side_effect=errors)

        with pytest.raises(RuntimeError) as exc_info:
            await retry_async(
                operation, max_attempts=3, delay=linear_backoff(1.0), sleep=recording_sleep
            )

        assert exc_info.value is errors[2]
        assert operation.await_count == 3
        assert recording_sleep.delays == [1.0, 2.0]

    async def test_single_attempt(self, recording_sleep):
        operation = AsyncMock(side_effect=ValueError("nope"))

        with pytest.raises(ValueError):
            await retry_async(operation, max_attempts=1, sleep=recording_sleep)

        assert recording_sleep.delays == []

    async def test_non_retryable_error_propagates_immediately(self, recording_sleep):
        operation = AsyncMock(side_effect=KeyError("fatal"))

        with pytest.raises(KeyError):
            await retry_async(
                operation, max_attempts=3, sleep=recording_sleep, retry_on=(RuntimeError,)
            )

        assert operation.await_count == 1

    async def test_invalid_max_attempts(self):
        with pytest.raises(ValueError, match="max_attempts"):
            await retry_async(AsyncMock(), max_attempts=0)
