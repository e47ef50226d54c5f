"""Tests for async retry with backoff."""

import pytest

from ctoken_reconciler.rates.retry import RetryConfig, with_retry


def test_delay_grows_and_is_capped():
    """Test exponential backoff delays."""
    config = RetryConfig(base_delay=1.0, max_delay=5.0, exponential_base=2.0)

    assert [config.get_delay(i) for i in range(4)] == [1.0, 2.0, 4.0, 5.0]


@pytest.mark.asyncio
async def test_retries_until_success():
    """Test that a failing call is retried."""
    attempts = 0

    @with_retry(RetryConfig(max_retries=3, base_delay=0.0), retry_on=(ConnectionError,))
    async def flaky():
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise ConnectionError("down")
        return "ok"

    assert await flaky() == "ok"
    assert attempts == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    """Test that the last error is raised once retries are exhausted."""
    attempts = 0

    @with_retry(RetryConfig(max_retries=1, base_delay=0.0))
    async def broken():
        nonlocal attempts
        attempts += 1
        raise ConnectionError(f"attempt {attempts}")

    with pytest.raises(ConnectionError, match="attempt 2"):
        await broken()


@pytest.mark.asyncio
async def test_other_errors_are_not_retried():
    """Test that exceptions outside retry_on propagate immediately."""
    attempts = 0

    @with_retry(RetryConfig(max_retries=3, base_delay=0.0), retry_on=(ConnectionError,))
    async def wrong():
        nonlocal attempts
        attempts += 1
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        await wrong()
    assert attempts == 1
