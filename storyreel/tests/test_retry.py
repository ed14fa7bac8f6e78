"""
Unit tests for the retry executor and error classification.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from storyreel.errors import (
    FatalProviderError,
    ProviderError,
    TransientProviderError,
)
from storyreel.utils.retry import is_retryable_error, to_provider_error, with_retry


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://example.test/v1/models/x:predict")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class TestIsRetryableError:
    """Test error classification"""

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_rate_limit_and_server_errors_are_retryable(self, status):
        assert is_retryable_error(_status_error(status)) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_client_errors_are_fatal(self, status):
        assert is_retryable_error(_status_error(status)) is False

    def test_network_errors_are_retryable(self):
        """Test that transport failures and timeouts are retried"""
        assert is_retryable_error(httpx.ConnectError("connection refused")) is True
        assert is_retryable_error(httpx.ReadTimeout("read timed out")) is True
        assert is_retryable_error(asyncio.TimeoutError()) is True
        assert is_retryable_error(Exception("getaddrinfo ENOTFOUND api.example")) is True

    def test_taxonomy_is_respected(self):
        assert is_retryable_error(TransientProviderError("busy")) is True
        assert is_retryable_error(FatalProviderError("bad schema")) is False

    def test_wrapped_error_uses_original(self):
        wrapped = ProviderError("failed", original_error=_status_error(503))
        assert is_retryable_error(wrapped) is True

    def test_validation_errors_are_fatal(self):
        assert is_retryable_error(ValueError("Expecting value: line 1 column 1")) is False


class TestToProviderError:
    """Test wrapping of arbitrary errors"""

    def test_transient_wrap(self):
        error = to_provider_error(_status_error(503), "Image generation API error")
        assert isinstance(error, TransientProviderError)
        assert error.message.startswith("Image generation API error")
        assert error.original_error is not None

    def test_fatal_wrap(self):
        error = to_provider_error(_status_error(400), "Image generation API error")
        assert isinstance(error, FatalProviderError)

    def test_provider_errors_pass_through(self):
        original = FatalProviderError("already classified")
        assert to_provider_error(original, "ignored") is original


class TestWithRetry:
    """Test the bounded exponential-backoff executor"""

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self):
        operation = AsyncMock(
            side_effect=[TransientProviderError("busy"), TransientProviderError("busy"), "ok"]
        )

        result = await with_retry(operation, max_attempts=3, base_delay=0)

        assert result == "ok"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        """Test that the last error propagates once attempts are exhausted"""
        operation = AsyncMock(side_effect=TransientProviderError("still busy"))

        with pytest.raises(TransientProviderError, match="still busy"):
            await with_retry(operation, max_attempts=3, base_delay=0)

        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_fatal_error_is_not_retried(self):
        operation = AsyncMock(side_effect=FatalProviderError("invalid schema"))

        with pytest.raises(FatalProviderError):
            await with_retry(operation, max_attempts=3, base_delay=0)

        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_backoff_doubles(self):
        """Test delays of base, 2*base between attempts"""
        operation = AsyncMock(side_effect=TransientProviderError("busy"))

        with patch("storyreel.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(TransientProviderError):
                await with_retry(operation, max_attempts=3, base_delay=1.0)

        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_single_attempt(self):
        operation = AsyncMock(side_effect=TransientProviderError("busy"))

        with pytest.raises(TransientProviderError):
            await with_retry(operation, max_attempts=1, base_delay=0)

        assert operation.await_count == 1
