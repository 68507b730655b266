"""Tests for quota-aware retry and error capture."""

from unittest.mock import MagicMock

import pytest


class TestIsQuotaError:
    """Tests for is_quota_error()."""

    def test_remote_quota_error(self):
        from supply_monitor.errors import RemoteQuotaError
        from supply_monitor.monitoring import is_quota_error

        assert is_quota_error(RemoteQuotaError("limit"))

    def test_http_429(self, make_http_error):
        from supply_monitor.monitoring import is_quota_error

        assert is_quota_error(make_http_error(429, "Too many requests"))

    def test_quota_message(self, make_http_error):
        from supply_monitor.monitoring import is_quota_error

        error = make_http_error(
            403,
            "Quota exceeded for quota metric 'Read requests' and limit 'Read requests per minute'",
        )
        assert is_quota_error(error)
        assert is_quota_error(Exception("Quota exceeded for quota group"))
        assert is_quota_error(Exception("Insufficient tokens for quota metric"))

    def test_other_errors(self, make_http_error):
        from supply_monitor.errors import RemoteApiError
        from supply_monitor.monitoring import is_quota_error

        assert not is_quota_error(make_http_error(404, "Requested entity was not found."))
        assert not is_quota_error(make_http_error(500, "Internal error"))
        assert not is_quota_error(RemoteApiError("boom"))
        assert not is_quota_error(ValueError("bad"))


class TestRetryWithBackoff:
    """Tests for retry_with_backoff()."""

    @pytest.mark.asyncio
    async def test_success_on_first_try(self, sleeps):
        from supply_monitor.monitoring import retry_with_backoff

        async def success_fn():
            return "result"

        result = await retry_with_backoff(success_fn, sleep=sleeps)

        assert result == "result"
        assert sleeps.calls == []

    @pytest.mark.asyncio
    async def test_quota_twice_then_success(self, sleeps):
        from supply_monitor.errors import RemoteQuotaError
        from supply_monitor.monitoring import retry_with_backoff

        call_count = 0

        async def rate_limited():
            nonlocal call_count
            call_count += 1
            if call_count <= 2:
                raise RemoteQuotaError("Quota exceeded for quota metric 'Read requests'")
            return "success"

        result = await retry_with_backoff(rate_limited, max_retries=4, base_delay=1.0, sleep=sleeps)

        assert result == "success"
        assert call_count == 3
        assert sleeps.calls == [1.0, 2.0]
        assert sum(sleeps.calls) >= 3.0

    @pytest.mark.asyncio
    async def test_backoff_increases_monotonically(self, sleeps, make_http_error):
        from supply_monitor.monitoring import retry_with_backoff

        async def always_quota():
            raise make_http_error(429, "Quota exceeded")

        with pytest.raises(Exception, match="Quota exceeded"):
            await retry_with_backoff(always_quota, max_retries=4, base_delay=0.5, sleep=sleeps)

        assert sleeps.calls == [0.5, 1.0, 2.0, 4.0]
        assert all(a < b for a, b in zip(sleeps.calls, sleeps.calls[1:]))

    @pytest.mark.asyncio
    async def test_hard_retry_ceiling(self, sleeps):
        from supply_monitor.errors import RemoteQuotaError
        from supply_monitor.monitoring import retry_with_backoff

        call_count = 0
        last_error = None

        async def always_quota():
            nonlocal call_count, last_error
            call_count += 1
            last_error = RemoteQuotaError(f"Quota exceeded #{call_count}")
            raise last_error

        with pytest.raises(RemoteQuotaError) as exc_info:
            await retry_with_backoff(always_quota, max_retries=3, base_delay=1.0, sleep=sleeps)

        assert call_count == 4
        assert exc_info.value is last_error
        assert len(sleeps.calls) == 3

    @pytest.mark.asyncio
    async def test_non_quota_error_propagates_immediately(self, sleeps):
        from supply_monitor.monitoring import retry_with_backoff

        call_count = 0
        error = ValueError("Invalid range")

        async def broken():
            nonlocal call_count
            call_count += 1
            raise error

        with pytest.raises(ValueError) as exc_info:
            await retry_with_backoff(broken, max_retries=4, base_delay=1.0, sleep=sleeps)

        assert exc_info.value is error
        assert call_count == 1
        assert sleeps.calls == []

    @pytest.mark.asyncio
    async def test_http_404_no_retry(self, sleeps, make_http_error):
        from googleapiclient.errors import HttpError
        from supply_monitor.monitoring import retry_with_backoff

        async def not_found():
            raise make_http_error(404, "Requested entity was not found.")

        with pytest.raises(HttpError):
            await retry_with_backoff(not_found, sleep=sleeps)
        assert sleeps.calls == []

    @pytest.mark.asyncio
    async def test_zero_retries(self, sleeps):
        from supply_monitor.errors import RemoteQuotaError
        from supply_monitor.monitoring import retry_with_backoff

        async def always_quota():
            raise RemoteQuotaError("Quota exceeded")

        with pytest.raises(RemoteQuotaError):
            await retry_with_backoff(always_quota, max_retries=0, sleep=sleeps)
        assert sleeps.calls == []

    @pytest.mark.asyncio
    async def test_with_arguments(self, sleeps):
        from supply_monitor.monitoring import retry_with_backoff

        async def add(a, b, scale=1):
            return (a + b) * scale

        result = await retry_with_backoff(add, 2, 3, scale=2, sleep=sleeps)
        assert result == 10


class TestCaptureException:
    """Tests for capture_exception()."""

    def test_logs_without_sentry(self, monkeypatch):
        from supply_monitor import monitoring

        capture = MagicMock()
        monkeypatch.setattr(monitoring.sentry_sdk, "is_initialized", lambda: False)
        monkeypatch.setattr(monitoring.sentry_sdk, "capture_exception", capture)
        mock_logger = MagicMock()
        monkeypatch.setattr(monitoring, "logger", mock_logger)

        monitoring.capture_exception(ValueError("bad"), {"sheet": "A"})

        capture.assert_not_called()
        mock_logger.error.assert_called_once()
        extra = mock_logger.error.call_args.kwargs["extra"]
        assert extra["error_type"] == "ValueError"
        assert extra["sheet"] == "A"

    def test_sends_to_sentry_when_initialized(self, monkeypatch):
        from supply_monitor import monitoring

        capture = MagicMock()
        monkeypatch.setattr(monitoring.sentry_sdk, "is_initialized", lambda: True)
        monkeypatch.setattr(monitoring.sentry_sdk, "capture_exception", capture)

        error = RuntimeError("boom")
        monitoring.capture_exception(error, {"sheet": "A"})

        capture.assert_called_once_with(error)

    def test_setup_sentry_skipped_without_dsn(self, monkeypatch):
        from supply_monitor import monitoring
        from supply_monitor.config import Settings

        init = MagicMock()
        monkeypatch.setattr(monitoring.sentry_sdk, "init", init)

        monitoring.setup_sentry(Settings())
        init.assert_not_called()

        monitoring.setup_sentry(Settings(sentry_dsn="https://key@o0.ingest.sentry.io/0"))
        init.assert_called_once()
        assert init.call_args.kwargs["environment"] == "production"
