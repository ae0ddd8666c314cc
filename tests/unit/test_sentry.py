"""
Tests for Sentry error monitoring integration.
"""

from unittest.mock import patch

from fastapi import HTTPException

from vaaniai.config import settings
from vaaniai.exceptions import SessionNotFoundError, UpstreamUnavailableError
from vaaniai.sentry import _before_send, init_sentry


class TestSentryInitialization:
    def test_init_sentry_without_dsn_returns_false(self):
        with patch.object(settings, "sentry_dsn", None):
            assert init_sentry("1.0.0") is False

    def test_init_sentry_with_dsn(self):
        with patch.object(settings, "sentry_dsn", "https://public@sentry.example.com/1"):
            with patch("vaaniai.sentry.sentry_sdk.init") as mock_init:
                assert init_sentry("1.0.0") is True

        kwargs = mock_init.call_args.kwargs
        assert kwargs["dsn"] == "https://public@sentry.example.com/1"
        assert kwargs["release"] == "1.0.0"
        assert kwargs["send_default_pii"] is False
        assert kwargs["before_send"] is _before_send


class TestBeforeSend:
    def _hint(self, exc):
        return {"exc_info": (type(exc), exc, None)}

    def test_client_errors_dropped(self):
        event = {"message": "x"}
        assert _before_send(event, self._hint(HTTPException(status_code=404))) is None
        assert _before_send(event, self._hint(SessionNotFoundError())) is None

    def test_server_errors_kept(self):
        event = {"message": "x"}
        assert _before_send(event, self._hint(UpstreamUnavailableError())) is event
        assert _before_send(event, self._hint(RuntimeError("boom"))) is event

    def test_events_without_exception_kept(self):
        event = {"message": "log line"}
        assert _before_send(event, {}) is event
