"""Unit tests for logging service."""

import json

import structlog

from inkwell.services.logging_service import configure_logging, get_logger, redact_sensitive


class TestRedactSensitive:
    """Tests for redact_sensitive processor."""

    def test_redacts_token_values(self):
        event_dict = {"refresh_token": "eyJhbGciOi...", "event": "test"}
        result = redact_sensitive(None, None, event_dict)
        assert result["refresh_token"] == "REDACTED"

    def test_redacts_credential(self):
        event_dict = {"credential": "google-id-token", "event": "test"}
        result = redact_sensitive(None, None, event_dict)
        assert result["credential"] == "REDACTED"

    def test_redacts_fingerprint(self):
        event_dict = {"stored_fingerprint": "ab" * 32, "event": "test"}
        result = redact_sensitive(None, None, event_dict)
        assert result["stored_fingerprint"] == "REDACTED"

    def test_redacts_authorization_and_cookie(self):
        event_dict = {"authorization": "Bearer abc", "Cookie": "accessToken=abc"}
        result = redact_sensitive(None, None, event_dict)
        assert result["authorization"] == "REDACTED"
        assert result["Cookie"] == "REDACTED"

    def test_redacts_secret_case_insensitive(self):
        event_dict = {"JWT_ACCESS_SECRET": "s3cret", "Password": "hunter2"}
        result = redact_sensitive(None, None, event_dict)
        assert result["JWT_ACCESS_SECRET"] == "REDACTED"
        assert result["Password"] == "REDACTED"

    def test_keeps_flags_and_counts(self):
        event_dict = {"token_expired": True, "token_count": 2, "refresh_token": None}
        result = redact_sensitive(None, None, event_dict)
        assert result["token_expired"] is True
        assert result["token_count"] == 2
        assert result["refresh_token"] is None

    def test_redacts_nested_headers(self):
        event_dict = {"headers": {"Cookie": "refreshToken=abc", "accept": "application/json"}}
        result = redact_sensitive(None, None, event_dict)
        assert result["headers"] == {"Cookie": "REDACTED", "accept": "application/json"}

    def test_preserves_non_sensitive_fields(self):
        event_dict = {
            "correlation_id": "abc-123",
            "user_id": "42",
            "duration_ms": 100,
        }
        result = redact_sensitive(None, None, event_dict)
        assert result == {
            "correlation_id": "abc-123",
            "user_id": "42",
            "duration_ms": 100,
        }


class TestLoggingOutput:
    """Tests for rendered log lines."""

    def test_log_line_is_json_with_correlation_id(self, capsys):
        configure_logging("INFO")
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id="corr-123")

        get_logger("test").info("user_logged_in", user_id="u-1", access_token="raw.jwt.value")
        structlog.contextvars.clear_contextvars()

        line = capsys.readouterr().out.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "user_logged_in"
        assert entry["correlation_id"] == "corr-123"
        assert entry["access_token"] == "REDACTED"
        assert entry["level"] == "info"
        assert entry["service"] == "inkwell-api"
        assert "timestamp" in entry
        assert "raw.jwt.value" not in line

    def test_get_logger_without_name(self):
        configure_logging("INFO")
        assert get_logger() is not None
