"""
Tests for backend/services/errors.py
"""

from __future__ import annotations

from types import SimpleNamespace

import anthropic
import httpx
import openai

from backend.services.errors import (
    ErrorKind,
    InvalidRequestError,
    ProviderNotConfiguredError,
    UpstreamAuthInvalidError,
    UpstreamQuotaExhaustedError,
    UpstreamRateLimitedError,
    UpstreamTransportError,
    classify_upstream_error,
    upstream_status,
)


class _StatusError(Exception):
    def __init__(self, message: str, **attrs):
        super().__init__(message)
        for name, value in attrs.items():
            setattr(self, name, value)


def _response(status: int) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", "https://api.example.com/v1/chat"))


# ============================================================================
# Status extraction
# ============================================================================


class TestUpstreamStatus:
    def test_status_code_attribute(self):
        assert upstream_status(_StatusError("x", status_code=402)) == 402

    def test_status_attribute(self):
        assert upstream_status(_StatusError("x", status=429)) == 429

    def test_response_status_code(self):
        exc = _StatusError("x", response=SimpleNamespace(status_code=503))
        assert upstream_status(exc) == 503

    def test_no_status(self):
        assert upstream_status(RuntimeError("x")) is None


# ============================================================================
# Classification
# ============================================================================


class TestClassify:
    def test_quota_exhausted(self):
        error = classify_upstream_error(_StatusError("payment required", status_code=402))

        assert isinstance(error, UpstreamQuotaExhaustedError)
        assert error.status_code == 402
        assert error.title == "Insufficient API Balance"

    def test_auth_invalid(self):
        error = classify_upstream_error(_StatusError("bad key", status_code=401))

        assert isinstance(error, UpstreamAuthInvalidError)
        assert error.kind is ErrorKind.UPSTREAM_AUTH_INVALID

    def test_rate_limited(self):
        error = classify_upstream_error(_StatusError("slow down", status=429))

        assert isinstance(error, UpstreamRateLimitedError)
        assert "wait a moment" in error.details

    def test_other_status_keeps_provider_status(self):
        error = classify_upstream_error(_StatusError("overloaded", status_code=529))

        assert isinstance(error, UpstreamTransportError)
        assert error.status_code == 529
        assert error.title == "overloaded"

    def test_unknown_exception_is_500(self):
        error = classify_upstream_error(RuntimeError())

        assert isinstance(error, UpstreamTransportError)
        assert error.status_code == 500
        assert error.details == "Failed to generate code"

    def test_generation_error_passes_through(self):
        original = InvalidRequestError("Invalid model: nope")
        assert classify_upstream_error(original) is original

    def test_openai_rate_limit_error(self):
        exc = openai.RateLimitError("Rate limit reached", response=_response(429), body=None)

        assert isinstance(classify_upstream_error(exc), UpstreamRateLimitedError)

    def test_anthropic_authentication_error(self):
        exc = anthropic.AuthenticationError("invalid x-api-key", response=_response(401), body=None)

        assert isinstance(classify_upstream_error(exc), UpstreamAuthInvalidError)

    def test_openai_connection_error_logged(self, caplog):
        exc = openai.APIConnectionError(request=httpx.Request("POST", "https://api.example.com"))

        with caplog.at_level("WARNING"):
            error = classify_upstream_error(exc)

        assert isinstance(error, UpstreamTransportError)
        assert error.status_code == 500
        assert "upstream connection failed" in caplog.text


# ============================================================================
# Serialization
# ============================================================================


class TestSerialization:
    def test_to_event(self):
        event = UpstreamRateLimitedError().to_event()

        assert event.type == "error"
        assert event.error == "Rate Limit Exceeded"
        assert event.status_code == 429
        assert event.kind == "UpstreamRateLimited"

    def test_provider_not_configured(self):
        error = ProviderNotConfiguredError("Anthropic")
        event = error.to_event()

        assert event.kind == "UpstreamAuthInvalid"
        assert event.status_code == 401
        assert event.details == "Anthropic API key is not configured"
        assert error.provider == "Anthropic"

    def test_to_body(self):
        body = InvalidRequestError("Prompt is required").to_body()

        assert body == {"error": {"kind": "InvalidRequest", "message": "Prompt is required"}}

    def test_to_body_falls_back_to_title(self):
        body = UpstreamTransportError().to_body()

        assert body["error"]["message"] == "Failed to generate code"
