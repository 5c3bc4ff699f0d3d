"""
Generation error taxonomy.

Every failure the server can report belongs to one ErrorKind. Request errors
are raised before a stream starts and become JSON bodies; upstream errors
raised while streaming become exactly one error delivery event.
"""

from __future__ import annotations

import logging
from enum import Enum

import anthropic
import openai

from backend.models.generation import ErrorEvent

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    INVALID_REQUEST = "InvalidRequest"
    AUTHORIZATION_DENIED = "AuthorizationDenied"
    UPSTREAM_QUOTA_EXHAUSTED = "UpstreamQuotaExhausted"
    UPSTREAM_AUTH_INVALID = "UpstreamAuthInvalid"
    UPSTREAM_RATE_LIMITED = "UpstreamRateLimited"
    UPSTREAM_TRANSPORT_FAILURE = "UpstreamTransportFailure"
    EXTRACTION_FALLBACK = "ExtractionFallback"
    NORMALIZATION_AMBIGUOUS = "NormalizationAmbiguous"


class GenerationError(Exception):
    """Base class for errors reported to the client."""

    kind: ErrorKind = ErrorKind.UPSTREAM_TRANSPORT_FAILURE
    status_code: int = 500
    title: str = "Failed to generate code"
    default_details: str = ""

    def __init__(self, details: str | None = None, *, title: str | None = None, status_code: int | None = None):
        self.details = details if details is not None else self.default_details
        if title is not None:
            self.title = title
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.details or self.title)

    def to_event(self) -> ErrorEvent:
        return ErrorEvent(error=self.title, details=self.details, status_code=self.status_code, kind=self.kind.value)

    def to_body(self) -> dict[str, dict[str, str]]:
        """JSON body for errors returned before a stream starts."""
        return {"error": {"kind": self.kind.value, "message": self.details or self.title}}


class InvalidRequestError(GenerationError):
    kind = ErrorKind.INVALID_REQUEST
    status_code = 400
    title = "Invalid request"


class AuthorizationDeniedError(GenerationError):
    kind = ErrorKind.AUTHORIZATION_DENIED
    status_code = 403
    title = "Access denied"


class UpstreamQuotaExhaustedError(GenerationError):
    kind = ErrorKind.UPSTREAM_QUOTA_EXHAUSTED
    status_code = 402
    title = "Insufficient API Balance"
    default_details = (
        "Your API account has insufficient balance. Please top up your account to continue using the service."
    )


class UpstreamAuthInvalidError(GenerationError):
    kind = ErrorKind.UPSTREAM_AUTH_INVALID
    status_code = 401
    title = "Invalid API Key"
    default_details = "The API key is invalid or expired. Please check your API configuration."


class ProviderNotConfiguredError(UpstreamAuthInvalidError):
    """No API key is configured for the model's provider."""

    def __init__(self, provider: str):
        super().__init__(f"{provider} API key is not configured")
        self.provider = provider


class UpstreamRateLimitedError(GenerationError):
    kind = ErrorKind.UPSTREAM_RATE_LIMITED
    status_code = 429
    title = "Rate Limit Exceeded"
    default_details = "Too many requests. Please wait a moment and try again."


class UpstreamTransportError(GenerationError):
    kind = ErrorKind.UPSTREAM_TRANSPORT_FAILURE


_BY_STATUS: dict[int, type[GenerationError]] = {
    401: UpstreamAuthInvalidError,
    402: UpstreamQuotaExhaustedError,
    429: UpstreamRateLimitedError,
}


def upstream_status(exc: BaseException) -> int | None:
    """Read an HTTP status off a provider SDK exception."""
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def classify_upstream_error(exc: BaseException) -> GenerationError:
    """Map anything raised by an upstream provider onto the taxonomy."""
    if isinstance(exc, GenerationError):
        return exc

    status = upstream_status(exc)
    if status is None and isinstance(exc, (anthropic.RateLimitError, openai.RateLimitError)):
        status = 429
    if status is None and isinstance(exc, (anthropic.AuthenticationError, openai.AuthenticationError)):
        status = 401

    error_cls = _BY_STATUS.get(status) if status is not None else None
    if error_cls is not None:
        return error_cls(status_code=status)

    message = str(exc) or "Failed to generate code"
    if isinstance(exc, (anthropic.APIConnectionError, openai.APIConnectionError)):
        logger.warning("errors: upstream connection failed error=%s", message)
    return UpstreamTransportError(message, title=message, status_code=status or 500)
