"""
Shared error handling for the TopTex proxy.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Error body returned to callers."""

    error: str


class ProxyException(Exception):
    """Base exception for proxy services."""

    status_code: int = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def trace_id(self) -> Optional[str]:
        """Trace ID of the active span, if any."""
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                return f"{span_context.trace_id:032x}"
        return None

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.message)


class ConfigurationError(ProxyException):
    """Required settings are missing or malformed."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class UpstreamAuthError(ProxyException):
    """The upstream authentication exchange was rejected."""

    def __init__(self, message: str = "Upstream authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_AUTH_ERROR", message, details)


class TokenMissingError(ProxyException):
    """Authentication succeeded but no usable token came back."""

    def __init__(self, message: str = "Auth response missing token", details: Optional[Dict[str, Any]] = None):
        super().__init__("TOKEN_MISSING", message, details)


class InvalidPathError(ProxyException):
    """Caller-supplied path does not satisfy the prefix/suffix contract."""

    status_code = 400

    def __init__(self, message: str = "Invalid path", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_PATH", message, details)


class UpstreamTransportError(ProxyException):
    """Network-level failure reaching the upstream API."""

    def __init__(self, message: str = "Upstream unreachable", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_TRANSPORT_ERROR", message, details)
