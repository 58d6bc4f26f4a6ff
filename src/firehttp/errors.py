"""Exception hierarchy for firehttp.

Every error raised by the client derives from ``HttpClientError`` so callers
can catch the whole family with one clause. The concrete classes also inherit
from the closest built-in exception, which keeps ``except TypeError`` or
``except OSError`` handlers working.
"""

from __future__ import annotations


class HttpClientError(Exception):
    """Base class for all firehttp errors."""


class ParameterTypeError(HttpClientError, TypeError):
    """Raised when a query, header or body value has an unsupported type."""

    def __init__(self, parameter: str, value: object, supported: str) -> None:
        self.parameter = parameter
        self.value_type = type(value).__name__
        super().__init__(
            f"{parameter} type error: got {self.value_type}, "
            f"only {supported} supported"
        )


class FileUploadError(HttpClientError, OSError):
    """Raised when an upload cannot be opened, copied or closed."""

    def __init__(self, file_name: str, action: str, original_error: Exception):
        self.file_name = file_name
        self.action = action
        self.original_error = original_error
        super().__init__(
            f"failed to {action} upload {file_name!r}: {original_error}"
        )


class ConfigurationError(HttpClientError, ValueError):
    """Raised for malformed proxy URLs, target URLs or client settings."""


class NetworkError(HttpClientError):
    """Raised when the exchange fails in the transport."""


class RequestTimeoutError(NetworkError):
    """Raised when the per-call deadline or a socket timeout expires."""


class TLSError(NetworkError):
    """Raised when the TLS handshake or certificate validation fails."""
