"""firehttp: convenience wrapper around requests."""

from .client import FireHttp
from .config import VERSION, ClientConfig
from .dnscache import DNSCache
from .errors import (
    ConfigurationError,
    FileUploadError,
    HttpClientError,
    NetworkError,
    ParameterTypeError,
    RequestTimeoutError,
    TLSError,
)
from .options import FileUpload, RequestOptions
from .response import Response
from .transport import Transport

__version__ = VERSION

__all__ = [
    "ClientConfig",
    "ConfigurationError",
    "DNSCache",
    "FileUpload",
    "FileUploadError",
    "FireHttp",
    "HttpClientError",
    "NetworkError",
    "ParameterTypeError",
    "RequestOptions",
    "RequestTimeoutError",
    "Response",
    "TLSError",
    "Transport",
]
