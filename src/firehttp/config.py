"""Configuration model for the FireHttp client."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .errors import ConfigurationError

VERSION = "0.1.0"
DEFAULT_USER_AGENT = f"firehttp/{VERSION}"


def _default_headers() -> Mapping[str, str]:
    """Return immutable empty default headers mapping."""

    return MappingProxyType({})


@dataclass(frozen=True)
class ClientConfig:
    """Long-lived settings shared by every call made through one client.

    ``default_headers`` are preset headers applied to each request unless the
    call overrides them. A ``dns_cache_ttl_seconds`` of 0 disables the DNS
    cache and a ``max_idle_connections`` of 0 keeps the pool default.
    """

    proxy: str | None = None
    dns_cache_ttl_seconds: float = 0.0
    max_idle_connections: int = 0
    tls_handshake_timeout_seconds: float = 10.0
    dial_timeout_seconds: float = 30.0
    keep_alive_seconds: float = 30.0
    default_headers: Mapping[str, str] = field(default_factory=_default_headers)
    user_agent: str | None = None

    def __post_init__(self) -> None:
        if self.dns_cache_ttl_seconds < 0:
            raise ConfigurationError("dns_cache_ttl_seconds must be >= 0")
        if self.max_idle_connections < 0:
            raise ConfigurationError("max_idle_connections must be >= 0")
        for name in (
            "tls_handshake_timeout_seconds",
            "dial_timeout_seconds",
            "keep_alive_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be > 0")

        # Freeze copied headers to avoid post-init mutation side effects.
        object.__setattr__(
            self,
            "default_headers",
            MappingProxyType(dict(self.default_headers)),
        )

    def connect_timeout(self, scheme: str) -> float:
        """Return the connect timeout for a target scheme.

        urllib3 applies the connect timeout to the TCP dial and the TLS
        handshake together, so https targets get both budgets.
        """
        if scheme == "https":
            return self.dial_timeout_seconds + self.tls_handshake_timeout_seconds
        return self.dial_timeout_seconds
