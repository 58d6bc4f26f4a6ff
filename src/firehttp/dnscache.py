"""TTL-scoped DNS cache shared by the connections of one or more clients."""

from __future__ import annotations

import ipaddress
import logging
import socket
import threading
from time import monotonic
from typing import Callable

from .errors import NetworkError

logger = logging.getLogger(__name__)

Lookup = Callable[[str], list[str]]


def system_lookup(host: str) -> list[str]:
    """Resolve ``host`` through the OS resolver, IPv4 addresses first."""
    infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    infos.sort(key=lambda info: info[0] != socket.AF_INET)
    addresses: list[str] = []
    for info in infos:
        address = str(info[4][0])
        if address not in addresses:
            addresses.append(address)
    return addresses


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return False
    return True


class DNSCache:
    """Cache host lookups for ``ttl`` seconds.

    Safe to share between threads. ``lookup`` defaults to the system
    resolver and exists so tests can count resolutions.
    """

    def __init__(self, ttl: float, lookup: Lookup | None = None) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be > 0")
        self.ttl = ttl
        self._lookup = lookup or system_lookup
        self._entries: dict[str, tuple[list[str], float]] = {}
        self._lock = threading.Lock()

    def fetch(self, host: str) -> list[str]:
        """Return the cached addresses of ``host``, resolving on a miss."""
        if _is_ip_literal(host):
            return [host.strip("[]")]

        now = monotonic()
        with self._lock:
            entry = self._entries.get(host)
            if entry is not None and entry[1] > now:
                return list(entry[0])

        logger.debug("DNS cache miss for %s", host)
        try:
            addresses = self._lookup(host)
        except OSError as exc:
            raise NetworkError(f"failed to resolve {host}: {exc}") from exc
        if not addresses:
            raise NetworkError(f"no addresses found for {host}")

        with self._lock:
            self._entries[host] = (list(addresses), monotonic() + self.ttl)
        return list(addresses)

    def fetch_one(self, host: str) -> str:
        return self.fetch(host)[0]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
