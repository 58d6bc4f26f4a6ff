"""Transport configuration: connection adapter and per-call session.

The adapter applies the long-lived ``ClientConfig`` (pool size, timeouts,
DNS cache); the ``Transport`` wraps a ``requests.Session`` carrying the
per-call choices (proxy, TLS verification, cookie jar, redirect policy).
"""

from __future__ import annotations

import logging
import socket
import threading
import weakref
from http.cookiejar import CookieJar, DefaultCookiePolicy
from time import monotonic
from typing import Any, Mapping
from urllib.parse import urlsplit

import requests
from requests.adapters import DEFAULT_POOLSIZE, HTTPAdapter
from requests.cookies import RequestsCookieJar
from urllib3 import PoolManager
from urllib3.util import Timeout

from .config import ClientConfig
from .dnscache import DNSCache
from .errors import ConfigurationError, RequestTimeoutError
from .options import RequestOptions

logger = logging.getLogger(__name__)

PROXY_SCHEMES = frozenset({"http", "https", "socks5", "socks5h"})


def resolve_proxies(proxy: str | None) -> dict[str, str]:
    """Return the ``requests`` proxies mapping for ``proxy``.

    Every scheme is routed through the one proxy.
    """
    if not proxy:
        return {}
    try:
        parts = urlsplit(proxy)
        parts.port  # raises on a malformed port
    except ValueError as exc:
        raise ConfigurationError(f"invalid proxy url {proxy!r}: {exc}") from exc
    if parts.scheme not in PROXY_SCHEMES or not parts.hostname:
        raise ConfigurationError(f"invalid proxy url {proxy!r}")
    return {"http": proxy, "https": proxy}


def build_cookie_jar(options: RequestOptions) -> CookieJar:
    """Return the jar for one call.

    Without ``use_cookie_jar`` the jar refuses every cookie, so nothing is
    stored or sent back while following redirects.
    """
    if not options.use_cookie_jar:
        return RequestsCookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))
    if options.cookie_jar is not None:
        return options.cookie_jar
    return RequestsCookieJar()


def _shutdown(connection: Any) -> None:
    sock = getattr(connection, "sock", None)
    # TLS-in-TLS proxy tunnels wrap the socket in an SSLTransport.
    sock = getattr(sock, "socket", sock)
    if not isinstance(sock, socket.socket):
        return
    try:
        # Bypass SSLSocket.shutdown, which drops the TLS object under a reader.
        socket.socket.shutdown(sock, socket.SHUT_RDWR)
    except OSError:
        # Already closed by the peer or by urllib3.
        return


def _tracking_pool_class(pool_cls: type, track: Any) -> type:
    class TrackingPool(pool_cls):  # type: ignore[misc, valid-type]
        def _new_conn(self) -> Any:
            connection = super()._new_conn()
            track(connection)
            return connection

    TrackingPool.__name__ = f"Tracking{pool_cls.__name__}"
    return TrackingPool


class CachingHTTPAdapter(HTTPAdapter):
    """HTTPAdapter applying client timeouts, a call deadline and DNS caching.

    With a resolver and no proxy, connection pools are keyed by the cached
    address while SNI, hostname verification and the Host header keep the
    original host.

    ``start_deadline`` arms a timer that shuts down every connection this
    adapter opened once the call runs out of time, which unblocks a read
    stuck on a server that trickles its response.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        resolver: DNSCache | None = None,
    ) -> None:
        self._config = config
        self._resolver = None if config.proxy else resolver
        self._connections: weakref.WeakSet[Any] = weakref.WeakSet()
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self.deadline: float | None = None
        pool_size = config.max_idle_connections or DEFAULT_POOLSIZE
        super().__init__(pool_connections=pool_size, pool_maxsize=pool_size)

    def _track(self, connection: Any) -> None:
        with self._lock:
            self._connections.add(connection)

    def _install_tracking(self, manager: PoolManager) -> PoolManager:
        manager.pool_classes_by_scheme = {
            scheme: _tracking_pool_class(pool_cls, self._track)
            for scheme, pool_cls in manager.pool_classes_by_scheme.items()
        }
        return manager

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        super().init_poolmanager(*args, **kwargs)
        self._install_tracking(self.poolmanager)

    def proxy_manager_for(
        self, proxy: str, **proxy_kwargs: Any
    ) -> PoolManager:
        if proxy in self.proxy_manager:
            return self.proxy_manager[proxy]
        manager = super().proxy_manager_for(proxy, **proxy_kwargs)
        return self._install_tracking(manager)

    def start_deadline(self, timeout: float) -> None:
        """Bound everything sent through this adapter by ``timeout`` seconds."""
        self.cancel_deadline()
        self.deadline = monotonic() + timeout
        timer = threading.Timer(timeout, self.abort)
        timer.daemon = True
        timer.start()
        self._timer = timer

    def cancel_deadline(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def expired(self) -> bool:
        return self.deadline is not None and monotonic() >= self.deadline

    def abort(self) -> None:
        """Shut down every open connection, failing reads in progress."""
        with self._lock:
            connections = list(self._connections)
        logger.debug(
            "Call deadline reached, shutting down %d connections",
            len(connections),
        )
        for connection in connections:
            _shutdown(connection)

    def close(self) -> None:
        self.cancel_deadline()
        super().close()

    def build_connection_pool_key_attributes(
        self,
        request: requests.PreparedRequest,
        verify: bool | str,
        cert: Any = None,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        host_params, pool_kwargs = super().build_connection_pool_key_attributes(
            request, verify, cert
        )
        if self._resolver is None:
            return host_params, pool_kwargs

        host = host_params["host"]
        address = self._resolver.fetch_one(host)
        if address != host:
            host_params["host"] = address
            if host_params["scheme"] == "https":
                pool_kwargs["server_hostname"] = host
                if verify is not False:
                    pool_kwargs["assert_hostname"] = host
        return host_params, pool_kwargs

    def add_headers(
        self, request: requests.PreparedRequest, **kwargs: Any
    ) -> None:
        # Rewritten on every hop: redirects copy the previous hop's headers.
        if self._resolver is not None:
            netloc = urlsplit(request.url).netloc
            request.headers["Host"] = netloc.rpartition("@")[2]

    def _timeout(self, url: str) -> Timeout:
        connect = self._config.connect_timeout(urlsplit(url).scheme)
        read = self._config.keep_alive_seconds
        if self.deadline is None:
            return Timeout(connect=connect, read=read)
        remaining = self.deadline - monotonic()
        if remaining <= 0:
            raise RequestTimeoutError("request deadline exceeded")
        return Timeout(
            total=remaining,
            connect=min(connect, remaining),
            read=min(read, remaining),
        )

    def send(
        self,
        request: requests.PreparedRequest,
        stream: bool = False,
        timeout: Any = None,
        verify: bool | str = True,
        cert: Any = None,
        proxies: Mapping[str, str] | None = None,
    ) -> requests.Response:
        return super().send(
            request,
            stream=stream,
            timeout=self._timeout(request.url),
            verify=verify,
            cert=cert,
            proxies=proxies,
        )


class RedirectPolicySession(requests.Session):
    """Session that can stop at the first redirect response.

    With redirects disabled the 3xx response is returned as final and its
    body is left unread for the caller.
    """

    def __init__(self, follow_redirects: bool = True) -> None:
        super().__init__()
        self.follow_redirects = follow_redirects

    def get_redirect_target(self, resp: requests.Response) -> str | None:
        if not self.follow_redirects:
            return None
        return super().get_redirect_target(resp)


class Transport:
    """Session wrapper owning the connections of one call.

    Release it with ``close()`` or a ``with`` block; pooled connections are
    not released on garbage collection.
    """

    def __init__(
        self,
        config: ClientConfig,
        options: RequestOptions,
        *,
        resolver: DNSCache | None = None,
    ) -> None:
        self.adapter = CachingHTTPAdapter(config, resolver=resolver)
        self.allow_redirects = not options.disable_redirect

        session = RedirectPolicySession(self.allow_redirects)
        session.trust_env = False
        session.headers.clear()
        session.verify = not options.insecure_skip_verify
        session.proxies.update(resolve_proxies(config.proxy))
        session.cookies = build_cookie_jar(options)
        session.mount("https://", self.adapter)
        session.mount("http://", self.adapter)
        self.session = session

    def send(
        self, request: requests.Request, timeout: float
    ) -> requests.Response:
        """Send ``request`` with the whole exchange bounded by ``timeout``.

        The deadline keeps running after this returns: reading the body of
        the response counts against it too.
        """
        prepared = self.session.prepare_request(request)
        self.adapter.start_deadline(timeout)
        response = self.session.send(
            prepared,
            stream=True,
            allow_redirects=self.allow_redirects,
        )
        # Headers cut short by the deadline can still parse
        if self.expired:
            response.close()
            raise RequestTimeoutError("request deadline exceeded")
        return response

    @property
    def expired(self) -> bool:
        """True once the deadline armed by ``send`` has passed."""
        return self.adapter.expired

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> Transport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
