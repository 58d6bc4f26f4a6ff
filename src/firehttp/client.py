"""Synchronous HTTP client built on requests.

``FireHttp`` turns loosely-typed call options into a request, sends it over
a per-call transport configured from the client settings and wraps the
result in a ``Response``. Nothing is retried: transport failures surface as
``NetworkError`` subclasses on the first attempt.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import requests

from .config import ClientConfig
from .dnscache import DNSCache
from .errors import (
    ConfigurationError,
    HttpClientError,
    NetworkError,
    RequestTimeoutError,
    TLSError,
)
from .options import RequestOptions
from .request import assemble_request
from .response import Response
from .transport import Transport

logger = logging.getLogger(__name__)

_CONFIGURATION_ERRORS = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.URLRequired,
)


class FireHttp:
    """HTTP client applying one ``ClientConfig`` to every call.

    Each call gets its own transport unless the options carry a session, so
    calls may run concurrently from several threads. The DNS cache is the
    only state shared between calls; pass ``resolver`` to share one cache
    between clients.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        resolver: DNSCache | None = None,
    ) -> None:
        """Create a new client.

        Args:
            config: Proxy, timeouts, pool size, DNS cache TTL and preset
                headers. Defaults to ``ClientConfig()``.
            resolver: DNS cache to use instead of building one from
                ``config.dns_cache_ttl_seconds``.
        """
        self._config = config or ClientConfig()
        if resolver is None and self._config.dns_cache_ttl_seconds > 0:
            resolver = DNSCache(self._config.dns_cache_ttl_seconds)
        self._resolver = resolver

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def resolver(self) -> DNSCache | None:
        return self._resolver

    def build_request(
        self, method: str, url: str, options: RequestOptions
    ) -> requests.Request:
        return assemble_request(method, url, options, self._config)

    def build_transport(self, options: RequestOptions) -> Transport:
        return Transport(self._config, options, resolver=self._resolver)

    @staticmethod
    def _map_request_exception(
        e: requests.exceptions.RequestException,
    ) -> HttpClientError:
        """Map requests exceptions to firehttp errors."""
        if isinstance(e, requests.exceptions.Timeout):
            return RequestTimeoutError(str(e))
        if isinstance(e, requests.exceptions.SSLError):
            return TLSError(str(e))
        if isinstance(e, _CONFIGURATION_ERRORS):
            return ConfigurationError(str(e))

        # Connection, proxy and any other transport failure
        return NetworkError(str(e))

    def _send(
        self,
        send_fn: Callable[[], requests.Response],
        transport: Transport | None = None,
    ) -> requests.Response:
        try:
            return send_fn()
        except requests.exceptions.RequestException as exc:
            # A deadline abort shows up as a dropped connection
            if transport is not None and transport.expired:
                raise RequestTimeoutError(
                    f"request deadline exceeded: {exc}"
                ) from exc
            raise self._map_request_exception(exc) from exc

    def do_request(
        self,
        method: str,
        url: str,
        options: RequestOptions | None = None,
        **kwargs: Any,
    ) -> Response:
        """Perform one HTTP exchange.

        Args:
            method: HTTP method.
            url: Absolute URL; ``options.params`` is merged into its query.
            options: Per-call options. Keyword arguments build one instead.

        Returns:
            Response wrapping the exchange. Close it to release the
            connection.

        Raises:
            ParameterTypeError: Unsupported params, headers or body type.
            FileUploadError: An upload could not be opened, read or closed.
            ConfigurationError: Malformed target or proxy URL.
            NetworkError: Dial, TLS, proxy or timeout failure.
        """
        if options is None:
            options = RequestOptions(**kwargs)
        elif kwargs:
            raise TypeError("pass either options or keyword options, not both")

        request = self.build_request(method, url, options)
        logger.debug("Sending %s %s", request.method, request.url)

        session = options.session
        if session is not None:
            raw_response = self._send(
                lambda: session.send(
                    session.prepare_request(request),
                    stream=True,
                    timeout=options.timeout,
                    allow_redirects=not options.disable_redirect,
                )
            )
            return Response(raw_response)

        transport = self.build_transport(options)
        try:
            raw_response = self._send(
                lambda: transport.send(request, options.timeout), transport
            )
        except Exception:
            transport.close()
            raise
        return Response(raw_response, transport=transport)

    def get(
        self,
        url: str,
        options: RequestOptions | None = None,
        **kwargs: Any,
    ) -> Response:
        """Perform an HTTP GET request.

        Args:
            url: Absolute URL to request.
            options: Per-call options.
            **kwargs: Fields of a ``RequestOptions`` built when
                ``options`` is omitted.

        Returns:
            Response wrapping the exchange. Close it to release the
            connection.
        """
        return self.do_request("GET", url, options, **kwargs)

    def post(
        self,
        url: str,
        options: RequestOptions | None = None,
        **kwargs: Any,
    ) -> Response:
        """Perform an HTTP POST request.

        Args:
            url: Absolute URL to request.
            options: Per-call options.
            **kwargs: Fields of a ``RequestOptions`` built when
                ``options`` is omitted.

        Returns:
            Response wrapping the exchange. Close it to release the
            connection.
        """
        return self.do_request("POST", url, options, **kwargs)

    def put(
        self,
        url: str,
        options: RequestOptions | None = None,
        **kwargs: Any,
    ) -> Response:
        """Perform an HTTP PUT request.

        Args:
            url: Absolute URL to request.
            options: Per-call options.
            **kwargs: Fields of a ``RequestOptions`` built when
                ``options`` is omitted.

        Returns:
            Response wrapping the exchange. Close it to release the
            connection.
        """
        return self.do_request("PUT", url, options, **kwargs)

    def delete(
        self,
        url: str,
        options: RequestOptions | None = None,
        **kwargs: Any,
    ) -> Response:
        """Perform an HTTP DELETE request.

        Args:
            url: Absolute URL to request.
            options: Per-call options.
            **kwargs: Fields of a ``RequestOptions`` built when
                ``options`` is omitted.

        Returns:
            Response wrapping the exchange. Close it to release the
            connection.
        """
        return self.do_request("DELETE", url, options, **kwargs)

    def head(
        self,
        url: str,
        options: RequestOptions | None = None,
        **kwargs: Any,
    ) -> Response:
        """Perform an HTTP HEAD request.

        Args:
            url: Absolute URL to request.
            options: Per-call options.
            **kwargs: Fields of a ``RequestOptions`` built when
                ``options`` is omitted.

        Returns:
            Response with status and headers; the body is empty.
        """
        return self.do_request("HEAD", url, options, **kwargs)

    def patch(
        self,
        url: str,
        options: RequestOptions | None = None,
        **kwargs: Any,
    ) -> Response:
        """Perform an HTTP PATCH request.

        Args:
            url: Absolute URL to request.
            options: Per-call options.
            **kwargs: Fields of a ``RequestOptions`` built when
                ``options`` is omitted.

        Returns:
            Response wrapping the exchange. Close it to release the
            connection.
        """
        return self.do_request("PATCH", url, options, **kwargs)

    def options(
        self,
        url: str,
        options: RequestOptions | None = None,
        **kwargs: Any,
    ) -> Response:
        """Perform an HTTP OPTIONS request.

        Args:
            url: Absolute URL to request.
            options: Per-call options.
            **kwargs: Fields of a ``RequestOptions`` built when
                ``options`` is omitted.

        Returns:
            Response wrapping the exchange. Close it to release the
            connection.
        """
        return self.do_request("OPTIONS", url, options, **kwargs)
