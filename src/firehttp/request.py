"""Assembly of outgoing requests and their raw wire-format rendering."""

from __future__ import annotations

import logging
from typing import Sequence
from urllib.parse import urlsplit

import requests
from requests.auth import HTTPBasicAuth
from requests.utils import DEFAULT_ACCEPT_ENCODING

from .config import ClientConfig
from .multipart import build_multipart_body
from .options import RequestOptions
from .params import FORM_CONTENT_TYPE, build_body, build_headers, build_query

logger = logging.getLogger(__name__)


def _basic_auth(credentials: Sequence[str] | None) -> HTTPBasicAuth | None:
    if credentials is None:
        return None
    if len(credentials) != 2:
        logger.warning(
            "Ignoring basic auth: expected (user, password), got %d values",
            len(credentials),
        )
        return None
    user, password = credentials
    return HTTPBasicAuth(user, password)


def assemble_request(
    method: str,
    url: str,
    options: RequestOptions,
    config: ClientConfig,
) -> requests.Request:
    """Build the outgoing request for one call.

    File uploads take precedence over ``options.body``: when both are given
    the body is ignored. The body's content type is the lowest header layer,
    so presets and per-call headers may override it.
    """
    target = build_query(url, options.params)

    base: dict[str, str] = {}
    data: bytes | None = None
    if options.files:
        if options.body is not None:
            logger.debug(
                "Ignoring body of %s %s: files take precedence", method, target
            )
        data, content_type = build_multipart_body(options.files)
        base["Content-Type"] = content_type
    elif options.body is not None:
        data = build_body(options.body)
        base["Content-Type"] = FORM_CONTENT_TYPE

    headers = build_headers(
        options,
        base=base,
        presets=config.default_headers,
        user_agent=config.user_agent,
    )
    if not options.disable_compression and "Accept-Encoding" not in headers:
        headers["Accept-Encoding"] = DEFAULT_ACCEPT_ENCODING

    return requests.Request(
        method=method.upper(),
        url=target,
        headers=headers,
        data=data,
        auth=_basic_auth(options.basic_auth),
    )


def raw_http_request(request: requests.PreparedRequest) -> str:
    """Render ``request`` as HTTP/1.1 wire text.

    The request line and Host header come first, then every other header in
    iteration order, a blank line and the body.
    """
    host = request.headers.get("Host")
    if not host:
        host = urlsplit(request.url).netloc.rpartition("@")[2]
    lines = [f"{request.method} {request.path_url} HTTP/1.1", f"Host: {host}"]
    lines.extend(
        f"{key}: {value}"
        for key, value in request.headers.items()
        if key.lower() != "host"
    )
    raw = "\r\n".join(lines) + "\r\n\r\n"

    body = request.body
    if isinstance(body, bytes):
        raw += body.decode("utf-8", errors="replace")
    elif isinstance(body, str):
        raw += body
    return raw
