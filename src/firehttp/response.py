"""Response facade over one completed exchange."""

from __future__ import annotations

from typing import Any, Iterable

import requests
import urllib3.exceptions
from requests.cookies import RequestsCookieJar
from requests.utils import get_encoding_from_headers

from .errors import NetworkError, RequestTimeoutError
from .request import raw_http_request
from .transport import Transport

HTTP_VERSIONS = {9: "HTTP/0.9", 10: "HTTP/1.0", 11: "HTTP/1.1", 20: "HTTP/2"}


def raw_http_response(
    proto: str,
    status_code: int,
    reason: str,
    headers: Iterable[tuple[str, str]],
    body: str,
) -> str:
    """Render a response as wire text.

    The status line comes first, then one ``Key:Value `` line per header,
    a blank line and the body.
    """
    raw = f"{proto} {status_code} {reason}\r\n"
    for key, value in headers:
        raw += f"{key}:{value} \r\n"
    return raw + "\r\n" + body


class Response:
    """Wrap the ``requests.Response`` of one exchange.

    The body is streamed from the connection. ``text()``, ``content()``,
    ``read()`` and ``raw_http_response()`` consume it, so only the first
    call sees the whole body; later calls return what is left, usually
    nothing. Call ``close()`` (or use a ``with`` block) to release the
    connection, and the per-call transport when this response owns one.

    The call timeout covers the body too: once it has elapsed, reads raise
    ``RequestTimeoutError``.
    """

    def __init__(
        self,
        raw_response: requests.Response,
        transport: Transport | None = None,
    ) -> None:
        self.raw_response = raw_response
        self._transport = transport
        self._drained = False

    @property
    def status_code(self) -> int:
        return self.raw_response.status_code

    @property
    def reason(self) -> str:
        return self.raw_response.reason or ""

    @property
    def url(self) -> str:
        return self.raw_response.url

    @property
    def proto(self) -> str:
        version = getattr(self.raw_response.raw, "version", 11)
        return HTTP_VERSIONS.get(version, "HTTP/1.1")

    @property
    def headers(self) -> Any:
        """Headers as received, repeated fields kept in arrival order."""
        raw_headers = getattr(self.raw_response.raw, "headers", None)
        if raw_headers is not None:
            return raw_headers
        return self.raw_response.headers

    @property
    def cookies(self) -> RequestsCookieJar:
        """Cookies set by this response."""
        return self.raw_response.cookies

    def _header_items(self) -> list[tuple[str, str]]:
        return list(self.headers.items())

    def raw_headers(self) -> str:
        return "\r\n".join(
            f"{key}: {value}" for key, value in self._header_items()
        )

    def raw_cookies(self) -> str:
        return "".join(
            f"Set-Cookie: {value}\r\n"
            for key, value in self._header_items()
            if key.lower() == "set-cookie"
        )

    @property
    def expired(self) -> bool:
        """True once the call deadline has passed."""
        return self._transport is not None and self._transport.expired

    def _read(self, amount: int | None = None) -> bytes:
        if self._drained:
            return b""
        if self.expired:
            raise RequestTimeoutError("request deadline exceeded")
        try:
            data = self.raw_response.raw.read(amount, decode_content=True)
        except urllib3.exceptions.ReadTimeoutError as exc:
            raise RequestTimeoutError(
                f"timed out reading body: {exc}"
            ) from exc
        except (urllib3.exceptions.HTTPError, OSError) as exc:
            if self.expired:
                raise RequestTimeoutError(
                    f"request deadline exceeded reading body: {exc}"
                ) from exc
            raise NetworkError(f"failed to read body: {exc}") from exc
        # A close-delimited body cut short by the deadline ends without error
        if self.expired:
            raise RequestTimeoutError("request deadline exceeded reading body")
        if amount is None or not data:
            self._drained = True
        return data or b""

    def _charset(self) -> str:
        """Charset named in Content-Type, else UTF-8.

        The ISO-8859-1 fallback requests applies to bare ``text/*`` types is
        not used.
        """
        content_type = self.raw_response.headers.get("Content-Type", "")
        params = content_type.split(";")[1:]
        if not any(
            param.strip().lower().startswith("charset=") for param in params
        ):
            return "utf-8"
        return get_encoding_from_headers(self.raw_response.headers) or "utf-8"

    def _decode(self, data: bytes) -> str:
        try:
            return data.decode(self._charset(), errors="replace")
        except LookupError:
            return data.decode("utf-8", errors="replace")

    def content(self) -> bytes:
        """Read the rest of the body. Single use."""
        return self._read()

    def text(self) -> str:
        """Read and decode the rest of the body. Single use."""
        return self._decode(self._read())

    def read(self, n: int) -> bytes:
        """Read at most ``n`` bytes of the body, leaving the rest unread."""
        if n <= 0:
            return b""
        return self._read(n)

    def raw_http_request(self) -> str:
        """Wire text of the request that produced this response."""
        return raw_http_request(self.raw_response.request)

    def raw_http_response(self) -> str:
        """Wire text of this response. Consumes the body."""
        return raw_http_response(
            self.proto,
            self.status_code,
            self.reason,
            self._header_items(),
            self._decode(self._read()),
        )

    def close(self) -> None:
        self.raw_response.close()
        if self._transport is not None:
            self._transport.close()
            self._transport = None

    def __enter__(self) -> Response:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
