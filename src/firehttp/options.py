"""Per-call request options."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from http.cookiejar import CookieJar
from typing import IO, Any, Mapping, Sequence

import requests

from .errors import ParameterTypeError

DEFAULT_TIMEOUT_SECONDS = 60.0


def is_record(value: Any) -> bool:
    """Return True for dataclass instances used as structured query records."""
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


@dataclass(frozen=True)
class FileUpload:
    """One file to send in a multipart body.

    Without ``stream`` the file at ``file_name`` is opened when the body is
    built. With ``stream``, ``file_name`` is only the filename reported in
    the part headers. Either way the stream is closed once copied.
    """

    file_name: str = ""
    stream: IO[bytes] | None = None
    field_name: str = ""
    mime_type: str = ""

    def __post_init__(self) -> None:
        if not self.file_name and self.stream is None:
            raise ValueError("FileUpload needs a file_name or a stream")


@dataclass(frozen=True)
class RequestOptions:
    """Options for one call.

    ``params`` may be an encoded query string, a mapping or a dataclass
    instance; ``headers`` a mapping or ``Key: Value`` lines separated by
    CRLF; ``body`` text, bytes or a mapping. Other shapes are rejected here
    so a bad call never reaches the network.
    """

    params: str | Mapping[str, Any] | Any | None = None
    headers: str | Mapping[str, str] | None = None
    body: str | bytes | Mapping[str, Any] | None = None
    files: Sequence[FileUpload] = ()
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    disable_redirect: bool = False
    disable_compression: bool = False
    insecure_skip_verify: bool = False
    is_ajax: bool = False
    is_json: bool = False
    is_xml: bool = False
    use_cookie_jar: bool = False
    cookie_jar: CookieJar | None = None
    basic_auth: Sequence[str] | None = None
    session: requests.Session | None = None

    def __post_init__(self) -> None:
        if self.params is not None and not (
            isinstance(self.params, (str, Mapping)) or is_record(self.params)
        ):
            raise ParameterTypeError(
                "params", self.params, "str, mapping or dataclass"
            )
        if self.headers is not None and not isinstance(
            self.headers, (str, Mapping)
        ):
            raise ParameterTypeError("header", self.headers, "str or mapping")
        if isinstance(self.headers, Mapping):
            for key, value in self.headers.items():
                if not isinstance(key, (str, bytes)) or not isinstance(
                    value, (str, bytes)
                ):
                    raise ParameterTypeError(
                        "header", {key: value}, "str or bytes keys and values"
                    )
        if self.body is not None and not isinstance(
            self.body, (str, bytes, Mapping)
        ):
            raise ParameterTypeError("body", self.body, "str, bytes or mapping")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        object.__setattr__(self, "files", tuple(self.files))
