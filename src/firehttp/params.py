"""Normalization of loosely-typed query, header and body parameters.

Each builder accepts the shapes ``RequestOptions`` allows and turns them into
the canonical form ``requests`` expects: a final URL, a case-insensitive
header dict and body bytes.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Iterable, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from requests.structures import CaseInsensitiveDict

from .config import DEFAULT_USER_AGENT
from .errors import ConfigurationError, ParameterTypeError
from .options import RequestOptions, is_record

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"
XML_CONTENT_TYPE = "application/xml"

Pairs = list[tuple[str, str]]


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _sorted_pairs(pairs: Iterable[tuple[str, str]]) -> Pairs:
    # Stable: values of one key keep their relative order.
    return sorted(pairs, key=lambda pair: pair[0])


def record_to_pairs(record: Any) -> Pairs:
    """Reflect a dataclass instance into query pairs.

    A ``"query"`` entry in field metadata renames the key (``"-"`` skips the
    field). ``None`` values are omitted and lists or tuples become repeated
    keys.
    """
    pairs: Pairs = []
    for record_field in dataclasses.fields(record):
        name = record_field.metadata.get("query", record_field.name)
        if name == "-":
            continue
        value = getattr(record, record_field.name)
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((name, _format_value(item)) for item in value)
        else:
            pairs.append((name, _format_value(value)))
    return pairs


def build_query(url: str, params: Any) -> str:
    """Merge ``params`` into the query string of ``url``.

    Text and records are added to the existing pairs, repeated keys allowed.
    Mapping keys replace every existing value for that key.
    """
    if params is None:
        return url

    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise ConfigurationError(f"invalid url {url!r}: {exc}") from exc

    query = parse_qsl(parts.query, keep_blank_values=True)
    if isinstance(params, str):
        query.extend(parse_qsl(params, keep_blank_values=True))
    elif isinstance(params, Mapping):
        for key, value in params.items():
            query = [pair for pair in query if pair[0] != key]
            query.append((key, _format_value(value)))
    elif is_record(params):
        query.extend(record_to_pairs(params))
    else:
        raise ParameterTypeError("params", params, "str, mapping or dataclass")

    return urlunsplit(parts._replace(query=urlencode(_sorted_pairs(query))))


def parse_header_text(text: str) -> Pairs:
    """Parse CRLF separated ``Key: Value`` lines.

    Lines are split on the first colon. Lines without a colon or with an
    empty key are skipped.
    """
    pairs: Pairs = []
    for line in text.split("\r\n"):
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        pairs.append((key, value.strip()))
    return pairs


def build_headers(
    options: RequestOptions,
    *,
    base: Mapping[str, str] | None = None,
    presets: Mapping[str, str] | None = None,
    user_agent: str | None = None,
) -> CaseInsensitiveDict:
    """Layer request headers, lowest precedence first.

    ``base`` holds headers implied by the body, ``presets`` the client-wide
    defaults. Per-call headers come next, then the ajax/JSON/XML switches.
    A User-Agent is added last when no layer set one.
    """
    headers: CaseInsensitiveDict = CaseInsensitiveDict()
    for layer in (base, presets):
        if layer:
            for key, value in layer.items():
                headers[key] = value

    if options.headers is not None:
        if isinstance(options.headers, Mapping):
            items: Iterable[tuple[str, str]] = options.headers.items()
        elif isinstance(options.headers, str):
            items = parse_header_text(options.headers)
        else:
            raise ParameterTypeError("header", options.headers, "str or mapping")
        for key, value in items:
            headers[key] = value

    if options.is_ajax:
        headers["X-Requested-With"] = "XMLHttpRequest"
    if options.is_json:
        headers["Content-Type"] = JSON_CONTENT_TYPE
    if options.is_xml:
        headers["Content-Type"] = XML_CONTENT_TYPE

    if not headers.get("User-Agent"):
        headers["User-Agent"] = user_agent or DEFAULT_USER_AGENT
    return headers


def build_body(body: Any) -> bytes | None:
    """Encode a text, bytes or mapping body.

    Mappings are form-encoded with keys sorted.
    """
    if body is None:
        return None
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, bytes):
        return body
    if isinstance(body, Mapping):
        pairs = ((key, _format_value(value)) for key, value in body.items())
        return urlencode(_sorted_pairs(pairs)).encode("ascii")
    raise ParameterTypeError("body", body, "str, bytes or mapping")
