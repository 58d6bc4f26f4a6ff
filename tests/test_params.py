from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import parse_qsl, urlsplit

import pytest

from firehttp.config import DEFAULT_USER_AGENT
from firehttp.errors import ConfigurationError, ParameterTypeError
from firehttp.options import RequestOptions
from firehttp.params import (
    FORM_CONTENT_TYPE,
    build_body,
    build_headers,
    build_query,
    parse_header_text,
    record_to_pairs,
)


@dataclass
class Search:
    q: str
    page: int = 1
    tags: List[str] = field(default_factory=list)
    token: Optional[str] = None
    sort: str = field(default="asc", metadata={"query": "order"})
    secret: str = field(default="hidden", metadata={"query": "-"})
    exact: bool = False


def _query(url):
    return parse_qsl(urlsplit(url).query, keep_blank_values=True)


def test_build_query_without_params_returns_url_unchanged():
    url = "https://example.com/x?b=2&a=1"

    assert build_query(url, None) == url


def test_build_query_text_merges_with_existing_query():
    url = build_query("https://example.com/x?y=2", "id=1")

    assert url == "https://example.com/x?id=1&y=2"


def test_build_query_text_keeps_repeated_keys():
    url = build_query("http://example.com/?a=1", "a=2&b=")

    assert _query(url) == [("a", "1"), ("a", "2"), ("b", "")]


def test_build_query_mapping_overwrites_same_key():
    url = build_query("http://example.com/?a=1&a=2&b=2", {"a": "3", "c": 4})

    assert _query(url) == [("a", "3"), ("b", "2"), ("c", "4")]


def test_build_query_record_is_merged_additively():
    record = Search(q="fire", tags=["x", "y"], exact=True)
    url = build_query("http://example.com/s?q=old", record)

    assert _query(url) == [
        ("exact", "true"),
        ("order", "asc"),
        ("page", "1"),
        ("q", "old"),
        ("q", "fire"),
        ("tags", "x"),
        ("tags", "y"),
    ]


def test_record_to_pairs_skips_none_and_ignored_fields():
    pairs = dict(record_to_pairs(Search(q="a")))

    assert "token" not in pairs
    assert "secret" not in pairs
    assert pairs["order"] == "asc"


def test_build_query_preserves_path_and_fragment():
    url = build_query("http://example.com/a/b?x=1#frag", {"y": "2"})

    assert url == "http://example.com/a/b?x=1&y=2#frag"


def test_build_query_rejects_unsupported_type():
    with pytest.raises(ParameterTypeError):
        build_query("http://example.com/", 42)


def test_build_query_rejects_malformed_url():
    with pytest.raises(ConfigurationError):
        build_query("http://[::1/path", "a=1")


def test_parse_header_text_skips_malformed_lines():
    pairs = parse_header_text("Cookie: x=1\r\nBad-Line\r\nFoo: bar\r\n")

    assert pairs == [("Cookie", "x=1"), ("Foo", "bar")]


def test_parse_header_text_splits_on_first_colon():
    assert parse_header_text("Referer: http://example.com/") == [
        ("Referer", "http://example.com/")
    ]
    assert parse_header_text(": no-key") == []


def test_build_headers_mapping_round_trip_keeps_case():
    headers = build_headers(RequestOptions(headers={"A": "1", "B": "2"}))

    assert headers["A"] == "1"
    assert headers["B"] == "2"
    assert "A" in list(headers.keys())
    assert "B" in list(headers.keys())


def test_build_headers_text_headers():
    headers = build_headers(
        RequestOptions(headers="Cookie: x=1\r\nBad-Line\r\nFoo: bar\r\n")
    )

    assert headers["Cookie"] == "x=1"
    assert headers["Foo"] == "bar"
    assert set(headers.keys()) == {"Cookie", "Foo", "User-Agent"}


def test_build_headers_layers_in_precedence_order():
    options = RequestOptions(
        headers={"X-Call": "call", "Content-Type": "text/plain"},
        is_ajax=True,
    )
    headers = build_headers(
        options,
        base={"Content-Type": FORM_CONTENT_TYPE, "X-Base": "base"},
        presets={"X-Call": "preset", "X-Preset": "preset"},
    )

    assert headers["X-Base"] == "base"
    assert headers["X-Preset"] == "preset"
    assert headers["X-Call"] == "call"
    assert headers["Content-Type"] == "text/plain"
    assert headers["X-Requested-With"] == "XMLHttpRequest"


def test_build_headers_protocol_switches_override_content_type():
    json_headers = build_headers(
        RequestOptions(headers={"Content-Type": "text/plain"}, is_json=True)
    )
    xml_headers = build_headers(RequestOptions(is_json=True, is_xml=True))

    assert json_headers["Content-Type"] == "application/json"
    assert xml_headers["Content-Type"] == "application/xml"


def test_build_headers_user_agent_defaults():
    assert build_headers(RequestOptions())["User-Agent"] == DEFAULT_USER_AGENT
    assert (
        build_headers(RequestOptions(), user_agent="custom/1")["User-Agent"]
        == "custom/1"
    )
    assert (
        build_headers(
            RequestOptions(headers={"user-agent": "caller"}),
            presets={"User-Agent": "preset"},
        )["User-Agent"]
        == "caller"
    )


def test_build_body_variants():
    assert build_body(None) is None
    assert build_body("héllo") == "héllo".encode("utf-8")
    assert build_body(b"\x00\x01") == b"\x00\x01"
    assert build_body({"foo": "bar"}) == b"foo=bar"
    assert build_body({"b": "2", "a": "x y"}) == b"a=x+y&b=2"


def test_build_body_rejects_unsupported_type():
    with pytest.raises(ParameterTypeError):
        build_body(3.14)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"params": 42},
        {"params": ["a", "b"]},
        {"headers": [("A", "1")]},
        {"headers": {"X-N": 1}},
        {"headers": {1: "one"}},
        {"body": 3.14},
        {"body": ["a"]},
    ],
)
def test_request_options_reject_unsupported_types_at_construction(kwargs):
    with pytest.raises(ParameterTypeError) as excinfo:
        RequestOptions(**kwargs)

    assert isinstance(excinfo.value, TypeError)


def test_request_options_reject_dataclass_type_as_params():
    with pytest.raises(ParameterTypeError):
        RequestOptions(params=Search)


def test_request_options_rejects_non_positive_timeout():
    with pytest.raises(ValueError):
        RequestOptions(timeout=0)
