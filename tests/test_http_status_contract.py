# pyright: reportUnknownParameterType=false, reportUnknownMemberType=false
from unittest.mock import Mock, patch

from firehttp.client import FireHttp
from firehttp.config import ClientConfig


def _mock_response(
    *,
    status: int = 200,
    url: str = "http://example.com",
    reason: str = "OK",
):
    response = Mock()
    response.status_code = status
    response.url = url
    response.reason = reason
    response.headers = {"Content-Type": "text/plain"}
    response.raw = None
    return response


def test_404_is_a_response_not_an_error():
    client = FireHttp(ClientConfig())

    with patch("firehttp.transport.RedirectPolicySession.send") as mock_send:
        mock_send.return_value = _mock_response(status=404, reason="Not Found")
        response = client.get("http://example.com/missing")

    assert response.status_code == 404
    assert response.reason == "Not Found"


def test_500_is_a_response_not_an_error():
    client = FireHttp(ClientConfig())

    with patch("firehttp.transport.RedirectPolicySession.send") as mock_send:
        mock_send.return_value = _mock_response(
            status=500,
            reason="Internal Server Error",
        )
        response = client.get("http://example.com/error")

    assert response.status_code == 500
    assert response.reason == "Internal Server Error"
    assert response.headers == {"Content-Type": "text/plain"}


def test_302_without_redirects_is_returned_as_is():
    client = FireHttp(ClientConfig())

    with patch("firehttp.transport.RedirectPolicySession.send") as mock_send:
        mock_send.return_value = _mock_response(status=302, reason="Found")
        response = client.get(
            "http://example.com/redirect",
            disable_redirect=True,
        )

    assert response.status_code == 302
    assert response.reason == "Found"
    _, kwargs = mock_send.call_args
    assert kwargs["allow_redirects"] is False
