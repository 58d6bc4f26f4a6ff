import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

import pytest


class _Handler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):
        pass

    def _reply(self, status, body=b"", headers=()):
        self.send_response(status)
        for key, value in headers:
            self.send_header(key, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _drip(self, data, delay):
        self.close_connection = True
        for i in range(len(data)):
            try:
                self.wfile.write(data[i : i + 1])
                self.wfile.flush()
            except OSError:
                return
            time.sleep(delay)

    def _handle(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        path = urlsplit(self.path).path

        if path == "/echo":
            payload = {
                "method": self.command,
                "path": self.path,
                "headers": dict(self.headers.items()),
                "body": body.decode("latin-1"),
            }
            self._reply(
                200,
                json.dumps(payload).encode(),
                [("Content-Type", "application/json")],
            )
        elif path == "/redirect":
            self._reply(
                302,
                b"redirect body",
                [("Location", "/target"), ("Content-Type", "text/plain")],
            )
        elif path == "/target":
            self._reply(200, b"target", [("Content-Type", "text/plain")])
        elif path == "/cookies":
            self._reply(
                200,
                b"cookies",
                [
                    ("Set-Cookie", "session=abc; Path=/"),
                    ("Set-Cookie", "theme=dark; Path=/"),
                ],
            )
        elif path == "/text":
            self._reply(
                200,
                b"hello world",
                [("Content-Type", "text/plain; charset=utf-8")],
            )
        elif path == "/html":
            self._reply(
                200, "h\u00e9llo".encode("utf-8"), [("Content-Type", "text/html")]
            )
        elif path == "/latin1":
            self._reply(
                200,
                "h\u00e9llo".encode("latin-1"),
                [("Content-Type", "text/plain; charset=ISO-8859-1")],
            )
        elif path == "/drip-headers":
            self._drip(
                b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n"
                b"Content-Length: 2\r\nConnection: close\r\n\r\nok",
                0.05,
            )
        elif path == "/drip-body":
            self.send_response(200)
            self.send_header("Content-Length", "10")
            self.end_headers()
            self._drip(b"x" * 10, 0.2)
        elif path == "/slow":
            time.sleep(1.0)
            self._reply(200, b"slow")
        else:
            self._reply(404, b"not found")

    do_GET = do_POST = do_PUT = do_DELETE = _handle
    do_PATCH = do_HEAD = do_OPTIONS = _handle


@pytest.fixture(scope="session")
def server_url():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
