"""
Root pytest configuration for the api-helper suite.

Tests marked ``live`` talk to the demo API at ``settings.BASE_URL`` and only
run when ``--live`` is passed.
"""

import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest
from requests import Response
from requests.structures import CaseInsensitiveDict

from api_client import APIClient


def pytest_addoption(parser):
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests that hit the live demo API",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--live"):
        return
    skip_live = pytest.mark.skip(reason="needs --live to run against the demo API")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


def build_response(status=200, body=b"", headers=None, reason="OK", url="https://api.example.com/"):
    """Build a real requests.Response without touching the network."""
    resp = Response()
    resp.status_code = status
    resp.reason = reason
    resp.url = url
    resp.encoding = "utf-8"
    resp.headers = CaseInsensitiveDict(headers or {})
    resp._content = body.encode("utf-8") if isinstance(body, str) else body
    return resp


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def client():
    return APIClient("https://api.example.com")


class CookieHandler(BaseHTTPRequestHandler):
    """Hands out a session cookie and records the Cookie header of each request."""

    def do_GET(self):
        self.server.seen_cookies.append(self.headers.get("Cookie"))
        body = b'{"ok": true}'
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Set-Cookie", "sid=1; Path=/")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def cookie_server():
    server = HTTPServer(("127.0.0.1", 0), CookieHandler)
    server.seen_cookies = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
