"""
Shared fixtures: an in-memory HTTP session and a ReportLab PDF factory.
No test in the default suite touches the network.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pytest
import requests
from reportlab.pdfgen import canvas

from specfetch.core.http_fetcher import HTTPFetcher
from specfetch.core.logger import initialize_logging


class FakeResponse:
    def __init__(self, url: str, status_code: int = 200, content: bytes = b"",
                 headers: Optional[Dict[str, str]] = None):
        self.url = url
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self.closed = False

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def json(self):
        return json.loads(self.content.decode("utf-8"))

    def close(self):
        self.closed = True


Route = Union[bytes, str, dict, Tuple[int, bytes], Tuple[int, bytes, Dict[str, str]], Exception]


class FakeSession:
    """
    Routes GET requests to canned answers keyed by URL.

    A route value may be bytes/str (200 answer), a dict (JSON answer), a
    (status, body[, headers]) tuple, or an exception instance to raise.
    Unknown URLs raise ConnectionError.
    """

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        self.routes: Dict[str, Route] = dict(routes or {})
        self.headers: Dict[str, str] = {}
        self.requests: List[Tuple[str, Dict]] = []
        self.closed = False

    def get(self, url, timeout=None, allow_redirects=True, stream=False, **kwargs):
        self.requests.append((url, dict(kwargs, allow_redirects=allow_redirects, stream=stream)))
        if url not in self.routes:
            raise requests.exceptions.ConnectionError(f"unreachable: {url}")
        route = self.routes[url]
        if isinstance(route, Exception):
            raise route
        headers = {}
        if isinstance(route, dict):
            status, body, headers = 200, json.dumps(route).encode(), {"Content-Type": "application/json"}
        elif isinstance(route, tuple):
            status, body = route[0], route[1]
            headers = route[2] if len(route) > 2 else {}
        else:
            status, body = 200, route
        if isinstance(body, str):
            body = body.encode("utf-8")
        if "Content-Type" not in headers and url.endswith((".html", "/")):
            headers = dict(headers, **{"Content-Type": "text/html; charset=utf-8"})
        return FakeResponse(url, status, body, headers)

    def requested(self) -> List[str]:
        return [u for u, _ in self.requests]

    def close(self):
        self.closed = True


def make_pdf(path: Path, *page_texts: str) -> Path:
    """Write a PDF with one page per text."""
    path.parent.mkdir(parents=True, exist_ok=True)
    c = canvas.Canvas(str(path))
    for text in page_texts:
        c.drawString(72, 720, text)
        c.showPage()
    c.save()
    return path


@pytest.fixture(autouse=True)
def console_logging():
    """Bind the console handler to this test's stderr."""
    initialize_logging(None)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def http(fake_session):
    return HTTPFetcher(session=fake_session, timeout=5)


@pytest.fixture
def pdf_factory():
    return make_pdf
