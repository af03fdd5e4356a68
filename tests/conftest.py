"""Pytest fixtures for CQU SSO tests."""

from pathlib import Path
from typing import Callable

import httpx
import pytest

from cqu_sso.config import Endpoints, SessionConfig
from cqu_sso.session import Session

FIXTURES_DIR = Path(__file__).parent / "fixtures"

ENDPOINTS = Endpoints()


def url_key(url: httpx.URL) -> str:
    """URL without its query string."""
    return str(url).split("?", 1)[0]


class FakeSite:
    """Canned responses keyed by method and URL (query ignored).

    Each route holds a queue of responses. Entries are consumed in order and
    the last one repeats. An entry may be a callable taking the request.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, *responses) -> "FakeSite":
        self.routes.setdefault((method, url_key(httpx.URL(url))), []).extend(responses)
        return self

    def calls(self, method: str, url: str) -> list[httpx.Request]:
        key = url_key(httpx.URL(url))
        return [r for r in self.requests if r.method == method and url_key(r.url) == key]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, url_key(request.url))
        queue = self.routes.get(key)
        if not queue:
            raise AssertionError(f"Unexpected request: {key}")
        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        return entry(request) if callable(entry) else entry


def redirect(location: str, *cookies: str) -> Callable[[httpx.Request], httpx.Response]:
    """Response factory for a 302 with optional Set-Cookie headers."""

    def _respond(request: httpx.Request) -> httpx.Response:
        headers = [("Location", location)] + [("Set-Cookie", c) for c in cookies]
        return httpx.Response(302, headers=headers)

    return _respond


def page(html: str, status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def _respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, html=html)

    return _respond


def json_body(data, status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def _respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=data)

    return _respond


def status(code: int) -> Callable[[httpx.Request], httpx.Response]:
    def _respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(code)

    return _respond


@pytest.fixture
def endpoints() -> Endpoints:
    return ENDPOINTS


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def make_session(site):
    """Factory for sessions whose transport is the fake site."""

    def _make(logged_in: bool = False) -> Session:
        session = Session(SessionConfig(endpoints=ENDPOINTS), transport=httpx.MockTransport(site))
        session._is_login = logged_in
        return session

    return _make


@pytest.fixture
def load_fixture():
    """Factory fixture to load HTML fixtures as text."""

    def _load(name: str) -> str:
        return (FIXTURES_DIR / name).read_text(encoding="utf-8")

    return _load


@pytest.fixture
def login_page_html(load_fixture) -> str:
    return load_fixture("login_page.html")


@pytest.fixture
def card_landing_html(load_fixture) -> str:
    return load_fixture("card_landing.html")


@pytest.fixture
def page_ticket_html(load_fixture) -> str:
    return load_fixture("page_ticket.html")
