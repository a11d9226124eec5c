import asyncio
import json

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from main import app
from services.api_gateway import ApiGateway
from services.session_store import SessionStore
from services.tab_context import TabContext

API_BASE_URL = "http://api.test/api"
APP_BASE_URL = "http://app.test"
REDIRECT_URI = f"{APP_BASE_URL}/connections"


class FakeSocialBugApi:
    """Remote API stand-in served through httpx.MockTransport."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def on(self, method, path, handler=None, *, status=200, json_body=None, text=None):
        """Register a route; handler(request) may be sync or async and return an httpx.Response."""
        if handler is None:
            def handler(request, _status=status, _json=json_body, _text=text):
                if _text is not None:
                    return httpx.Response(_status, text=_text)
                if _json is None:
                    return httpx.Response(_status)
                return httpx.Response(_status, json=_json)
        self.routes[(method.upper(), f"/api{path}")] = handler

    def calls_to(self, method, path):
        return [call for call in self.calls if call.method == method.upper() and call.url.path == f"/api{path}"]

    def call_paths(self):
        return [(call.method, call.url.path.removeprefix("/api")) for call in self.calls]

    async def __call__(self, request):
        self.calls.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, text="Not Found")
        response = handler(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response


def request_json(request):
    return json.loads(request.content.decode() or "null")


def page_payload(content, number=0, total_pages=1, **extra):
    payload = {
        "content": content,
        "number": number,
        "totalPages": total_pages,
        "totalElements": len(content),
        "first": number == 0,
        "last": number + 1 >= total_pages,
    }
    payload.update(extra)
    return payload


@pytest.fixture
def session_db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'session.db'}"


@pytest.fixture
def store(session_db_url):
    return SessionStore.from_url(session_db_url, secret="test-secret-for-session-store")


@pytest.fixture
def fake_api():
    return FakeSocialBugApi()


@pytest_asyncio.fixture
async def gateway(store, fake_api):
    gateway = ApiGateway(store, API_BASE_URL, transport=httpx.MockTransport(fake_api))
    yield gateway
    await gateway.aclose()


@pytest.fixture
def signed_in(store):
    store.set("tok-123")
    return store


@pytest_asyncio.fixture
async def tab(store, gateway):
    tab = TabContext(store, gateway, REDIRECT_URI)
    yield tab
    tab.reset()


@pytest_asyncio.fixture
async def client(tab):
    previous = getattr(app.state, "tab", None)
    app.state.tab = tab
    async with AsyncClient(transport=ASGITransport(app=app), base_url=APP_BASE_URL) as client:
        yield client
    app.state.tab = previous
