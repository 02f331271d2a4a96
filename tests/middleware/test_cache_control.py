from starlette.responses import PlainTextResponse
from starlette.testclient import TestClient
from starlette.types import Receive, Scope, Send

from kalyna.middleware import CacheControlMiddleware


async def app(scope: Scope, receive: Receive, send: Send) -> None:
    await PlainTextResponse("ok")(scope, receive, send)


async def cached_app(scope: Scope, receive: Receive, send: Send) -> None:
    await PlainTextResponse("ok", headers={"cache-control": "public, max-age=600"})(scope, receive, send)


def test_forbids_caching_by_default() -> None:
    client = TestClient(CacheControlMiddleware(app))
    response = client.get("/")
    assert response.headers["cache-control"] == "no-cache, no-store, max-age=0"
    assert response.headers["pragma"] == "no-cache, no-store"
    assert response.headers["expires"] == "Thu, 01 Jan 1970 00:00:00 GMT"


def test_sets_max_age() -> None:
    client = TestClient(CacheControlMiddleware(app, max_age=3600))
    response = client.get("/")
    assert response.headers["cache-control"] == "max-age=3600"
    assert "pragma" not in response.headers


def test_keeps_cache_control_set_by_response() -> None:
    client = TestClient(CacheControlMiddleware(cached_app))
    response = client.get("/")
    assert response.headers["cache-control"] == "public, max-age=600"
    assert "pragma" not in response.headers
