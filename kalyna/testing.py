import typing

import factory
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

DEFAULT_HEADERS: tuple[tuple[bytes, bytes], ...] = (
    (b"host", b"testserver"),
    (b"connection", b"close"),
    (b"user-agent", b"testclient"),
    (b"accept", b"*/*"),
)


def cookie_header(cookies: typing.Iterable[tuple[str, str]]) -> tuple[bytes, bytes]:
    """Build raw Cookie header from (name, value) pairs, order is preserved."""
    value = "; ".join(f"{name}={value}" for name, value in cookies)
    return b"cookie", value.encode("latin-1")


def _build_headers(resolver: typing.Any) -> tuple[tuple[bytes, bytes], ...]:
    if not resolver.cookies:
        return DEFAULT_HEADERS
    return DEFAULT_HEADERS + (cookie_header(resolver.cookies),)


class RequestScopeFactory(factory.DictFactory):
    type: str = "http"
    method: str = "GET"
    http_version: str = "1.1"
    server: tuple[str, int] = ("testserver", 80)
    client: tuple[str, int] = ("testclient", 80)
    scheme: str = "http"
    path: str = "/"
    raw_path: bytes = b"/"
    query_string: bytes = b""
    root_path: str = ""
    app: Starlette = factory.LazyFunction(
        lambda: Starlette(
            debug=False,
            routes=[Route("/", lambda request: Response("index"), name="home")],
        )
    )
    session: dict[str, typing.Any] = factory.LazyFunction(dict)
    state: dict[str, typing.Any] = factory.LazyFunction(dict)
    headers: tuple[tuple[bytes, bytes], ...] = factory.LazyAttribute(_build_headers)

    class Params:
        cookies: typing.Sequence[tuple[str, str]] = ()


class RequestFactory(factory.Factory):
    scope: factory.SubFactory = factory.SubFactory(RequestScopeFactory)

    class Meta:
        model = Request
