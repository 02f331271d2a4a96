from __future__ import annotations

import typing

from starlette.datastructures import MutableHeaders
from starlette.middleware import Middleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from kalyna.attributes import AttributeListener, ObservableDict
from kalyna.responses import apply_cache_header, apply_no_cache_headers

__all__ = [
    "Middleware",
    "CacheControlMiddleware",
    "SessionAttributeMiddleware",
]


class CacheControlMiddleware:
    """
    Set cache headers on responses which have not set Cache-Control.

    When max_age is None or not positive, caching is forbidden with Cache-Control, Pragma and Expires headers.
    """

    def __init__(self, app: ASGIApp, max_age: int | None = None) -> None:
        self.app = app
        self.max_age = max_age

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":  # pragma: no cover
            return await self.app(scope, receive, send)

        async def sender(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                if "cache-control" not in headers:
                    if self.max_age is None or self.max_age <= 0:
                        apply_no_cache_headers(headers)
                    else:
                        apply_cache_header(headers, self.max_age)
            await send(message)

        await self.app(scope, receive, sender)


class SessionAttributeMiddleware:
    """
    Notify listeners about session attribute changes.

    Must be placed after (inside) the session middleware.
    """

    def __init__(self, app: ASGIApp, listeners: typing.Iterable[AttributeListener] = ()) -> None:
        self.app = app
        self.listeners = list(listeners)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):  # pragma: no cover
            return await self.app(scope, receive, send)

        assert "session" in scope, "SessionAttributeMiddleware requires SessionMiddleware installed."
        scope["session"] = ObservableDict(scope["session"], listeners=self.listeners, scope="session")
        await self.app(scope, receive, send)
