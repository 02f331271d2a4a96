from __future__ import annotations

import contextlib
import typing

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.routing import BaseRoute
from starlette.types import ExceptionHandler, Lifespan

from kalyna.attributes import AttributeListener, ObservableState
from kalyna.config import Config
from kalyna.listeners import ContextLoggingListener


def multi_lifespan(*lifespan: Lifespan[typing.Any]) -> Lifespan[typing.Any]:
    """Combine several lifespan handlers into one. Handlers exit in reverse order."""

    @contextlib.asynccontextmanager
    async def handler(app: Starlette) -> typing.AsyncGenerator[dict[str, typing.Any], None]:
        async with contextlib.AsyncExitStack() as stack:
            combined = {}
            for ls in lifespan:
                state = await stack.enter_async_context(ls(app))  # type: ignore[arg-type]
                if state:
                    combined.update(state)
            yield combined

    return handler


class Kalyna(Starlette):
    """
    A Starlette application with observable state.

    Changes of `app.state` attributes are reported to `state_listeners`.
    When `log_context` is enabled, startup and shutdown are logged by `ContextLoggingListener`.
    """

    state: ObservableState

    def __init__(
        self,
        debug: bool = False,
        routes: typing.Sequence[BaseRoute] = (),
        middleware: typing.Sequence[Middleware] = (),
        exception_handlers: typing.Mapping[typing.Any, ExceptionHandler] | None = None,
        lifespan: typing.Sequence[Lifespan[Kalyna]] = (),
        config: Config | None = None,
        state: typing.Mapping[str, typing.Any] | None = None,
        state_listeners: typing.Sequence[AttributeListener] = (),
        log_context: bool = True,
    ) -> None:
        self.config = config or Config()
        handlers = list(lifespan)
        if log_context:
            handlers.insert(0, ContextLoggingListener(self.config))

        super().__init__(
            debug,
            routes=routes,
            middleware=middleware,
            exception_handlers=exception_handlers,
            lifespan=multi_lifespan(*handlers),
        )
        self.state = ObservableState(dict(state or {}), listeners=state_listeners)
