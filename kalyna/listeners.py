"""
Listeners which write application and session attribute changes to the log.

Listeners only log. They never modify attributes and never raise: failures are
reported to the log and dropped, so that logging cannot break the operation
which triggered the event.
"""

from __future__ import annotations

import contextlib
import logging
import typing

from starlette.applications import Starlette

from kalyna.attributes import AttributeEvent, context_info, snapshot_attributes, snapshot_init_parameters
from kalyna.config import Config
from kalyna.json import dumps_for_log

__all__ = [
    "ContextAttributeLoggingListener",
    "ContextLoggingListener",
    "SessionAttributeLoggingListener",
]

logger = logging.getLogger(__name__)

_DIRECTIONS = {
    "added": "added to",
    "removed": "removed from",
    "replaced": "replaced in",
}


class _AttributeLoggingListener:
    level: int = logging.INFO
    logger: logging.Logger = logger

    def __init__(self, exclude: typing.Iterable[str] = ()) -> None:
        self.exclude = frozenset(exclude)

    def attribute_added(self, event: AttributeEvent) -> None:
        if event.name in self.exclude:
            return
        self._log("added", event)

    def attribute_removed(self, event: AttributeEvent) -> None:
        self._log("removed", event)

    def attribute_replaced(self, event: AttributeEvent) -> None:
        self._log("replaced", event)

    def _log(self, kind: str, event: AttributeEvent) -> None:
        if not self.logger.isEnabledFor(self.level):
            return

        try:
            self.logger.log(
                self.level,
                "name:[%s],value:[%s] %s [%s], now %s attributes:[%s]",
                event.name,
                dumps_for_log(event.value),
                _DIRECTIONS[kind],
                event.scope,
                event.scope,
                dumps_for_log(snapshot_attributes(event.source)),
            )
        except Exception:
            logger.warning("Cannot log %s attribute %s.", event.scope, event.name, exc_info=True)


class ContextAttributeLoggingListener(_AttributeLoggingListener):
    """Logs changes of application state attributes at INFO level."""

    level = logging.INFO
    logger = logging.getLogger(f"{__name__}.application")


class SessionAttributeLoggingListener(_AttributeLoggingListener):
    """Logs changes of session attributes at DEBUG level."""

    level = logging.DEBUG
    logger = logging.getLogger(f"{__name__}.session")


class ContextLoggingListener:
    """
    Lifespan handler which logs application startup and shutdown.

    Usage:
        app = Starlette(lifespan=ContextLoggingListener(config))
    """

    level = logging.INFO

    def __init__(self, config: Config | None = None, root_path: str = "") -> None:
        self.config = config
        self.root_path = root_path

    @contextlib.asynccontextmanager
    async def __call__(self, app: Starlette) -> typing.AsyncIterator[None]:
        self.context_initialized(app)
        try:
            yield
        finally:
            self.context_destroyed(app)

    def context_initialized(self, app: Starlette) -> None:
        if not logger.isEnabledFor(self.level):
            return

        try:
            logger.log(
                self.level,
                "application [initialized], base info:[%s], [attribute] info:[%s], [init parameter] info:[%s]",
                dumps_for_log(context_info(app, self.root_path)),
                dumps_for_log(snapshot_attributes(app.state)),
                dumps_for_log(snapshot_init_parameters(self._get_config(app))),
            )
        except Exception:
            logger.warning("Cannot log application startup.", exc_info=True)

    def context_destroyed(self, app: Starlette) -> None:
        if not logger.isEnabledFor(self.level):
            return

        try:
            logger.log(
                self.level,
                "application [destroyed] info:[%s]",
                dumps_for_log(context_info(app, self.root_path)),
            )
        except Exception:
            logger.warning("Cannot log application shutdown.", exc_info=True)

    def _get_config(self, app: Starlette) -> Config | None:
        if self.config is not None:
            return self.config
        config = getattr(app, "config", None)
        return config if isinstance(config, Config) else None
