from __future__ import annotations

import dataclasses
import logging
import platform
import typing

import starlette
from starlette.applications import Starlette
from starlette.datastructures import State

from kalyna.config import Config

__all__ = [
    "AttributeEvent",
    "AttributeListener",
    "ObservableDict",
    "ObservableState",
    "context_info",
    "snapshot_attributes",
    "snapshot_init_parameters",
]

logger = logging.getLogger(__name__)

AttributeScope = typing.Literal["application", "session"]
AttributeSource = typing.Mapping[str, typing.Any] | State


def _as_mapping(source: AttributeSource) -> typing.Mapping[str, typing.Any]:
    if isinstance(source, State):
        return typing.cast(dict[str, typing.Any], source._state)
    return source


def snapshot_attributes(source: AttributeSource | None) -> dict[str, typing.Any]:
    """Copy all attributes of the application state or a session, sorted by name."""
    if not source:
        return {}
    mapping = _as_mapping(source)
    return {name: mapping[name] for name in sorted(mapping, key=str)}


def snapshot_init_parameters(config: Config | None) -> dict[str, str]:
    if config is None:
        return {}
    parameters = config.init_parameters
    return {name: parameters[name] for name in sorted(parameters)}


def context_info(app: Starlette, root_path: str = "") -> dict[str, typing.Any]:
    """Describe the application and the server it runs on."""
    return {
        "application": f"{app.__class__.__module__}.{app.__class__.__qualname__}",
        "server_info": f"starlette/{starlette.__version__}",
        "python": f"{platform.python_implementation()} {platform.python_version()}",
        "root_path": root_path,
        "debug": app.debug,
    }


@dataclasses.dataclass(frozen=True)
class AttributeEvent:
    """
    Describes a change of application or session attribute.

    For replaced attributes `value` holds the previous value.
    `source` is the attribute store after the change.
    """

    name: str
    value: typing.Any
    source: typing.Mapping[str, typing.Any]
    scope: AttributeScope


class AttributeListener(typing.Protocol):  # pragma: no cover
    def attribute_added(self, event: AttributeEvent) -> None: ...

    def attribute_removed(self, event: AttributeEvent) -> None: ...

    def attribute_replaced(self, event: AttributeEvent) -> None: ...


_EventKind = typing.Literal["added", "removed", "replaced"]


def _notify(
    listeners: typing.Iterable[AttributeListener],
    kind: _EventKind,
    event: AttributeEvent,
) -> None:
    for listener in listeners:
        try:
            getattr(listener, f"attribute_{kind}")(event)
        except Exception:
            logger.warning(
                "Attribute listener %r failed on %s attribute %s.",
                listener,
                kind,
                event.name,
                exc_info=True,
            )


class ObservableState(State):
    """Application state which notifies listeners when attributes change."""

    _listeners: list[AttributeListener]

    def __init__(
        self,
        state: dict[str, typing.Any] | None = None,
        listeners: typing.Iterable[AttributeListener] = (),
    ) -> None:
        super().__init__(state)
        object.__setattr__(self, "_listeners", list(listeners))

    def add_listener(self, listener: AttributeListener) -> None:
        self._listeners.append(listener)

    def __setattr__(self, key: typing.Any, value: typing.Any) -> None:
        exists = key in self._state
        previous = self._state.get(key)
        super().__setattr__(key, value)
        if exists:
            self._emit("replaced", key, previous)
        else:
            self._emit("added", key, value)

    def __delattr__(self, key: typing.Any) -> None:
        value = self._state.get(key)
        super().__delattr__(key)
        self._emit("removed", key, value)

    def _emit(self, kind: _EventKind, name: str, value: typing.Any) -> None:
        if self._listeners:
            _notify(self._listeners, kind, AttributeEvent(name, value, self._state, "application"))


class ObservableDict(dict[str, typing.Any]):
    """
    A dictionary which notifies listeners when items change.

    Used as session storage, data given to the constructor does not produce events.
    """

    def __init__(
        self,
        data: typing.Mapping[str, typing.Any] | None = None,
        *,
        listeners: typing.Iterable[AttributeListener] = (),
        scope: AttributeScope = "session",
    ) -> None:
        super().__init__(data or {})
        self.listeners = list(listeners)
        self.scope = scope

    def _emit(self, kind: _EventKind, name: str, value: typing.Any) -> None:
        if self.listeners:
            _notify(self.listeners, kind, AttributeEvent(name, value, self, self.scope))

    def __setitem__(self, key: str, value: typing.Any) -> None:
        exists = key in self
        previous = self.get(key)
        super().__setitem__(key, value)
        if exists:
            self._emit("replaced", key, previous)
        else:
            self._emit("added", key, value)

    def __delitem__(self, key: str) -> None:
        value = self[key]
        super().__delitem__(key)
        self._emit("removed", key, value)

    def pop(self, key: str, *args: typing.Any) -> typing.Any:
        exists = key in self
        value = super().pop(key, *args)
        if exists:
            self._emit("removed", key, value)
        return value

    def popitem(self) -> tuple[str, typing.Any]:
        key, value = super().popitem()
        self._emit("removed", key, value)
        return key, value

    def setdefault(self, key: str, default: typing.Any = None) -> typing.Any:
        if key not in self:
            self[key] = default
        return self[key]

    def update(self, *args: typing.Any, **kwargs: typing.Any) -> None:  # type: ignore[override]
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def clear(self) -> None:
        while self:
            self.popitem()

    def __ior__(self, other: typing.Any) -> ObservableDict:  # type: ignore[override,misc]
        self.update(other)
        return self
