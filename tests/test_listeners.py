import logging
import pathlib

import pytest
from starlette.applications import Starlette
from starlette.testclient import TestClient

from kalyna.attributes import AttributeEvent, ObservableDict, ObservableState
from kalyna.config import Config
from kalyna.listeners import (
    ContextAttributeLoggingListener,
    ContextLoggingListener,
    SessionAttributeLoggingListener,
)


class Unserializable:
    def __repr__(self) -> str:
        return "<Unserializable>"


class BrokenRepr:
    def __repr__(self) -> str:
        raise RuntimeError("no repr")


def test_context_attribute_listener_logs_changes(caplog: pytest.LogCaptureFixture) -> None:
    state = ObservableState(listeners=[ContextAttributeLoggingListener()])
    with caplog.at_level(logging.INFO, logger="kalyna.listeners"):
        state.shop = "feilong"
        state.shop = "kalyna"
        del state.shop

    messages = [record.getMessage() for record in caplog.records]
    assert messages == [
        'name:[shop],value:["feilong"] added to [application], now application attributes:[{"shop": "feilong"}]',
        'name:[shop],value:["feilong"] replaced in [application], now application attributes:[{"shop": "kalyna"}]',
        'name:[shop],value:["kalyna"] removed from [application], now application attributes:[{}]',
    ]
    assert all(record.levelno == logging.INFO for record in caplog.records)


def test_context_attribute_listener_excludes_names(caplog: pytest.LogCaptureFixture) -> None:
    state = ObservableState(listeners=[ContextAttributeLoggingListener(exclude=["secret"])])
    with caplog.at_level(logging.INFO, logger="kalyna.listeners"):
        state.secret = "value"
    assert caplog.records == []


def test_context_attribute_listener_respects_log_level(caplog: pytest.LogCaptureFixture) -> None:
    state = ObservableState(listeners=[ContextAttributeLoggingListener()])
    with caplog.at_level(logging.WARNING, logger="kalyna.listeners"):
        state.shop = "feilong"
    assert caplog.records == []


def test_session_attribute_listener_logs_at_debug(caplog: pytest.LogCaptureFixture) -> None:
    session = ObservableDict(listeners=[SessionAttributeLoggingListener()])
    with caplog.at_level(logging.INFO, logger="kalyna.listeners"):
        session["user"] = "root"
    assert caplog.records == []

    with caplog.at_level(logging.DEBUG, logger="kalyna.listeners"):
        session["user"] = "admin"
    assert len(caplog.records) == 1
    assert caplog.records[0].levelno == logging.DEBUG
    assert caplog.records[0].name == "kalyna.listeners.session"
    assert "replaced in [session]" in caplog.records[0].getMessage()


def test_listener_formats_unserializable_values(caplog: pytest.LogCaptureFixture) -> None:
    state = ObservableState(listeners=[ContextAttributeLoggingListener()])
    with caplog.at_level(logging.INFO, logger="kalyna.listeners"):
        state.obj = Unserializable()
    assert '"<Unserializable>"' in caplog.text


def test_listener_never_raises(caplog: pytest.LogCaptureFixture) -> None:
    listener = ContextAttributeLoggingListener()
    event = AttributeEvent(name="broken", value=BrokenRepr(), source={}, scope="application")
    with caplog.at_level(logging.INFO, logger="kalyna.listeners"):
        listener.attribute_added(event)
    assert "Cannot log application attribute broken" in caplog.text


def test_context_logging_listener(caplog: pytest.LogCaptureFixture, tmp_path: pathlib.Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("SHOP_NAME=feilong\n")
    app = Starlette(lifespan=ContextLoggingListener(Config(env_files=[env_file]), root_path="/shop"))
    app.state.version = "1.0"

    with caplog.at_level(logging.INFO, logger="kalyna.listeners"):
        with TestClient(app):
            assert len(caplog.records) == 1
            started = caplog.records[0].getMessage()

    assert started.startswith("application [initialized]")
    assert '"root_path": "/shop"' in started
    assert '[attribute] info:[{"version": "1.0"}]' in started
    assert '[init parameter] info:[{"SHOP_NAME": "feilong"}]' in started

    assert len(caplog.records) == 2
    assert caplog.records[1].getMessage().startswith("application [destroyed] info:[")


def test_context_logging_listener_is_silent_when_disabled(caplog: pytest.LogCaptureFixture) -> None:
    app = Starlette(lifespan=ContextLoggingListener())
    with caplog.at_level(logging.WARNING, logger="kalyna.listeners"):
        with TestClient(app):
            pass
    assert caplog.records == []


@pytest.mark.asyncio
async def test_context_logging_listener_logs_shutdown_after_failure(caplog: pytest.LogCaptureFixture) -> None:
    app = Starlette()
    listener = ContextLoggingListener()

    with caplog.at_level(logging.INFO, logger="kalyna.listeners"):
        with pytest.raises(RuntimeError):
            async with listener(app):
                raise RuntimeError("boom")

    messages = [record.getMessage() for record in caplog.records]
    assert messages[0].startswith("application [initialized]")
    assert messages[-1].startswith("application [destroyed]")
