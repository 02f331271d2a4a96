import collections.abc
import dataclasses
import datetime
import decimal
import enum
import json
import typing
import uuid

_type_to_encoder: dict[type, typing.Callable] = {
    uuid.UUID: str,
    datetime.timedelta: str,
    datetime.datetime: lambda x: x.isoformat(),
    datetime.date: lambda x: x.isoformat(),
    datetime.time: lambda x: x.isoformat(),
    set: list,
    frozenset: list,
    collections.abc.KeysView: list,
    collections.abc.ValuesView: list,
    decimal.Decimal: str,
    bytes: lambda x: x.decode(),
    enum.Enum: lambda x: x.value,
}


def json_default(o: typing.Any) -> typing.Any:
    """Usage: json.dumps(data, default=json_default)"""
    if hasattr(o, "to_json"):
        return o.to_json()

    if hasattr(o, "__json__"):
        return o.__json__()

    for type_class, encoder in _type_to_encoder.items():
        if isinstance(o, type_class):
            return encoder(o)

    if dataclasses.is_dataclass(o) and not isinstance(o, type):
        return dataclasses.asdict(o)

    raise TypeError(f"Object of type {o.__class__.__name__} is not JSON serializable")


def repr_default(o: typing.Any) -> typing.Any:
    """Like `json_default` but falls back to repr() for unknown objects."""
    try:
        return json_default(o)
    except TypeError:
        return repr(o)


def dumps(value: typing.Any, **kwargs: typing.Any) -> str:
    if "default" not in kwargs and "cls" not in kwargs:
        kwargs["default"] = json_default
    return json.dumps(value, **kwargs)


def dumps_for_log(value: typing.Any) -> str:
    """Serialize value for a log line. Never raises."""
    try:
        return json.dumps(value, default=repr_default, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(value)
