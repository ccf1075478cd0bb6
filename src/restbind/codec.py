"""Typed conversion between JSON-compatible data and Python values.

``decode_value`` populates a fresh instance of a declared type from parsed
JSON (the body parameter of a handler, or a client-side response);
``encode_value`` turns handler results into data ``json.dumps`` accepts.

Decoding rules:

- Dataclass fields are looked up by exact name first, then
  case-insensitively, so ``{"Message": "hi"}`` populates ``message``.
  Unknown keys are ignored. A missing field uses its dataclass default;
  a missing field without a default is an error.
- ``int`` accepts JSON integers only; ``float`` accepts integers and
  floats; ``bool`` is never accepted where a number is expected.
- The width-specific path kinds (``Int8``, ``Uint32``, ...) are range
  checked.
- ``Optional[T]`` and ``T | None`` accept ``null``. Other unions try each
  member in declaration order.

Every failure raises ``DecodeError`` naming the JSON location, e.g.
``$.items[2].price: expected float, got str``.
"""

import dataclasses
import enum
import types
import typing
from collections.abc import Mapping, Sequence
from typing import Any

from restbind.errors import DecodeError, ErrorResponse
from restbind.routing.params import lookup_kind


def decode_value(target: Any, data: Any, where: str = "$") -> Any:
    """Convert parsed JSON *data* into an instance of *target*."""
    if target is Any or target is object:
        return data

    if target is None or target is type(None):
        if data is not None:
            _mismatch(where, "null", data)
        return None

    supertype = getattr(target, "__supertype__", None)
    if supertype is not None:
        return _decode_newtype(target, supertype, data, where)

    origin = typing.get_origin(target)
    if origin is typing.Union or origin is types.UnionType:
        return _decode_union(typing.get_args(target), data, where)
    if origin is typing.Annotated:
        return decode_value(typing.get_args(target)[0], data, where)
    if origin is not None:
        return _decode_generic(origin, typing.get_args(target), data, where)

    if not isinstance(target, type):
        msg = f"{where}: cannot decode into {target!r}"
        raise DecodeError(msg)

    if dataclasses.is_dataclass(target):
        return _decode_dataclass(target, data, where)
    if issubclass(target, enum.Enum):
        try:
            return target(data)
        except ValueError:
            msg = f"{where}: {data!r} is not a valid {target.__name__}"
            raise DecodeError(msg) from None
    if target is bool:
        if not isinstance(data, bool):
            _mismatch(where, "bool", data)
        return data
    if target is int:
        if isinstance(data, bool) or not isinstance(data, int):
            _mismatch(where, "int", data)
        return data
    if target is float:
        if isinstance(data, bool) or not isinstance(data, (int, float)):
            _mismatch(where, "float", data)
        return float(data)
    if target is str:
        if not isinstance(data, str):
            _mismatch(where, "str", data)
        return data
    if target is list or target is dict:
        if not isinstance(data, target):
            _mismatch(where, target.__name__, data)
        return data

    msg = f"{where}: cannot decode into {target.__name__}"
    raise DecodeError(msg)


def _decode_newtype(target: Any, supertype: Any, data: Any, where: str) -> Any:
    value = decode_value(supertype, data, where)
    kind = lookup_kind(target)
    bounds = kind.bounds if kind is not None else None
    if bounds is not None and not bounds[0] <= value <= bounds[1]:
        msg = f"{where}: {value} out of range for {kind.name}"  # type: ignore[union-attr]
        raise DecodeError(msg)
    return value


def _decode_union(members: tuple[Any, ...], data: Any, where: str) -> Any:
    if data is None and type(None) in members:
        return None
    errors: list[str] = []
    for member in members:
        if member is type(None):
            continue
        try:
            return decode_value(member, data, where)
        except DecodeError as exc:
            errors.append(str(exc))
    msg = "; ".join(errors) or f"{where}: no union member accepts {data!r}"
    raise DecodeError(msg)


def _decode_generic(origin: Any, args: tuple[Any, ...], data: Any, where: str) -> Any:
    if origin in (list, Sequence):
        if not isinstance(data, list):
            _mismatch(where, "list", data)
        item = args[0] if args else Any
        return [decode_value(item, v, f"{where}[{i}]") for i, v in enumerate(data)]

    if origin is tuple:
        if not isinstance(data, list):
            _mismatch(where, "list", data)
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(decode_value(args[0], v, f"{where}[{i}]") for i, v in enumerate(data))
        if len(args) != len(data):
            msg = f"{where}: expected {len(args)} items, got {len(data)}"
            raise DecodeError(msg)
        return tuple(
            decode_value(t, v, f"{where}[{i}]") for i, (t, v) in enumerate(zip(args, data))
        )

    if origin in (dict, Mapping):
        if not isinstance(data, dict):
            _mismatch(where, "object", data)
        value_type = args[1] if len(args) == 2 else Any
        return {k: decode_value(value_type, v, f"{where}.{k}") for k, v in data.items()}

    msg = f"{where}: cannot decode into {getattr(origin, '__name__', origin)!s}"
    raise DecodeError(msg)


def _decode_dataclass(cls: type, data: Any, where: str) -> Any:
    if not isinstance(data, dict):
        _mismatch(where, "object", data)

    hints = typing.get_type_hints(cls)
    folded = {k.lower(): k for k in data}
    kwargs: dict[str, Any] = {}

    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        key = f.name if f.name in data else folded.get(f.name.lower())
        if key is None:
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                msg = f"{where}: missing required field {f.name!r}"
                raise DecodeError(msg)
            continue
        kwargs[f.name] = decode_value(hints.get(f.name, Any), data[key], f"{where}.{f.name}")

    return cls(**kwargs)


def _mismatch(where: str, expected: str, data: Any) -> typing.NoReturn:
    actual = "null" if data is None else type(data).__name__
    msg = f"{where}: expected {expected}, got {actual}"
    raise DecodeError(msg)


def encode_value(value: Any) -> Any:
    """``json.dumps`` hook for values the stdlib encoder rejects.

    Usage::

        json.dumps(body, default=encode_value)
    """
    if isinstance(value, ErrorResponse):
        return value.to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return list(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)
