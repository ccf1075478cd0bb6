"""Path parameter kinds and their parsers.

A handler parameter bound to a named path segment declares how the
segment is parsed through its annotation::

    @app.get("/blocks/:height/:shard")
    def block(height: Uint64, shard: Int8) -> Block: ...

Supported annotations: ``str`` (verbatim), ``int`` (signed 64-bit),
``float`` (64-bit), and the width-specific markers below. Annotating a
path parameter with anything else fails at registration.

The markers are ``typing.NewType`` aliases, so at runtime a handler
receives a plain ``int`` or ``float``.
"""

import math
import re
import struct
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, NewType

from restbind.errors import BindError, ConfigurationError

Int8 = NewType("Int8", int)
Int16 = NewType("Int16", int)
Int32 = NewType("Int32", int)
Int64 = NewType("Int64", int)
Uint8 = NewType("Uint8", int)
Uint16 = NewType("Uint16", int)
Uint32 = NewType("Uint32", int)
Uint64 = NewType("Uint64", int)
Float32 = NewType("Float32", float)
Float64 = NewType("Float64", float)

_SIGNED_DIGITS = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_DIGITS = re.compile(r"[0-9]+")

FLOAT32_MAX: float = struct.unpack("<f", b"\xff\xff\x7f\x7f")[0]


@dataclass(frozen=True, slots=True)
class PathKind:
    """How one annotation's path segments are parsed.

    ``bits`` is the integer width, 0 for ``str`` and floats.
    """

    name: str
    parse: Callable[[str], Any]
    bits: int = 0
    signed: bool = True

    @property
    def bounds(self) -> tuple[int, int] | None:
        """Inclusive ``(min, max)`` for integer kinds, else None."""
        if not self.bits:
            return None
        if self.signed:
            return -(1 << (self.bits - 1)), (1 << (self.bits - 1)) - 1
        return 0, (1 << self.bits) - 1


def _integer_kind(name: str, bits: int, *, signed: bool = True) -> PathKind:
    pattern = _SIGNED_DIGITS if signed else _UNSIGNED_DIGITS

    def parse(value: str) -> int:
        if not pattern.fullmatch(value):
            msg = "invalid syntax"
            raise ValueError(msg)
        n = int(value)
        lo, hi = kind.bounds  # type: ignore[misc]
        if n < lo or n > hi:
            msg = f"value out of range [{lo}, {hi}]"
            raise ValueError(msg)
        return n

    kind = PathKind(name, parse, bits=bits, signed=signed)
    return kind


def _float64(value: str) -> float:
    # float() also accepts surrounding whitespace and digit separators
    if value != value.strip() or "_" in value:
        msg = "invalid syntax"
        raise ValueError(msg)
    n = float(value)
    if math.isinf(n) and "inf" not in value.lower():
        msg = "value out of range for float64"
        raise ValueError(msg)
    return n


def _float32(value: str) -> float:
    n = _float64(value)
    if math.isfinite(n) and abs(n) > FLOAT32_MAX:
        msg = "value out of range for float32"
        raise ValueError(msg)
    return struct.unpack("<f", struct.pack("<f", n))[0]


def _verbatim(value: str) -> str:
    return value


PATH_KINDS: dict[Any, PathKind] = {
    str: PathKind("str", _verbatim),
    int: _integer_kind("int", 64),
    float: PathKind("float", _float64),
    Int8: _integer_kind("Int8", 8),
    Int16: _integer_kind("Int16", 16),
    Int32: _integer_kind("Int32", 32),
    Int64: _integer_kind("Int64", 64),
    Uint8: _integer_kind("Uint8", 8, signed=False),
    Uint16: _integer_kind("Uint16", 16, signed=False),
    Uint32: _integer_kind("Uint32", 32, signed=False),
    Uint64: _integer_kind("Uint64", 64, signed=False),
    Float32: PathKind("Float32", _float32),
    Float64: PathKind("Float64", _float64),
}


def lookup_kind(annotation: Any) -> PathKind | None:
    """Return the path kind registered for *annotation*, if any."""
    try:
        return PATH_KINDS.get(annotation)
    except TypeError:  # unhashable annotation
        return None


def parse_scalar(value: str, annotation: Any, *, param: str | None = None) -> Any:
    """Parse a path segment *value* as *annotation*.

    Raises ``BindError`` if the value does not parse or is out of range.
    Raises ``KeyError`` if *annotation* is not a supported path kind.
    """
    kind = PATH_KINDS[annotation]
    try:
        return kind.parse(value)
    except ValueError as exc:
        where = f"path parameter {param!r}: " if param else ""
        msg = f"{where}cannot parse {value!r} as {kind.name}: {exc}"
        raise BindError(msg) from exc


def path_param_binder(annotation: Any, name: str) -> Callable[..., Any]:
    """Build the binder for path segment *name* parsed as *annotation*.

    Raises ``ConfigurationError`` for annotations with no parser.
    """
    if lookup_kind(annotation) is None:
        label = getattr(annotation, "__name__", repr(annotation))
        msg = f"unsupported path parameter type {label} for parameter {name!r}"
        raise ConfigurationError(msg)

    async def bind(request: Any) -> Any:
        return parse_scalar(request.path_params[name], annotation, param=name)

    return bind
