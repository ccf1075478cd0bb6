"""Handler return shapes.

A handler's return annotation decides, once at registration, how its
return value becomes a response:

====================================  ==================================
Annotation                            Response
====================================  ==================================
``-> None``                           no body, default status
``-> StatusCode``                     that status, no body
``-> tuple[T, StatusCode]``           first item as body, second as status
``-> Reply`` (or one variant)         the variant returned at runtime
anything else                         the value as body, default status
====================================  ==================================

Errors are raised, never returned. An ``ErrorResponse`` keeps its own
status; any other exception becomes a 500.

The variants below are the explicit form: a handler annotated ``-> Reply``
constructs one and the dispatcher unpacks it with ``match``.
"""

from dataclasses import dataclass
from typing import Any


class StatusCode(int):
    """An explicit HTTP status code returned by a handler.

    Subclasses ``int`` so ``StatusCode(418) == 418``. A handler annotated
    ``-> StatusCode`` may return a plain ``int``.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"StatusCode({int(self)})"


@dataclass(frozen=True, slots=True)
class NoBody:
    """No body; the protocol picks the status."""


@dataclass(frozen=True, slots=True)
class BodyOnly:
    """A body with the protocol's default status."""

    body: Any


@dataclass(frozen=True, slots=True)
class StatusOnly:
    """An explicit status with no body."""

    status: int


@dataclass(frozen=True, slots=True)
class BodyAndStatus:
    """A body with an explicit status."""

    body: Any
    status: int


type Reply = NoBody | BodyOnly | StatusOnly | BodyAndStatus

REPLY_TYPES: tuple[type, ...] = (NoBody, BodyOnly, StatusOnly, BodyAndStatus)


def unpack(reply: Reply) -> tuple[int, Any]:
    """Return ``(status, body)`` for *reply*; status 0 means "protocol default"."""
    match reply:
        case NoBody():
            return 0, None
        case BodyOnly(body=body):
            return 0, body
        case StatusOnly(status=status):
            return int(status), None
        case BodyAndStatus(body=body, status=status):
            return int(status), body
        case _:
            msg = f"expected a Reply variant, got {type(reply).__name__}"
            raise TypeError(msg)
