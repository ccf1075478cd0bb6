"""restbind exception hierarchy.

Shared across the router, the handler adapter, the protocols, and the
client so every module raises and catches the same types.

Two families matter:

- ``ConfigurationError`` is raised while routes are registered. It means
  a handler was declared incorrectly and is never recoverable at runtime.
- ``ErrorResponse`` is raised while a request is served. It carries the
  HTTP status it should produce and doubles as the wire payload of error
  responses.
"""

from dataclasses import dataclass
from typing import Any


class RestbindError(Exception):
    """Base for all restbind-specific errors."""


class ConfigurationError(RestbindError):
    """Raised when a route cannot be registered.

    Unsupported parameter types, parameters with no binding source, and
    unsupported return annotations all end up here.
    """


class BindError(RestbindError):
    """A path segment could not be converted to its declared type."""


class DecodeError(RestbindError):
    """A payload could not be decoded into the requested type."""


@dataclass(frozen=True, slots=True)
class ErrorResponse(RestbindError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers to choose the status of an error response, and by
    the client when the server answers with an error status.
    """

    status: int
    message: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        return f"{self.status}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Wire shape of an error body."""
        return {"status": self.status, "message": self.message}


def error(status: int, message: str) -> ErrorResponse:
    """Create a new HTTP error response."""
    return ErrorResponse(status=status, message=message)


def errorf(status: int, fmt: str, *args: object) -> ErrorResponse:
    """Create a new HTTP error response with %-style formatting."""
    return ErrorResponse(status=status, message=fmt % args if args else fmt)


class NotFound(ErrorResponse):  # noqa: N818
    """404 — no route matched the request path."""

    def __init__(self, message: str = "Not Found") -> None:
        super().__init__(status=404, message=message)


class MethodNotAllowed(ErrorResponse):  # noqa: N818
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], message: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        super().__init__(
            status=405,
            message=message or f"Method not allowed. Allowed methods: {allow_value}",
            headers=(("Allow", allow_value),),
        )
