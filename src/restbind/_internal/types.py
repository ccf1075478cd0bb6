"""Shared type aliases used across restbind modules."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from restbind.http.request import Request
    from restbind.http.response import Response

# Route handler: user-defined function with variable signature
Handler: TypeAlias = Callable[..., Any]

# Binder: produces one handler argument from an incoming request
Binder: TypeAlias = Callable[["Request"], Awaitable[Any]]

# Dispatcher: the generated per-route request handler
Dispatcher: TypeAlias = Callable[["Request"], Awaitable["Response"]]
