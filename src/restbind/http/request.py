"""Immutable HTTP request.

Frozen metadata with async body access. The handler adapter binds a
handler parameter annotated exactly ``Request`` to this object, and every
other binder reads from it.
"""

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field, replace
from typing import Any

from restbind._internal.asgi import Receive, Scope
from restbind.context import Context
from restbind.errors import ErrorResponse
from restbind.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is accessed asynchronously via ``.body()``, ``.json()``, ``.text()``.

    ``path_params`` holds the raw string values of the named segments
    captured by the router, keyed by segment name.
    """

    method: str
    path: str
    headers: Headers
    path_params: dict[str, str]
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None
    context: Context

    # Private: ASGI receive callable for body streaming
    _receive: Receive

    # Private: body size limit in bytes, None for unlimited
    _max_body_size: int | None = None

    # Private: mutable cache for the body
    # (dict contents are mutable even though the field reference is frozen)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        Result is cached — the ASGI receive is consumed once, then
        the same bytes are returned on subsequent calls.

        Raises:
            ErrorResponse: 413 if the body exceeds the configured limit.
        """
        if "_body" in self._cache:
            return self._cache["_body"]

        limit = self._max_body_size
        declared = self.content_length
        if limit is not None and declared is not None and declared > limit:
            raise self._too_large(limit)

        chunks: list[bytes] = []
        size = 0
        async for chunk in self.stream():
            size += len(chunk)
            if limit is not None and size > limit:
                raise self._too_large(limit)
            chunks.append(chunk)
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        """Parse the body as JSON."""
        import json as json_module

        raw = await self.body()
        return json_module.loads(raw)

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    @staticmethod
    def _too_large(limit: int) -> ErrorResponse:
        return ErrorResponse(413, f"request body exceeds {limit} bytes")

    # -- Derivation --

    def with_path_params(self, path_params: dict[str, str]) -> "Request":
        """Return a copy carrying *path_params*, sharing the body cache."""
        return replace(self, path_params=path_params, _cache=self._cache)

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: Scope,
        receive: Receive,
        *,
        context: Context,
        path_params: dict[str, str] | None = None,
        max_body_size: int | None = None,
    ) -> "Request":
        """Create a Request from an ASGI scope and receive callable."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(tuple(scope.get("headers", ()))),
            path_params=path_params or {},
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            context=context,
            _receive=receive,
            _max_body_size=max_body_size,
        )
