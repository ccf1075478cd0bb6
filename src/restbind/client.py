"""Typed HTTP client speaking the same protocol as the server.

Bodies are encoded with the protocol's ``encode_client_request`` and
results decoded with ``decode_client_response``. An error status raises
the server's ``ErrorResponse``, so client code handles server errors with
the same type handlers raise::

    async with Client("http://localhost:8000") as client:
        reply = await client.post("/request_body", Message("hello"), Message)
        try:
            await client.get("/custom_error")
        except ErrorResponse as exc:
            assert exc.status == 400

Uses ``httpx.AsyncClient``; pass ``transport=httpx.ASGITransport(app)``
to talk to an app in-process.
"""

from typing import Any, TypeVar, overload

import httpx

from restbind.protocol import ClientProtocol, JSONProtocol

T = TypeVar("T")


class Client:
    """Async client for a restbind API."""

    __slots__ = ("_client", "protocol")

    def __init__(
        self,
        base_url: str,
        *,
        protocol: ClientProtocol | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = 30.0,
    ) -> None:
        self.protocol: ClientProtocol = protocol if protocol is not None else JSONProtocol()
        self._client = httpx.AsyncClient(
            base_url=base_url,
            transport=transport,
            headers=headers,
            timeout=timeout,
        )

    async def __aenter__(self) -> "Client":
        await self._client.__aenter__()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self._client.__aexit__(*args)

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    @overload
    async def request(self, method: str, path: str, body: Any = ..., result: None = ...) -> None: ...

    @overload
    async def request(self, method: str, path: str, body: Any, result: type[T]) -> T: ...

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        result: Any = None,
    ) -> Any:
        """Send *body* to *path* and decode the response into *result*.

        Raises:
            ErrorResponse: The server answered with an error status.
            DecodeError: The response body could not be decoded.
        """
        request = self._client.build_request(method.upper(), path)
        request = self.protocol.encode_client_request(request, body)
        response = await self._client.send(request)
        return self.protocol.decode_client_response(response, result)

    async def get(self, path: str, result: Any = None) -> Any:
        """GET *path*, decoding the response into *result*."""
        return await self.request("GET", path, None, result)

    async def post(self, path: str, body: Any = None, result: Any = None) -> Any:
        """POST *body* to *path*, decoding the response into *result*."""
        return await self.request("POST", path, body, result)

    async def put(self, path: str, body: Any = None, result: Any = None) -> Any:
        """PUT *body* to *path*, decoding the response into *result*."""
        return await self.request("PUT", path, body, result)

    async def patch(self, path: str, body: Any = None, result: Any = None) -> Any:
        """PATCH *body* to *path*, decoding the response into *result*."""
        return await self.request("PATCH", path, body, result)

    async def delete(self, path: str, result: Any = None) -> Any:
        """DELETE *path*, decoding the response into *result*."""
        return await self.request("DELETE", path, None, result)
