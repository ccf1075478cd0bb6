"""Wire protocol capabilities and the default JSON protocol.

The handler adapter never touches raw bytes. It asks a protocol to decode
request bodies and to encode results and errors into a ``Response``.
The client asks the same protocol to encode outgoing bodies and decode
server responses, so both sides agree on one wire format.

Each capability is a structural ``typing.Protocol``. A deployment that
only serves requests needs a ``ServerProtocol``; a typed client needs a
``ClientProtocol``. No base class required::

    class MsgPackProtocol:
        async def decode_request(self, request, target): ...
        def encode_response(self, request, status, error, body): ...

    app = App(protocol=MsgPackProtocol())
"""

import json
import typing
from typing import Any, TypeVar

import httpx

from restbind.codec import decode_value, encode_value
from restbind.errors import DecodeError, ErrorResponse
from restbind.http.request import Request
from restbind.http.response import Response

T = TypeVar("T")

JSON_CONTENT_TYPE = "application/json"


class RequestDecoder(typing.Protocol):
    """Used by the server to decode request bodies."""

    async def decode_request(self, request: Request, target: type[T]) -> T: ...


class ResponseEncoder(typing.Protocol):
    """Used by the server to encode results and errors."""

    def encode_response(
        self,
        request: Request,
        status: int,
        error: BaseException | None,
        body: Any,
    ) -> Response: ...


class ServerProtocol(RequestDecoder, ResponseEncoder, typing.Protocol):
    """The protocol a server conforms to."""


class ClientRequestEncoder(typing.Protocol):
    """Used by the client to encode request bodies."""

    def encode_client_request(self, request: httpx.Request, body: Any) -> httpx.Request: ...


class ClientResponseDecoder(typing.Protocol):
    """Used by the client to decode server responses."""

    def decode_client_response(self, response: httpx.Response, target: Any) -> Any: ...


class ClientProtocol(ClientRequestEncoder, ClientResponseDecoder, typing.Protocol):
    """The protocol a client conforms to."""


class Protocol(ServerProtocol, ClientProtocol, typing.Protocol):
    """Both client and server protocol."""


def default_status(method: str, body: Any) -> int:
    """Status for a successful response whose handler did not pick one.

    201 for a POST that produced a body, 204 when there is no body,
    200 otherwise.
    """
    if method == "POST" and body is not None:
        return 201
    if body is None:
        return 204
    return 200


class JSONProtocol:
    """JSON protocol with a ``{"status": ..., "message": ...}`` error format."""

    __slots__ = ()

    # -- Server side --

    async def decode_request(self, request: Request, target: type[T]) -> T:
        """Decode the request body as JSON into a new *target* instance."""
        raw = await request.body()
        if not raw.strip():
            msg = "request body is empty"
            raise DecodeError(msg)
        try:
            data = json.loads(raw)
        except ValueError as exc:
            msg = f"invalid JSON body: {exc}"
            raise DecodeError(msg) from exc
        return decode_value(target, data)

    def encode_response(
        self,
        request: Request,
        status: int,
        error: BaseException | None,
        body: Any,
    ) -> Response:
        """Encode *body* or *error* as a JSON response.

        A non-structured *error* becomes an ``ErrorResponse`` with *status*
        (500 when 0). A structured one keeps its own status and headers.
        """
        if error is not None:
            if isinstance(error, ErrorResponse):
                response = error
            else:
                response = ErrorResponse(status or 500, str(error))
            encoded = self.encode_response(request, response.status, None, response)
            for name, value in response.headers:
                encoded = encoded.with_header(name, value)
            return encoded

        if status == 0:
            status = default_status(request.method, body)

        # NaN and Infinity have no JSON spelling
        payload = b""
        if body is not None:
            payload = json.dumps(body, default=encode_value, allow_nan=False).encode("utf-8")
        return Response(body=payload, status=status, content_type=JSON_CONTENT_TYPE)

    # -- Client side --

    def encode_client_request(self, request: httpx.Request, body: Any) -> httpx.Request:
        """Return a copy of *request* carrying *body* as JSON. ``None`` is a no-op."""
        if body is None:
            return request
        headers = httpx.Headers(request.headers)
        headers["Content-Type"] = JSON_CONTENT_TYPE
        headers["Accept"] = JSON_CONTENT_TYPE
        headers.pop("Content-Length", None)
        return httpx.Request(
            request.method,
            request.url,
            headers=headers,
            content=json.dumps(body, default=encode_value, allow_nan=False).encode("utf-8"),
            extensions=request.extensions,
        )

    def decode_client_response(self, response: httpx.Response, target: Any) -> Any:
        """Decode a successful response into *target*, or raise its ``ErrorResponse``.

        A ``None`` target, or a success response with an empty body,
        decodes to ``None``. An error response without a body raises an
        ``ErrorResponse`` carrying the reason phrase.
        """
        if response.status_code < 400:
            if target is None or not response.content.strip():
                return None
            try:
                data = json.loads(response.content)
            except ValueError as exc:
                msg = f"invalid JSON response: {exc}"
                raise DecodeError(msg) from exc
            return decode_value(target, data)

        if not response.content.strip():
            raise ErrorResponse(response.status_code, response.reason_phrase)
        try:
            data = json.loads(response.content)
        except ValueError as exc:
            msg = f"invalid JSON error response ({response.status_code}): {exc}"
            raise DecodeError(msg) from exc
        raise decode_value(ErrorResponse, data)
