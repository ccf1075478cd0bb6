"""Tests for restbind.protocol — JSONProtocol server and client sides."""

import json
from dataclasses import dataclass

import httpx
import pytest

from restbind.context import Context
from restbind.errors import DecodeError, ErrorResponse, MethodNotAllowed, error
from restbind.http.request import Request
from restbind.protocol import JSONProtocol, default_status


@dataclass
class Message:
    message: str


def _request(method: str = "GET", body: bytes = b"") -> Request:
    sent = False

    async def receive() -> dict[str, object]:
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    scope = {"type": "http", "method": method, "path": "/", "headers": []}
    return Request.from_asgi(scope, receive, context=Context())


class TestDefaultStatus:
    def test_post_with_body(self) -> None:
        assert default_status("POST", {"a": 1}) == 201

    def test_post_without_body(self) -> None:
        assert default_status("POST", None) == 204

    def test_get_with_body(self) -> None:
        assert default_status("GET", []) == 200

    def test_get_without_body(self) -> None:
        assert default_status("GET", None) == 204

    def test_falsy_body_is_still_a_body(self) -> None:
        assert default_status("PUT", 0) == 200


class TestEncodeResponse:
    @pytest.mark.asyncio
    async def test_body_with_default_status(self) -> None:
        response = JSONProtocol().encode_response(_request("POST"), 0, None, Message("hi"))
        assert response.status == 201
        assert response.content_type == "application/json"
        assert response.json() == {"message": "hi"}

    @pytest.mark.asyncio
    async def test_explicit_status_without_body(self) -> None:
        response = JSONProtocol().encode_response(_request(), 418, None, None)
        assert response.status == 418
        assert response.body == b""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [float("nan"), float("inf"), -float("inf")])
    async def test_non_finite_float_is_rejected(self, value: float) -> None:
        with pytest.raises(ValueError, match="not JSON compliant"):
            JSONProtocol().encode_response(_request(), 0, None, {"v": value})

    @pytest.mark.asyncio
    async def test_plain_error_defaults_to_500(self) -> None:
        response = JSONProtocol().encode_response(_request(), 0, ValueError("boom"), None)
        assert response.status == 500
        assert response.json() == {"status": 500, "message": "boom"}

    @pytest.mark.asyncio
    async def test_plain_error_uses_given_status(self) -> None:
        response = JSONProtocol().encode_response(_request(), 422, ValueError("bad"), None)
        assert response.status == 422
        assert response.json() == {"status": 422, "message": "bad"}

    @pytest.mark.asyncio
    async def test_structured_error_keeps_its_status(self) -> None:
        response = JSONProtocol().encode_response(_request(), 422, error(409, "taken"), None)
        assert response.status == 409
        assert response.json() == {"status": 409, "message": "taken"}

    @pytest.mark.asyncio
    async def test_error_headers_are_copied(self) -> None:
        err = MethodNotAllowed(frozenset({"GET", "POST"}))
        response = JSONProtocol().encode_response(_request(), 0, err, None)
        assert response.status == 405
        assert response.header("allow") == "GET, POST"


class TestDecodeRequest:
    @pytest.mark.asyncio
    async def test_decodes_into_new_instance(self) -> None:
        value = await JSONProtocol().decode_request(
            _request("POST", b'{"message": "hi"}'), Message
        )
        assert value == Message("hi")

    @pytest.mark.asyncio
    async def test_empty_body(self) -> None:
        with pytest.raises(DecodeError, match="empty"):
            await JSONProtocol().decode_request(_request("POST", b"  "), Message)

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        with pytest.raises(DecodeError, match="invalid JSON"):
            await JSONProtocol().decode_request(_request("POST", b"{"), Message)

    @pytest.mark.asyncio
    async def test_shape_mismatch(self) -> None:
        with pytest.raises(DecodeError):
            await JSONProtocol().decode_request(_request("POST", b'"hi"'), Message)


class TestClientSide:
    def test_encode_none_is_noop(self) -> None:
        request = httpx.Request("GET", "http://testserver/x")
        assert JSONProtocol().encode_client_request(request, None) is request

    def test_encode_body(self) -> None:
        request = httpx.Request("POST", "http://testserver/x", headers={"X-Token": "abc"})
        encoded = JSONProtocol().encode_client_request(request, Message("hi"))
        assert encoded.method == "POST"
        assert encoded.url == request.url
        assert encoded.headers["content-type"] == "application/json"
        assert encoded.headers["accept"] == "application/json"
        assert encoded.headers["x-token"] == "abc"
        assert json.loads(encoded.content) == {"message": "hi"}

    def test_decode_success(self) -> None:
        response = httpx.Response(201, json={"message": "hi"})
        assert JSONProtocol().decode_client_response(response, Message) == Message("hi")

    def test_decode_no_content(self) -> None:
        assert JSONProtocol().decode_client_response(httpx.Response(204), Message) is None

    def test_decode_without_target(self) -> None:
        response = httpx.Response(200, json={"message": "hi"})
        assert JSONProtocol().decode_client_response(response, None) is None

    def test_decode_error_raises_error_response(self) -> None:
        response = httpx.Response(400, json={"status": 400, "message": "custom error"})
        with pytest.raises(ErrorResponse) as exc_info:
            JSONProtocol().decode_client_response(response, Message)
        assert exc_info.value.status == 400
        assert exc_info.value.message == "custom error"

    def test_decode_empty_error(self) -> None:
        with pytest.raises(ErrorResponse) as exc_info:
            JSONProtocol().decode_client_response(httpx.Response(418), None)
        assert exc_info.value.status == 418
        assert exc_info.value.message == "I'm a teapot"

    def test_decode_malformed_error(self) -> None:
        with pytest.raises(DecodeError):
            JSONProtocol().decode_client_response(httpx.Response(502, text="Bad Gateway"), None)

    def test_decode_malformed_success(self) -> None:
        with pytest.raises(DecodeError):
            JSONProtocol().decode_client_response(httpx.Response(200, text="nope"), Message)
