"""Tests for restbind.server.sender response emission rules."""

import pytest

from restbind.http.response import Response
from restbind.server.sender import send_response


async def _send(response: Response, *, head: bool = False) -> list[dict]:
    messages: list[dict] = []

    async def send(message: dict) -> None:
        messages.append(message)

    await send_response(response, send, head=head)
    return messages


class TestSendResponse:
    @pytest.mark.asyncio
    async def test_200_preserves_body(self) -> None:
        messages = await _send(Response(b'{"ok": true}'))

        assert messages[0]["type"] == "http.response.start"
        assert messages[0]["status"] == 200
        headers = dict(messages[0]["headers"])
        assert headers[b"content-type"] == b"application/json"
        assert headers[b"content-length"] == b"12"

        assert messages[1]["type"] == "http.response.body"
        assert messages[1]["body"] == b'{"ok": true}'

    @pytest.mark.asyncio
    async def test_exactly_two_messages(self) -> None:
        messages = await _send(Response(b"x"))
        assert [m["type"] for m in messages] == ["http.response.start", "http.response.body"]

    @pytest.mark.asyncio
    async def test_extra_headers_are_lowercased(self) -> None:
        messages = await _send(Response().with_header("Allow", "GET, POST"))
        assert (b"allow", b"GET, POST") in messages[0]["headers"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [204, 304, 101])
    async def test_no_body_statuses(self, status: int) -> None:
        # Even if an encoder attaches body content, the sender enforces
        # RFC no-body semantics.
        messages = await _send(Response(b"unexpected-body", status=status))

        headers = dict(messages[0]["headers"])
        assert headers[b"content-length"] == b"0"
        assert messages[1]["body"] == b""

    @pytest.mark.asyncio
    async def test_head_keeps_length_drops_body(self) -> None:
        messages = await _send(Response(b"hello"), head=True)

        headers = dict(messages[0]["headers"])
        assert headers[b"content-length"] == b"5"
        assert messages[1]["body"] == b""
