"""Tests for restbind.app — App lifecycle, registration, and ASGI entry."""

import logging
from dataclasses import dataclass
from typing import Any

import pytest

from restbind.app import App
from restbind.binding import ReturnShape
from restbind.config import AppConfig
from restbind.errors import ConfigurationError
from restbind.http.request import Request
from restbind.http.response import Response
from restbind.protocol import JSONProtocol
from restbind.testing import TestClient


@dataclass
class Message:
    message: str


class TestAppRegistration:
    def test_route_decorator(self) -> None:
        app = App()

        @app.route("/items/:id", method="put")
        def update(id: int, msg: Message) -> Message:
            return msg

        (route,) = app.routes
        assert route.method == "PUT"
        assert route.path == "/items/:id"
        assert route.handler is update
        assert route.signature.shape is ReturnShape.BODY_ONLY

    def test_decorator_returns_handler(self) -> None:
        app = App()

        def index() -> None:
            return None

        assert app.get("/")(index) is index

    @pytest.mark.parametrize("method", ["get", "post", "put", "patch", "delete", "head", "options"])
    def test_method_shortcuts(self, method: str) -> None:
        app = App()

        def handler() -> None:
            return None

        getattr(app, method)("/x")(handler)
        assert app.routes[0].method == method.upper()

    def test_del_alias(self) -> None:
        app = App()

        def remove(id: int) -> None:
            return None

        app.add("DEL", "/items/:id", remove)
        assert app.routes[0].method == "DELETE"

    def test_invalid_handler_fails_at_registration(self) -> None:
        app = App()

        with pytest.raises(ConfigurationError, match="cannot determine a binding source"):

            @app.post("/two")
            def two(a: Message, b: Message) -> None:
                return None

        assert app.routes == []

    def test_duplicate_route(self) -> None:
        app = App()

        def a(id: int) -> None:
            return None

        def b(other: int) -> None:
            return None

        app.get("/items/:id")(a)
        with pytest.raises(ConfigurationError, match="already registered"):
            app.get("/items/:id/")(b)

    def test_same_path_different_methods(self) -> None:
        app = App()

        def read() -> None:
            return None

        app.get("/items")(read)
        app.post("/items")(read)
        assert [r.method for r in app.routes] == ["GET", "POST"]

    def test_registration_is_logged_under_app_logger(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        app = App()

        def integer(id: int) -> int:
            return id

        with caplog.at_level(logging.DEBUG, logger="restbind.app"):
            app.get("/integer/:id")(integer)

        records = [r for r in caplog.records if "registered GET /integer/:id" in r.getMessage()]
        assert [r.name for r in records] == ["restbind.app"]

    def test_defaults(self) -> None:
        app = App()
        assert isinstance(app.protocol, JSONProtocol)
        assert app.config == AppConfig()


class TestAppFreeze:
    @pytest.mark.asyncio
    async def test_register_after_freeze(self) -> None:
        app = App()

        @app.get("/")
        def index() -> None:
            return None

        async with TestClient(app) as client:
            await client.get("/")

        def late() -> None:
            return None

        with pytest.raises(ConfigurationError, match="after the app has started"):
            app.get("/late")(late)

    def test_freeze_is_idempotent(self) -> None:
        app = App()
        app._ensure_frozen()
        router = app._router
        app._ensure_frozen()
        assert app._router is router


class TestCustomProtocol:
    @pytest.mark.asyncio
    async def test_protocol_encodes_responses(self) -> None:
        class PlainProtocol:
            async def decode_request(self, request: Request, target: Any) -> Any:
                return target((await request.text()).strip())

            def encode_response(
                self,
                request: Request,
                status: int,
                error: BaseException | None,
                body: Any,
            ) -> Response:
                if error is not None:
                    return Response(str(error).encode(), status or 500, "text/plain")
                return Response(str(body).encode(), status or 200, "text/plain")

        app = App(protocol=PlainProtocol())

        @app.post("/shout")
        def shout(text: str) -> str:
            return text.upper()

        async with TestClient(app) as client:
            response = await client.post("/shout", body=b"hello\n")
        assert response.status == 200
        assert response.content_type == "text/plain"
        assert response.text == "HELLO"


class TestLifespan:
    @pytest.mark.asyncio
    async def test_startup_and_shutdown(self) -> None:
        app = App()

        @app.get("/")
        def index() -> None:
            return None

        incoming = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return next(incoming)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)

        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]
        assert app._frozen is True


class TestASGIEntry:
    @pytest.mark.asyncio
    async def test_sends_exactly_one_response(self) -> None:
        app = App()

        @app.get("/integer/:id")
        def integer(id: int) -> int:
            return id + 33

        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": b"", "more_body": False}

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        scope = {
            "type": "http",
            "method": "GET",
            "path": "/integer/10",
            "headers": [],
            "http_version": "1.1",
        }
        await app(scope, receive, send)

        assert [m["type"] for m in sent] == ["http.response.start", "http.response.body"]
        assert sent[0]["status"] == 200
        assert sent[1]["body"] == b"43"
