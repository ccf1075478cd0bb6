"""restbind application class.

Mutable during setup (route registration). Frozen at runtime when
``__call__()`` is first invoked.
"""

import logging
import threading
from collections.abc import Callable

from restbind._internal.asgi import Receive, Scope, Send
from restbind._internal.types import Handler
from restbind.binding import analyze_handler, build_dispatcher
from restbind.config import AppConfig
from restbind.errors import ConfigurationError
from restbind.protocol import JSONProtocol, ServerProtocol
from restbind.routing.route import Route
from restbind.routing.router import Router, parse_path
from restbind.server.handler import handle_request

logger = logging.getLogger("restbind.app")

# "DEL" is accepted as shorthand for DELETE.
_METHOD_ALIASES = {"DEL": "DELETE"}


class App:
    """The restbind application.

    Handlers are plain functions. Their signatures decide how requests are
    bound to arguments and how results become responses::

        app = App()

        @app.get("/integer/:id")
        def plus(id: int) -> int:
            return id + 33

        @app.post("/messages")
        async def create(msg: Message) -> Message:
            return await store.save(msg)

    Registration validates the handler immediately: an unsupported
    signature raises ``ConfigurationError`` from the decorator, so a
    broken route stops the program at import time instead of failing
    requests later.

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the router even if several workers call
        ``__call__()`` concurrently on first request.
    """

    __slots__ = (
        "_freeze_lock",
        "_frozen",
        "_pending_routes",
        "_router",
        "config",
        "protocol",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        protocol: ServerProtocol | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.protocol: ServerProtocol = protocol if protocol is not None else JSONProtocol()
        self._pending_routes: list[Route] = []
        self._router: Router | None = None
        self._frozen: bool = False
        self._freeze_lock = threading.Lock()

    # -- Registration --

    def add(self, method: str, path: str, handler: Handler) -> Handler:
        """Register *handler* for *method* and *path*.

        Returns the handler unchanged.
        Raises ``ConfigurationError`` if the handler cannot be served.
        """
        self._check_not_frozen()
        method = method.upper()
        method = _METHOD_ALIASES.get(method, method)

        segments = parse_path(path)
        for existing in self._pending_routes:
            if existing.method == method and parse_path(existing.path) == segments:
                msg = f"route {method} {path} is already registered"
                raise ConfigurationError(msg)

        signature = analyze_handler(path, handler)
        dispatcher = build_dispatcher(path, handler, self.protocol, signature)
        self._pending_routes.append(
            Route(
                method=method,
                path=path,
                handler=handler,
                dispatcher=dispatcher,
                signature=signature,
            )
        )
        logger.debug(
            "registered %s %s -> %s (%s)",
            method, path, getattr(handler, "__qualname__", handler), signature.shape.value,
        )
        return handler

    def route(self, path: str, *, method: str = "GET") -> Callable[[Handler], Handler]:
        """Register the decorated function for *method* and *path*."""

        def decorator(func: Handler) -> Handler:
            return self.add(method, path, func)

        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        """Register the decorated function for GET *path*."""
        return self.route(path, method="GET")

    def post(self, path: str) -> Callable[[Handler], Handler]:
        """Register the decorated function for POST *path*."""
        return self.route(path, method="POST")

    def put(self, path: str) -> Callable[[Handler], Handler]:
        """Register the decorated function for PUT *path*."""
        return self.route(path, method="PUT")

    def patch(self, path: str) -> Callable[[Handler], Handler]:
        """Register the decorated function for PATCH *path*."""
        return self.route(path, method="PATCH")

    def delete(self, path: str) -> Callable[[Handler], Handler]:
        """Register the decorated function for DELETE *path*."""
        return self.route(path, method="DELETE")

    def head(self, path: str) -> Callable[[Handler], Handler]:
        """Register the decorated function for HEAD *path*."""
        return self.route(path, method="HEAD")

    def options(self, path: str) -> Callable[[Handler], Handler]:
        """Register the decorated function for OPTIONS *path*."""
        return self.route(path, method="OPTIONS")

    @property
    def routes(self) -> list[Route]:
        """All registered routes, in registration order."""
        return list(self._pending_routes)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._router is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            protocol=self.protocol,
            config=self.config,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Acknowledge lifespan events; routes compile on startup."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    self._ensure_frozen()
                except ConfigurationError as exc:
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the route table. MUST only be called while holding _freeze_lock."""
        router = Router()
        for route in self._pending_routes:
            router.add(route)
        router.compile()
        self._router = router
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = "Cannot register routes after the app has started serving."
            raise ConfigurationError(msg)
