"""ASGI handler — translates ASGI scope/messages to restbind types.

The only component that touches raw ASGI directly. Converts the scope to
a typed Request, matches it against the router, runs the route's
dispatcher, and sends the resulting Response back through ASGI send().

Every request ends in exactly one response. Errors raised while routing
or encoding are turned into error responses by the protocol; none escape
to the server.
"""

import logging

from restbind._internal.asgi import Receive, Scope, Send
from restbind.config import AppConfig
from restbind.context import Context
from restbind.errors import ErrorResponse
from restbind.http.request import Request
from restbind.http.response import Response
from restbind.protocol import ServerProtocol
from restbind.routing.router import Router
from restbind.server.sender import send_response

logger = logging.getLogger("restbind.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    protocol: ServerProtocol,
    config: AppConfig,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    context = Context.with_timeout(config.request_timeout)
    request = Request.from_asgi(
        scope,
        receive,
        context=context,
        max_body_size=config.max_content_length,
    )

    try:
        response = await _dispatch(request, router, protocol)
        await send_response(response, send, head=request.method == "HEAD")
    finally:
        context.cancel()


async def _dispatch(request: Request, router: Router, protocol: ServerProtocol) -> Response:
    try:
        match = router.match(request.method, request.path)
        return await match.route.dispatcher(request.with_path_params(match.path_params))
    except ErrorResponse as exc:
        logger.debug("%d %s %s — %s", exc.status, request.method, request.path, exc.message)
        return protocol.encode_response(request, 0, exc, None)
    except Exception as exc:
        logger.exception("500 %s %s", request.method, request.path)
        return protocol.encode_response(request, 500, exc, None)
