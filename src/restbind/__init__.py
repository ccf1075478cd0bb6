"""restbind — plain functions as HTTP handlers.

Handler signatures decide how a request is bound: a ``Context`` or
``Request`` parameter receives the request context, one scalar parameter
per ``:name`` path segment receives the parsed segment, and a final
parameter receives the decoded body. The return annotation decides how
the result becomes a response.

Basic usage::

    from restbind import App, StatusCode, errorf

    app = App()

    @app.get("/integer/:id")
    def plus(id: int) -> int:
        return id + 33

    @app.post("/request_body")
    def echo(msg: Message) -> Message:
        return msg

    @app.get("/teapot")
    def teapot() -> StatusCode:
        return StatusCode(418)

Serve with any ASGI server: ``uvicorn module:app``.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BindError",
    "BodyAndStatus",
    "BodyOnly",
    "Client",
    "ConfigurationError",
    "Context",
    "DecodeError",
    "ErrorResponse",
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "JSONProtocol",
    "MethodNotAllowed",
    "NoBody",
    "NotFound",
    "Protocol",
    "Reply",
    "Request",
    "Response",
    "RestbindError",
    "StatusCode",
    "StatusOnly",
    "Uint8",
    "Uint16",
    "Uint32",
    "Uint64",
    "error",
    "errorf",
]

_ERRORS = frozenset({
    "BindError",
    "ConfigurationError",
    "DecodeError",
    "ErrorResponse",
    "MethodNotAllowed",
    "NotFound",
    "RestbindError",
    "error",
    "errorf",
})

_RESULTS = frozenset({"BodyAndStatus", "BodyOnly", "NoBody", "Reply", "StatusCode", "StatusOnly"})

_PATH_KINDS = frozenset({
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "Uint8",
    "Uint16",
    "Uint32",
    "Uint64",
})


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import restbind`` fast while providing a clean top-level API.
    """
    if name == "App":
        from restbind.app import App

        return App

    if name == "AppConfig":
        from restbind.config import AppConfig

        return AppConfig

    if name == "Client":
        from restbind.client import Client

        return Client

    if name == "Context":
        from restbind.context import Context

        return Context

    if name == "Request":
        from restbind.http.request import Request

        return Request

    if name == "Response":
        from restbind.http.response import Response

        return Response

    if name in ("JSONProtocol", "Protocol"):
        import restbind.protocol as _protocol

        return getattr(_protocol, name)

    if name in _ERRORS:
        import restbind.errors as _errors

        return getattr(_errors, name)

    if name in _RESULTS:
        import restbind.results as _results

        return getattr(_results, name)

    if name in _PATH_KINDS:
        import restbind.routing.params as _params

        return getattr(_params, name)

    msg = f"module 'restbind' has no attribute {name!r}"
    raise AttributeError(msg)
