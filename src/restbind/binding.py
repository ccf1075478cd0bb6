"""Handler adapter — turns a plain function into a request dispatcher.

Registration inspects a handler's signature once and produces a
``HandlerSignature`` plus a dispatcher closed over one binder per
parameter. Nothing is introspected per request.

Parameters are classified in declared order:

1. annotated exactly ``Context`` → the request's context
2. annotated exactly ``Request`` → the request itself
3. while named path segments remain → the next segment, left to right,
   parsed according to the annotation (see ``restbind.routing.params``)
4. the first remaining parameter → the request body, decoded by the
   protocol into a new instance of the annotation (``T | None`` decodes
   into ``T``)
5. anything else → ``ConfigurationError``

Segment names only fix the order: ``/a/:x/:y`` binds ``x`` to the first
eligible parameter whatever its name.

The return annotation picks how results become responses (see
``restbind.results``).

At request time binders run in order. The first failure produces a 422
(unless the failure is itself an ``ErrorResponse``) and the handler is
not called. Exceptions raised by the handler are encoded by the protocol
with status 0, so an ``ErrorResponse`` keeps its status and anything else
becomes a 500.
"""

import enum
import inspect
import logging
import types
import typing
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from restbind._internal.invoke import invoke
from restbind._internal.types import Binder, Dispatcher, Handler
from restbind.context import Context
from restbind.errors import ConfigurationError, ErrorResponse
from restbind.http.request import Request
from restbind.http.response import Response
from restbind.protocol import ServerProtocol
from restbind.results import (
    REPLY_TYPES,
    BodyAndStatus,
    BodyOnly,
    NoBody,
    Reply,
    StatusCode,
    StatusOnly,
    unpack,
)
from restbind.routing.params import lookup_kind, path_param_binder
from restbind.routing.router import param_names

logger = logging.getLogger("restbind.binding")

UNPROCESSABLE_ENTITY = 422


class ParamRole(enum.Enum):
    """Where a handler parameter's value comes from."""

    CONTEXT = "context"
    REQUEST = "request"
    PATH = "path"
    BODY = "body"


class ReturnShape(enum.Enum):
    """How a handler's return value becomes a response."""

    NO_BODY = "no_body"
    BODY_ONLY = "body_only"
    STATUS_ONLY = "status_only"
    BODY_AND_STATUS = "body_and_status"
    REPLY = "reply"


@dataclass(frozen=True, slots=True)
class ParamSpec:
    """One classified handler parameter.

    ``segment`` is the path segment name for PATH parameters; ``target``
    is the type values are parsed or decoded into.
    """

    name: str
    role: ParamRole
    target: Any = None
    segment: str | None = None
    keyword_only: bool = False


@dataclass(frozen=True, slots=True)
class HandlerSignature:
    """Registration-time description of a handler."""

    params: tuple[ParamSpec, ...]
    shape: ReturnShape

    @property
    def body(self) -> ParamSpec | None:
        """The body parameter, if the handler declares one."""
        for spec in self.params:
            if spec.role is ParamRole.BODY:
                return spec
        return None


def _describe(handler: Handler) -> str:
    name = getattr(handler, "__qualname__", None) or repr(handler)
    try:
        return f"{name}{inspect.signature(handler)}"
    except (TypeError, ValueError):
        return name


def _unwrap_optional(annotation: Any) -> Any:
    """``T | None`` and ``Optional[T]`` → ``T``; anything else unchanged."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(members) == 1:
            return members[0]
    return annotation


def _is_status(annotation: Any) -> bool:
    return annotation is StatusCode or annotation is int


def _classify_return(annotation: Any, handler: Handler) -> ReturnShape:
    if annotation is inspect.Signature.empty:
        msg = (
            f"expected a return annotation on {_describe(handler)}; "
            "use '-> None' for handlers without a body"
        )
        raise ConfigurationError(msg)
    if annotation is typing.NoReturn or annotation is typing.Never:
        msg = f"handler {_describe(handler)} never returns"
        raise ConfigurationError(msg)

    if annotation is None or annotation is type(None):
        return ReturnShape.NO_BODY
    if annotation is StatusCode:
        return ReturnShape.STATUS_ONLY
    if annotation is Reply or annotation in REPLY_TYPES:
        return ReturnShape.REPLY

    if typing.get_origin(annotation) is tuple:
        args = typing.get_args(annotation)
        if len(args) == 2 and args[1] is not Ellipsis and _is_status(args[1]):
            return ReturnShape.BODY_AND_STATUS

    return ReturnShape.BODY_ONLY


def analyze_handler(path: str, handler: Handler) -> HandlerSignature:
    """Classify *handler*'s parameters and return shape for route *path*.

    Raises ``ConfigurationError`` if the handler cannot be served.
    """
    if not callable(handler):
        msg = f"handler for {path!r} is not callable: {handler!r}"
        raise ConfigurationError(msg)

    try:
        sig = inspect.signature(handler, eval_str=True)
    except NameError as exc:
        msg = f"cannot resolve annotations of {getattr(handler, '__qualname__', handler)!r}: {exc}"
        raise ConfigurationError(msg) from exc

    segments = param_names(path)
    remaining = list(segments)
    params: list[ParamSpec] = []
    have_body = False

    for name, param in sig.parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            msg = f"cannot bind variadic parameter {name!r} of {_describe(handler)}"
            raise ConfigurationError(msg)

        annotation = param.annotation
        keyword_only = param.kind is inspect.Parameter.KEYWORD_ONLY

        if annotation is Context:
            params.append(ParamSpec(name, ParamRole.CONTEXT, Context, keyword_only=keyword_only))
            continue
        if annotation is Request:
            params.append(ParamSpec(name, ParamRole.REQUEST, Request, keyword_only=keyword_only))
            continue

        if annotation is inspect.Parameter.empty:
            msg = f"parameter {name!r} of {_describe(handler)} needs a type annotation"
            raise ConfigurationError(msg)

        if remaining:
            segment = remaining.pop(0)
            if lookup_kind(annotation) is None:
                label = getattr(annotation, "__name__", repr(annotation))
                msg = (
                    f"unsupported path parameter type {label} for parameter {name!r} "
                    f"(segment :{segment}) of {_describe(handler)}"
                )
                raise ConfigurationError(msg)
            params.append(
                ParamSpec(name, ParamRole.PATH, annotation, segment=segment, keyword_only=keyword_only)
            )
            continue

        if have_body:
            msg = (
                f"cannot determine a binding source for parameter {name!r}: "
                f"all path parameters and the request body of {path!r} are already "
                f"mapped in {_describe(handler)}"
            )
            raise ConfigurationError(msg)

        params.append(
            ParamSpec(name, ParamRole.BODY, _unwrap_optional(annotation), keyword_only=keyword_only)
        )
        have_body = True

    if remaining:
        msg = (
            f"path {path!r} declares {len(segments)} parameters but {_describe(handler)} "
            f"can only bind {len(segments) - len(remaining)}"
        )
        raise ConfigurationError(msg)

    shape = _classify_return(sig.return_annotation, handler)
    return HandlerSignature(params=tuple(params), shape=shape)


def _binder(spec: ParamSpec, protocol: ServerProtocol) -> Binder:
    match spec.role:
        case ParamRole.CONTEXT:

            async def bind_context(request: Request) -> Context:
                return request.context

            return bind_context

        case ParamRole.REQUEST:

            async def bind_request(request: Request) -> Request:
                return request

            return bind_request

        case ParamRole.PATH:
            return path_param_binder(spec.target, spec.segment or spec.name)

        case ParamRole.BODY:
            target = spec.target

            async def bind_body(request: Request) -> Any:
                return await protocol.decode_request(request, target)

            return bind_body

    msg = f"unknown parameter role {spec.role!r}"
    raise AssertionError(msg)


def _body_and_status(result: Any) -> Reply:
    if not isinstance(result, tuple) or len(result) != 2:
        msg = f"expected a (body, status) tuple, got {type(result).__name__}"
        raise TypeError(msg)
    body, status = result
    return BodyAndStatus(body=body, status=int(status))


def _as_reply(result: Any) -> Reply:
    if not isinstance(result, REPLY_TYPES):
        msg = f"expected a Reply variant, got {type(result).__name__}"
        raise TypeError(msg)
    return result


_INTERPRETERS: dict[ReturnShape, Callable[[Any], Reply]] = {
    ReturnShape.NO_BODY: lambda _result: NoBody(),
    ReturnShape.BODY_ONLY: BodyOnly,
    ReturnShape.STATUS_ONLY: lambda result: StatusOnly(status=int(result)),
    ReturnShape.BODY_AND_STATUS: _body_and_status,
    ReturnShape.REPLY: _as_reply,
}


def build_dispatcher(
    path: str,
    handler: Handler,
    protocol: ServerProtocol,
    signature: HandlerSignature | None = None,
) -> Dispatcher:
    """Build the per-route dispatcher for *handler*.

    Raises ``ConfigurationError`` if the handler cannot be served.
    """
    if signature is None:
        signature = analyze_handler(path, handler)

    binders = tuple((spec, _binder(spec, protocol)) for spec in signature.params)
    interpret = _INTERPRETERS[signature.shape]

    async def dispatch(request: Request) -> Response:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for spec, bind in binders:
            try:
                value = await bind(request)
            except Exception as exc:
                logger.debug(
                    "%s %s: cannot bind %s parameter %r: %s",
                    request.method, request.path, spec.role.value, spec.name, exc,
                )
                return protocol.encode_response(request, UNPROCESSABLE_ENTITY, exc, None)
            if spec.keyword_only:
                kwargs[spec.name] = value
            else:
                args.append(value)

        try:
            result = await invoke(handler, *args, **kwargs)
        except ErrorResponse as exc:
            logger.debug("%d %s %s — %s", exc.status, request.method, request.path, exc.message)
            return protocol.encode_response(request, 0, exc, None)
        except Exception as exc:
            logger.exception("500 %s %s", request.method, request.path)
            return protocol.encode_response(request, 0, exc, None)

        status, body = unpack(interpret(result))
        return protocol.encode_response(request, status, None, body)

    return dispatch
