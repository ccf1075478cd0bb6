"""Route and RouteMatch frozen dataclasses."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from restbind._internal.types import Dispatcher, Handler

if TYPE_CHECKING:
    from restbind.binding import HandlerSignature


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/users``  (is_param=False)
    Param:   ``/:id``    (is_param=True, param_name="id")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None


@dataclass(frozen=True, slots=True)
class Route:
    """A registered route.

    Created by ``App.add``, which validates the handler and builds the
    dispatcher before the route exists. Never mutated afterwards.
    """

    method: str
    path: str
    handler: Handler
    dispatcher: Dispatcher
    signature: "HandlerSignature"


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]
