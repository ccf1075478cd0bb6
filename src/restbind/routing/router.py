"""Compiled router with trie-based path matching.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes.

Path patterns mark captures with a ``:`` prefix::

    /users/:id/posts/:post
"""

from restbind.errors import ConfigurationError, MethodNotAllowed, NotFound
from restbind.routing.route import PathSegment, Route, RouteMatch


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/users"          -> [PathSegment("users")]
        "/users/:id"      -> [PathSegment("users"), PathSegment(":id", is_param=True, ...)]

    Raises ``ConfigurationError`` for unnamed or repeated captures.
    """
    if not path.startswith("/"):
        msg = f"route path {path!r} must start with '/'"
        raise ConfigurationError(msg)

    segments: list[PathSegment] = []
    seen: set[str] = set()
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if part.startswith(":"):
            name = part[1:]
            if not name:
                msg = f"route path {path!r} has a capture with no name"
                raise ConfigurationError(msg)
            if name in seen:
                msg = f"route path {path!r} captures {name!r} more than once"
                raise ConfigurationError(msg)
            seen.add(name)
            segments.append(PathSegment(value=part, is_param=True, param_name=name))
        else:
            segments.append(PathSegment(value=part))
    return segments


def param_names(path: str) -> list[str]:
    """Names of the captures in *path*, in declaration order."""
    return [seg.param_name for seg in parse_path(path) if seg.param_name is not None]


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("children", "param_children", "routes_by_method")

    def __init__(self) -> None:
        # Static segment children: "users" -> node
        self.children: dict[str, _TrieNode] = {}
        # Capture children keyed by capture name, tried in registration order
        self.param_children: dict[str, _TrieNode] = {}
        # Routes at this node, keyed by HTTP method
        self.routes_by_method: dict[str, Route] = {}


class Router:
    """Compiled router with trie-based path matching.

    Usage::

        router = Router()
        router.add(route)
        router.compile()
        match = router.match("GET", "/users/42")
    """

    __slots__ = ("_compiled", "_root", "_routes")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._routes: list[Route] = []
        self._compiled = False

    def add(self, route: Route) -> None:
        """Add a route to the router. Must be called before compile()."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        node = self._root
        for seg in parse_path(route.path):
            if seg.is_param:
                name = seg.param_name or ""
                node = node.param_children.setdefault(name, _TrieNode())
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        if route.method in node.routes_by_method:
            msg = f"route {route.method} {route.path} is already registered"
            raise ConfigurationError(msg)
        node.routes_by_method[route.method] = route
        self._routes.append(route)

    @property
    def routes(self) -> list[Route]:
        """Return all registered routes in registration order."""
        return list(self._routes)

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request path and method against compiled routes.

        Each method is matched on its own: static segments win over
        captures, but only among routes registered for *method*. HEAD
        requests fall back to the GET route when no HEAD route exists.
        Raises ``NotFound`` if no route matches the path.
        Raises ``MethodNotAllowed`` if the path matches only other methods.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        result = self._match_node(self._root, parts, 0, {}, method)
        if result is not None:
            route, params = result
            return RouteMatch(route=route, path_params=params)

        allowed: set[str] = set()
        self._collect_methods(self._root, parts, 0, allowed)
        if not allowed:
            raise NotFound(f"No route matches {method} {path!r}")
        raise MethodNotAllowed(frozenset(allowed))

    @staticmethod
    def _route_for(node: _TrieNode, method: str) -> Route | None:
        route = node.routes_by_method.get(method)
        if route is None and method == "HEAD":
            route = node.routes_by_method.get("GET")
        return route

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, str],
        method: str,
    ) -> tuple[Route, dict[str, str]] | None:
        """Recursively match path parts against the trie for one method."""
        if index == len(parts):
            route = self._route_for(node, method)
            if route is not None:
                return route, params
            return None

        part = parts[index]

        # 1. Try static child first (exact match)
        if part in node.children:
            result = self._match_node(node.children[part], parts, index + 1, params, method)
            if result is not None:
                return result

        # 2. Try capture children
        for name, child in node.param_children.items():
            result = self._match_node(child, parts, index + 1, {**params, name: part}, method)
            if result is not None:
                return result

        return None

    def _collect_methods(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        allowed: set[str],
    ) -> None:
        """Gather every method registered on any node matching the path."""
        if index == len(parts):
            allowed.update(node.routes_by_method)
            return

        part = parts[index]
        if part in node.children:
            self._collect_methods(node.children[part], parts, index + 1, allowed)
        for child in node.param_children.values():
            self._collect_methods(child, parts, index + 1, allowed)
