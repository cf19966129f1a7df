"""Route registries.

A registry is anything exposing ``routes``. ``Router`` is the minimal
concrete one; ``routes_from_app()`` reads the registry of an existing
application object.
"""

from collections.abc import Iterable, Sequence
from typing import Any, Protocol

from perch.routing.route import PathSegment, Route


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Both brace and angle-bracket parameter styles are recognized, so
    registries from different frameworks count parameters the same way::

        "/users"          -> [PathSegment("users")]
        "/users/{id}"     -> [PathSegment("users"), PathSegment("{id}", is_param=True, ...)]
        "/users/{id:int}" -> [..., PathSegment("{id:int}", is_param=True, param_type="int")]
        "/users/<int:id>" -> [..., PathSegment("<int:id>", is_param=True, param_type="int")]
    """
    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if part.startswith("{") and part.endswith("}"):
            inner = part[1:-1]
            if ":" in inner:
                param_name, param_type = inner.split(":", 1)
            else:
                param_name = inner
                param_type = "str"
        elif part.startswith("<") and part.endswith(">"):
            inner = part[1:-1]
            if ":" in inner:
                param_type, param_name = inner.split(":", 1)
            else:
                param_name = inner
                param_type = "str"
        else:
            segments.append(PathSegment(value=part))
            continue
        segments.append(
            PathSegment(
                value=part,
                is_param=True,
                param_name=param_name,
                param_type=param_type,
            )
        )
    return segments


class RouteRegistry(Protocol):
    """Read-only access to registered routes."""

    @property
    def routes(self) -> Sequence[Route]: ...


class Router:
    """A plain, ordered route registry.

    Usage::

        router = Router()
        router.add("/")
        router.add("/users/{id}", methods={"GET", "DELETE"})
        [r.path for r in router.routes]  # ["/", "/users/{id}"]
    """

    __slots__ = ("_routes",)

    def __init__(self, routes: Iterable[Route] = ()) -> None:
        self._routes: list[Route] = list(routes)

    def add(
        self,
        path: str,
        methods: Iterable[str] | None = None,
        *,
        name: str | None = None,
    ) -> Route:
        """Register a route and return it. Methods default to ``GET``."""
        route = Route(
            path=path,
            methods=frozenset(m.upper() for m in (methods or ("GET",))),
            name=name,
        )
        self._routes.append(route)
        return route

    @property
    def routes(self) -> list[Route]:
        """Return all registered routes in registration order."""
        return list(self._routes)


def _to_route(obj: Any) -> Route | None:
    path = getattr(obj, "path", None)
    methods = getattr(obj, "methods", None)
    if not isinstance(path, str) or not methods:
        return None
    return Route(
        path=path,
        methods=frozenset(str(m).upper() for m in methods),
        name=getattr(obj, "name", None),
    )


def routes_from_app(app: Any) -> list[Route]:
    """Read the route registry of an application object.

    Supports chirp apps (frozen on demand, routes from the compiled
    router) and any object with a ``routes`` iterable whose items carry
    ``path`` and ``methods``. Entries without both are skipped (mounts,
    websocket routes).
    """
    if isinstance(app, Router):
        return app.routes

    ensure_frozen = getattr(app, "_ensure_frozen", None)
    router = getattr(app, "_router", None)
    if callable(ensure_frozen):
        ensure_frozen()
        router = getattr(app, "_router", None)
    source = getattr(router, "routes", None) if router is not None else None
    if source is None:
        source = getattr(app, "routes", None)
    if source is None:
        return []

    routes: list[Route] = []
    for obj in source:
        route = obj if isinstance(obj, Route) else _to_route(obj)
        if route is not None:
            routes.append(route)
    return routes
