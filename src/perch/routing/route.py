"""Route and PathSegment frozen dataclasses."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/users``  (is_param=False)
    Param:   ``/{id}``   (is_param=True, param_name="id")
    Typed:   ``/{id:int}`` (is_param=True, param_name="id", param_type="int")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(frozen=True, slots=True)
class Route:
    """A read-only view of one registered route.

    Perch never dispatches through routes; it only needs the pattern,
    the HTTP methods, and the path parameter names.
    """

    path: str
    methods: frozenset[str]
    name: str | None = None

    @property
    def param_names(self) -> tuple[str, ...]:
        """Path parameter names in pattern order."""
        from perch.routing.router import parse_path

        return tuple(seg.param_name or "" for seg in parse_path(self.path) if seg.is_param)

    @property
    def is_parametrized(self) -> bool:
        return bool(self.param_names)
