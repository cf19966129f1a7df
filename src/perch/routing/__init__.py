"""Routing — read-only view of an application's route registry.

Perch reads routes to discover URLs; it never matches or dispatches.
"""

from perch.routing.route import PathSegment, Route
from perch.routing.router import RouteRegistry, Router, parse_path, routes_from_app

__all__ = ["PathSegment", "Route", "RouteRegistry", "Router", "parse_path", "routes_from_app"]
