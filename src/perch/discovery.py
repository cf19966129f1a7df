"""URL discovery and resolution.

Turns the route registry plus the explicit URL list into the ordered,
deduplicated task list the generator works through.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from perch._internal.types import FetchMethod
from perch.config import GeneratorConfig
from perch.routing.route import Route


def normalize_url(url: str) -> str:
    """Normalize a URL to a single leading slash.

    A trailing slash on the path is dropped (except for the root) so
    ``/about`` and ``/about/`` resolve to the same task. The query string
    is kept as-is.
    """
    path, sep, query = url.partition("?")
    path = "/" + path.strip().lstrip("/")
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return f"{path}{sep}{query}" if query else path


@dataclass(frozen=True, slots=True)
class UrlTask:
    """One URL to generate, and how to fetch it."""

    url: str
    fetch_method: FetchMethod


def route_is_discoverable(route: Route, config: GeneratorConfig) -> bool:
    """Whether auto-discovery picks up *route*.

    The route needs a method in ``config.auto_request_methods`` (compared
    case-insensitively) and, when ``auto_skip_parametrized`` is set, no
    path parameters.
    """
    allowed = {m.upper() for m in config.auto_request_methods}
    if not any(method.upper() in allowed for method in route.methods):
        return False
    return not (config.auto_skip_parametrized and route.is_parametrized)


def discover_urls(routes: Iterable[Route], config: GeneratorConfig) -> list[str]:
    """Paths of the discoverable routes, in registry order."""
    return [route.path for route in routes if route_is_discoverable(route, config)]


def resolve_tasks(routes: Iterable[Route], config: GeneratorConfig) -> list[UrlTask]:
    """Merge discovered and explicit URLs into a sorted task list.

    Discovered URLs (only when ``config.auto``) go in first with the
    default fetch method, then the explicit ``url_list``. Entries are keyed
    by normalized URL and later ones win, so an explicit entry overrides
    the fetch method of a discovered route.

    The skip list is not applied here; the generator checks it per task.
    """
    default = config.default_fetch_method
    merged: dict[str, UrlTask] = {}

    if config.auto:
        for path in discover_urls(routes, config):
            url = normalize_url(path)
            merged[url] = UrlTask(url=url, fetch_method=default)

    for raw_url, method in config.url_list:
        url = normalize_url(raw_url)
        merged[url] = UrlTask(url=url, fetch_method=method or default)

    return sorted(merged.values(), key=lambda task: task.url)
