"""Perch — pre-render application routes into static files.

Fetches selected URLs of an application (in-process through its ASGI
interface, or over HTTP), writes the eligible pages to a storage
directory, and generates a small fallback module that answers those URLs
from disk before the application runs.

Basic usage::

    from perch import AsgiHandler, GeneratorConfig, StaticSiteGenerator, routes_from_app

    config = GeneratorConfig(storage_dir="static-site")
    with AsgiHandler(app) as handler:
        result = StaticSiteGenerator(
            config, routes=routes_from_app(app), handler=handler
        ).run()

Serving (in the application's entry point)::

    from static_site.static_fallback import wrap

    app = wrap(app)
"""

# Declare free-threading support (PEP 703)
_Py_mod_gil = 0

__version__ = "0.1.0-dev"
__all__ = [
    "AsgiHandler",
    "CacheDecision",
    "CacheRecord",
    "CacheStorage",
    "CacheWriteError",
    "ConfigurationError",
    "FallbackTable",
    "FetchMethod",
    "FetchResult",
    "GenerationResult",
    "GeneratorConfig",
    "PerchError",
    "Report",
    "Request",
    "Response",
    "Route",
    "Router",
    "StaticSiteGenerator",
    "load_config",
    "routes_from_app",
    "url_to_filename",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name in ("GeneratorConfig", "load_config"):
        from perch import config as _config

        return getattr(_config, name)

    if name in ("StaticSiteGenerator", "GenerationResult"):
        from perch import generator as _generator

        return getattr(_generator, name)

    if name in ("CacheDecision", "CacheRecord"):
        from perch import records as _records

        return getattr(_records, name)

    if name == "FetchMethod":
        from perch._internal.types import FetchMethod

        return FetchMethod

    if name == "FetchResult":
        from perch.fetching import FetchResult

        return FetchResult

    if name == "AsgiHandler":
        from perch._internal.asgi import AsgiHandler

        return AsgiHandler

    if name in ("CacheStorage", "url_to_filename"):
        from perch import storage as _storage

        return getattr(_storage, name)

    if name == "FallbackTable":
        from perch.fallback import FallbackTable

        return FallbackTable

    if name == "Report":
        from perch.report import Report

        return Report

    if name in ("Request", "Response"):
        from perch import http as _http

        return getattr(_http, name)

    if name in ("Route", "Router", "routes_from_app"):
        from perch import routing as _routing

        return getattr(_routing, name)

    if name in ("PerchError", "ConfigurationError", "CacheWriteError"):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
