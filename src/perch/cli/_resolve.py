"""App import resolution — resolves ``"module:attribute"`` strings to ASGI apps.

Shared utility used by ``perch make`` and ``perch build`` to locate the
application from a user-supplied import string.
"""

import importlib
import inspect
from typing import Any


def _is_factory(obj: Any) -> bool:
    """A callable that takes no required arguments is an app factory.

    ASGI apps always take ``(scope, receive, send)``.
    """
    if inspect.isclass(obj) or not callable(obj):
        return False
    try:
        signature = inspect.signature(obj)
    except (TypeError, ValueError):
        return False
    return all(
        p.default is not inspect.Parameter.empty or p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
        for p in signature.parameters.values()
    )


def resolve_app(import_string: str) -> Any:
    """Resolve an import string to an ASGI application.

    Accepts ``"module:attribute"`` format.  When the attribute portion
    is omitted, defaults to ``"app"`` (e.g. ``"myapp"`` resolves to
    ``myapp.app``).

    Supports factory functions: a callable that takes no arguments is
    called and its return value used as the app.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        TypeError: If the resolved object is not callable, or a factory raised.

    """
    module_path, _, attr_name = import_string.partition(":")
    if not attr_name:
        attr_name = "app"

    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name)

    if _is_factory(obj):
        try:
            obj = obj()
        except Exception as exc:
            msg = f"Factory function {import_string!r} raised an error: {exc}"
            raise TypeError(msg) from exc

    if not callable(obj):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not an ASGI application"
        raise TypeError(msg)

    return obj
