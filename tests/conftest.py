"""Shared fixtures: a minimal ASGI app with a route table, and a loader
for generated fallback modules.
"""

import importlib.util
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any

import pytest

from perch.config import GeneratorConfig


@dataclass(frozen=True, slots=True)
class DemoRoute:
    """Framework-style route object (``path`` + ``methods``)."""

    path: str
    methods: frozenset[str] = frozenset({"GET"})
    name: str | None = None


@dataclass
class DemoApp:
    """ASGI app serving canned pages.

    ``pages`` maps a request URI (path plus query) to ``(status, body)``
    or to an exception to raise. Unknown URIs get a 404.
    """

    pages: dict[str, Any] = field(default_factory=dict)
    routes: list[Any] = field(default_factory=list)
    lifespan: bool = True
    fail_startup: bool = False
    events: list[str] = field(default_factory=list)
    scopes: list[dict[str, Any]] = field(default_factory=list)

    async def __call__(self, scope, receive, send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return

        self.scopes.append(scope)
        uri = scope["path"]
        if scope["query_string"]:
            uri += "?" + scope["query_string"].decode("latin-1")
        page = self.pages.get(uri, (404, "Not Found"))
        if isinstance(page, Exception):
            raise page
        status, body = page
        payload = body.encode("utf-8") if isinstance(body, str) else body
        await send(
            {
                "type": "http.response.start",
                "status": status,
                "headers": [
                    (b"content-type", b"text/html; charset=utf-8"),
                    (b"content-length", str(len(payload)).encode("latin-1")),
                ],
            }
        )
        await send({"type": "http.response.body", "body": payload})

    async def _lifespan(self, receive, send) -> None:
        if not self.lifespan:
            msg = "lifespan not supported"
            raise RuntimeError(msg)
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                if self.fail_startup:
                    await send({"type": "lifespan.startup.failed", "message": "database unavailable"})
                    return
                self.events.append("startup")
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                self.events.append("shutdown")
                await send({"type": "lifespan.shutdown.complete"})
                return


def demo_app(pages: dict[str, Any], **kwargs: Any) -> DemoApp:
    """DemoApp with one GET route per page path."""
    routes = [DemoRoute(uri.partition("?")[0]) for uri in pages]
    return DemoApp(pages=pages, routes=routes, **kwargs)


def load_module(path: Path) -> ModuleType:
    """Execute a generated Python file in an isolated module namespace."""
    spec = importlib.util.spec_from_file_location(f"generated_{path.stem}_{id(path)}", path)
    assert spec is not None
    assert spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    return tmp_path / "static-site"


@pytest.fixture
def config(storage_dir: Path) -> GeneratorConfig:
    return GeneratorConfig(storage_dir=storage_dir, base_url="http://example.test")
