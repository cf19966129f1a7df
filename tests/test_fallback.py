"""Tests for perch.fallback — fallback table and generated module."""

from pathlib import Path

import anyio
from conftest import demo_app, load_module

from perch._internal.types import FetchMethod
from perch.fallback import (
    FALLBACK_MODULE_NAME,
    FallbackTable,
    build_fallback_table,
    render_fallback_module,
)
from perch.records import CacheDecision, CacheRecord


def _record(url: str, file_name: str, directory: Path, *, cached: bool = True) -> CacheRecord:
    decision = CacheDecision.CACHED if cached else CacheDecision.SKIPPED_BY_STATUS
    return CacheRecord(
        url=url,
        status=200 if cached else 404,
        message=decision.message,
        file_name=file_name,
        file_path=directory / file_name,
        is_cached=cached,
        fetch_method=FetchMethod.APP,
        decision=decision,
    )


def _write_module(directory: Path, table: dict[str, str]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / FALLBACK_MODULE_NAME
    path.write_text(render_fallback_module(table))
    return path


async def _call(
    app, method: str, path: str, query: bytes = b"", raw_path: bytes | None = None
) -> tuple[int, dict[bytes, bytes], bytes]:
    scope = {"type": "http", "method": method, "path": path, "query_string": query, "headers": []}
    if raw_path is not None:
        scope["raw_path"] = raw_path
    messages: list[dict] = []

    async def receive() -> dict:
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message: dict) -> None:
        messages.append(message)

    await app(scope, receive, send)
    start = next(m for m in messages if m["type"] == "http.response.start")
    body = b"".join(m.get("body", b"") for m in messages if m["type"] == "http.response.body")
    return start["status"], dict(start["headers"]), body


class TestTable:
    def test_includes_uncached_urls(self, tmp_path: Path) -> None:
        records = [
            _record("/", "_.html", tmp_path),
            _record("/login", "login.html", tmp_path, cached=False),
        ]
        assert build_fallback_table(records) == {"/": "_.html", "/login": "login.html"}

    def test_render_is_deterministic(self) -> None:
        first = render_fallback_module({"/b": "b.html", "/a": "a.html"})
        second = render_fallback_module({"/a": "a.html", "/b": "b.html"})
        assert first == second
        assert first.index("'/a'") < first.index("'/b'")

    def test_empty_table_renders(self, tmp_path: Path) -> None:
        module = load_module(_write_module(tmp_path, {}))
        assert module.STATIC_FILES == {}
        assert module.lookup("/") is None

    def test_fallback_table_lookup(self, tmp_path: Path) -> None:
        (tmp_path / "_.html").write_text("home")
        records = [
            _record("/", "_.html", tmp_path),
            _record("/missing", "missing.html", tmp_path),
        ]
        table = FallbackTable.from_records(tmp_path, records)

        assert len(table) == 2
        assert "/missing" in table
        assert table.lookup("/") == tmp_path / "_.html"
        assert table.lookup("/missing") is None
        assert table.lookup("/other") is None

    def test_table_render_matches_module(self, tmp_path: Path) -> None:
        table = FallbackTable(tmp_path, {"/": "_.html"})
        assert table.render() == render_fallback_module({"/": "_.html"})


class TestGeneratedModule:
    def test_lookup_checks_file_exists(self, tmp_path: Path) -> None:
        module = load_module(_write_module(tmp_path, {"/": "_.html", "/about": "about.html"}))
        (tmp_path / "_.html").write_text("home")

        assert module.STATIC_ROOT == tmp_path.resolve()
        assert module.lookup("/") == tmp_path.resolve() / "_.html"
        assert module.lookup("/about") is None

        (tmp_path / "about.html").write_text("about")
        assert module.lookup("/about") == tmp_path.resolve() / "about.html"

    def test_wrap_serves_cached_page(self, tmp_path: Path) -> None:
        module = load_module(_write_module(tmp_path, {"/": "_.html"}))
        (tmp_path / "_.html").write_text("<h1>cached</h1>")
        app = demo_app({"/": (200, "<h1>live</h1>")})

        status, headers, body = anyio.run(_call, module.wrap(app), "GET", "/")

        assert status == 200
        assert body == b"<h1>cached</h1>"
        assert headers[b"content-type"] == b"text/html"
        assert headers[b"content-length"] == b"15"
        assert app.scopes == []

    def test_wrap_falls_through(self, tmp_path: Path) -> None:
        module = load_module(_write_module(tmp_path, {"/login": "login.html"}))
        app = demo_app({"/login": (200, "<form>live</form>")})

        status, _, body = anyio.run(_call, module.wrap(app), "GET", "/login")

        assert status == 200
        assert body == b"<form>live</form>"
        assert len(app.scopes) == 1

    def test_wrap_head_has_no_body(self, tmp_path: Path) -> None:
        module = load_module(_write_module(tmp_path, {"/": "_.html"}))
        (tmp_path / "_.html").write_text("home")

        status, headers, body = anyio.run(_call, module.wrap(demo_app({})), "HEAD", "/")

        assert status == 200
        assert body == b""
        assert headers[b"content-length"] == b"4"

    def test_wrap_ignores_post(self, tmp_path: Path) -> None:
        module = load_module(_write_module(tmp_path, {"/": "_.html"}))
        (tmp_path / "_.html").write_text("home")
        app = demo_app({"/": (200, "live")})

        _, _, body = anyio.run(_call, module.wrap(app), "POST", "/")

        assert body == b"live"

    def test_wrap_matches_query(self, tmp_path: Path) -> None:
        module = load_module(_write_module(tmp_path, {"/search?q=perch": "search_q_perch.html"}))
        (tmp_path / "search_q_perch.html").write_text("results")
        app = demo_app({})

        _, _, body = anyio.run(_call, module.wrap(app), "GET", "/search", b"q=perch")
        _, _, other = anyio.run(_call, module.wrap(app), "GET", "/search", b"q=other")

        assert body == b"results"
        assert other == b"Not Found"

    def test_wrap_matches_percent_encoded_path(self, tmp_path: Path) -> None:
        module = load_module(_write_module(tmp_path, {"/caf%C3%A9": "caf_C3_A9.html"}))
        (tmp_path / "caf_C3_A9.html").write_text("menu")
        app = demo_app({})

        _, _, body = anyio.run(_call, module.wrap(app), "GET", "/café", b"", b"/caf%C3%A9")

        assert body == b"menu"
        assert app.scopes == []
