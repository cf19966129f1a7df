"""In-process ASGI invocation.

Sends synthetic requests straight through an application's ASGI
interface, no HTTP involved, and adapts the result to the synchronous
``Handler`` shape the generator expects.
"""

import logging
from collections.abc import Awaitable, Callable, MutableMapping
from contextlib import AbstractContextManager
from typing import Any, TypeAlias
from urllib.parse import unquote

import anyio
from anyio.from_thread import BlockingPortal, start_blocking_portal

from perch.errors import LifespanError
from perch.http.request import Request
from perch.http.response import Response

# Raw ASGI types
Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]
ASGIApp: TypeAlias = Callable[[Scope, Receive, Send], Awaitable[None]]

logger = logging.getLogger("perch.asgi")


def build_scope(request: Request) -> Scope:
    """Build an HTTP connection scope for *request*."""
    raw_headers: list[tuple[bytes, bytes]] = [
        (name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in request.headers
    ]
    host = request.header("host") or "localhost"
    server_name, _, port = host.partition(":")
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": request.method,
        "scheme": "http",
        "path": unquote(request.path),
        "raw_path": request.path.encode("latin-1"),
        "query_string": request.query_string.encode("latin-1"),
        "root_path": "",
        "headers": raw_headers,
        "server": (server_name, int(port) if port.isdigit() else 80),
        "client": ("127.0.0.1", 0),
    }


async def call_asgi(app: ASGIApp, request: Request) -> Response:
    """Send *request* through the ASGI *app* and buffer the response.

    Raises ``RuntimeError`` if the app returns without starting a response.
    Exceptions raised by the app propagate.
    """
    scope = build_scope(request)
    body_sent = False

    async def receive() -> Message:
        nonlocal body_sent
        if not body_sent:
            body_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        return {"type": "http.disconnect"}

    response_started = False
    response_status = 200
    response_headers: list[tuple[bytes, bytes]] = []
    response_body_parts: list[bytes] = []

    async def send(message: Message) -> None:
        nonlocal response_started, response_status, response_headers
        if message["type"] == "http.response.start":
            response_started = True
            response_status = message["status"]
            response_headers = list(message.get("headers", []))
        elif message["type"] == "http.response.body":
            response_body_parts.append(message.get("body", b""))

    await app(scope, receive, send)

    if not response_started:
        msg = f"ASGI application returned without starting a response for {request.uri!r}"
        raise RuntimeError(msg)

    content_type = "text/html; charset=utf-8"
    extra_headers: list[tuple[str, str]] = []
    for name_b, value_b in response_headers:
        name_str = name_b.decode("latin-1").lower()
        value_str = value_b.decode("latin-1")
        if name_str == "content-type":
            content_type = value_str
        elif name_str != "content-length":
            extra_headers.append((name_str, value_str))

    return Response(
        body=b"".join(response_body_parts),
        status=response_status,
        content_type=content_type,
        headers=tuple(extra_headers),
    )


class _Lifespan:
    """Drives the ASGI lifespan protocol from inside a blocking portal."""

    __slots__ = ("_receive_stream", "_send_stream", "_started", "_stopped", "app", "failure", "supported")

    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        self.supported = True
        self.failure: str | None = None

    async def prepare(self) -> None:
        # Events and streams belong to the portal's event loop
        self._send_stream, self._receive_stream = anyio.create_memory_object_stream(max_buffer_size=2)
        self._started = anyio.Event()
        self._stopped = anyio.Event()

    async def run(self) -> None:
        scope: Scope = {"type": "lifespan", "asgi": {"version": "3.0"}, "state": {}}
        try:
            await self.app(scope, self._receive_stream.receive, self._send)
        except Exception as exc:
            if self._started.is_set():
                logger.warning("Lifespan task of %r failed: %s", self.app, exc)
            else:
                # Apps without lifespan support raise on the unknown scope type
                self.supported = False
                logger.debug("Lifespan not supported by %r: %s", self.app, exc)
        finally:
            self._started.set()
            self._stopped.set()
            self._send_stream.close()
            self._receive_stream.close()

    async def _send(self, message: Message) -> None:
        msg_type = message["type"]
        if msg_type == "lifespan.startup.complete":
            self._started.set()
        elif msg_type == "lifespan.startup.failed":
            self.failure = message.get("message", "") or "startup failed"
            self._started.set()
        elif msg_type in ("lifespan.shutdown.complete", "lifespan.shutdown.failed"):
            self._stopped.set()

    async def startup(self) -> None:
        # run() may already have finished (no lifespan support) and closed the streams
        if not self._started.is_set():
            await self._send_stream.send({"type": "lifespan.startup"})
        await self._started.wait()
        if self.failure is not None:
            msg = f"Application startup failed: {self.failure}"
            raise LifespanError(msg)

    async def shutdown(self) -> None:
        if self._stopped.is_set():
            return
        await self._send_stream.send({"type": "lifespan.shutdown"})
        await self._stopped.wait()


class AsgiHandler:
    """Synchronous ``Handler`` over an ASGI application.

    Used as a context manager it keeps one event loop alive for the whole
    batch (an anyio blocking portal) and runs the lifespan protocol around
    it, so startup hooks, database connections, and the like are in place
    before the first page is rendered::

        with AsgiHandler(app) as handler:
            response = handler(Request.from_url("/", host="example.com"))

    Called outside the ``with`` block, every request runs in its own
    ``anyio.run()`` without lifespan events.
    """

    __slots__ = ("_lifespan", "_portal", "_portal_cm", "app", "lifespan")

    def __init__(self, app: ASGIApp, *, lifespan: bool = True) -> None:
        self.app = app
        self.lifespan = lifespan
        self._portal: BlockingPortal | None = None
        self._portal_cm: AbstractContextManager[BlockingPortal] | None = None
        self._lifespan: _Lifespan | None = None

    def __enter__(self) -> "AsgiHandler":
        self._portal_cm = start_blocking_portal()
        self._portal = self._portal_cm.__enter__()
        if self.lifespan:
            lifespan = _Lifespan(self.app)
            self._portal.call(lifespan.prepare)
            self._portal.start_task_soon(lifespan.run)
            self._lifespan = lifespan
            try:
                self._portal.call(lifespan.startup)
            except BaseException as exc:
                self._lifespan = None
                self._close(type(exc), exc, exc.__traceback__)
                raise
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._close(*exc_info)

    def _close(self, *exc_info: Any) -> None:
        portal, portal_cm = self._portal, self._portal_cm
        lifespan = self._lifespan
        self._portal = self._portal_cm = self._lifespan = None
        if portal is None or portal_cm is None:
            return
        try:
            if lifespan is not None and lifespan.supported:
                portal.call(lifespan.shutdown)
        finally:
            portal_cm.__exit__(*exc_info)

    def __call__(self, request: Request) -> Response:
        if self._portal is not None:
            return self._portal.call(call_asgi, self.app, request)
        return anyio.run(call_asgi, self.app, request)
