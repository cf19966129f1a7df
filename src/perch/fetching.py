"""Content acquisition.

Two interchangeable fetchers produce the same ``FetchResult``:

- ``InProcessFetcher`` calls the application's handler directly.
- ``ExternalFetcher`` requests the running site over HTTP with ``httpx``.

Failures never propagate: a handler exception or a transport error
becomes a ``FetchResult`` with empty content and a message, so one bad
route cannot abort the batch.
"""

import contextlib
import io
import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from perch._internal.types import FetchMethod
from perch.config import GeneratorConfig
from perch.http.request import Request
from perch.http.response import Handler

logger = logging.getLogger("perch.fetch")

OK_MESSAGE = "Ok"


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Content and status of one fetched URL.

    ``status`` is ``None`` when no HTTP status was observed (transport
    failure, no handler).
    """

    content: bytes = b""
    status: int | None = None
    message: str = OK_MESSAGE


class Fetcher(Protocol):
    """Anything that can fetch a normalized URL."""

    def fetch(self, url: str) -> FetchResult: ...


def _failure_status(exc: BaseException) -> int:
    """HTTP status carried by an exception, 500 when it carries none."""
    for attr in ("status", "status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return 500


class InProcessFetcher:
    """Fetch content by invoking the application's handler in-process.

    Anything the handler prints to stdout while handling is captured
    separately; it is prepended to the body when
    ``config.prepend_echo_content`` is set and discarded otherwise.
    """

    __slots__ = ("config", "handler")

    def __init__(self, handler: Handler, config: GeneratorConfig) -> None:
        self.handler = handler
        self.config = config

    def fetch(self, url: str) -> FetchResult:
        request = Request.from_url(url, host=self.config.host)
        echo = io.StringIO()
        try:
            with contextlib.redirect_stdout(echo):
                response = self.handler(request)
        except Exception as exc:
            status = _failure_status(exc)
            message = str(exc) or type(exc).__name__
            logger.error("In-process fetch of %s failed: %s", url, message)
            logger.debug("Handler traceback for %s", url, exc_info=True)
            return FetchResult(content=b"", status=status, message=message)

        content = response.body_bytes
        if self.config.prepend_echo_content:
            content = echo.getvalue().encode("utf-8") + content
        return FetchResult(content=content, status=response.status, message=OK_MESSAGE)


class ExternalFetcher:
    """Fetch content with a real HTTP request against ``config.base_url``.

    Redirects are not followed: a 3xx is recorded as-is. The
    ``config.skip_marker`` query argument is appended so an installed
    fallback shim does not answer the request from the cache.

    Owns its ``httpx.Client`` unless one is injected; use as a context
    manager or call ``close()``.
    """

    __slots__ = ("_client", "_owns_client", "config")

    def __init__(self, config: GeneratorConfig, client: httpx.Client | None = None) -> None:
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.Client(follow_redirects=False, timeout=config.timeout)

    def request_url(self, url: str) -> str:
        """Absolute URL for *url*, with the skip marker appended."""
        absolute = self.config.base_url.rstrip("/") + url
        separator = "&" if "?" in absolute else "?"
        return f"{absolute}{separator}{self.config.skip_marker}"

    def fetch(self, url: str) -> FetchResult:
        target = self.request_url(url)
        try:
            response = self._client.get(
                target,
                follow_redirects=False,
                timeout=self.config.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            message = str(exc) or type(exc).__name__
            logger.error("HTTP fetch of %s failed: %s", target, message)
            return FetchResult(content=b"", status=None, message=message)
        return FetchResult(content=response.content, status=response.status_code, message=OK_MESSAGE)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "ExternalFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class FetcherSet:
    """Selects the fetcher for each task by its ``FetchMethod``.

    Callers fetch through the set and never branch on the variant.
    The HTTP fetcher is created lazily, so runs that only fetch
    in-process never open a client.
    """

    __slots__ = ("_created", "_fetchers", "config")

    def __init__(
        self,
        config: GeneratorConfig,
        *,
        handler: Handler | None = None,
        fetchers: dict[FetchMethod, Fetcher] | None = None,
    ) -> None:
        self.config = config
        self._fetchers: dict[FetchMethod, Fetcher] = dict(fetchers or {})
        self._created: list[ExternalFetcher] = []
        if handler is not None and FetchMethod.APP not in self._fetchers:
            self._fetchers[FetchMethod.APP] = InProcessFetcher(handler, config)

    def fetch(self, url: str, method: FetchMethod) -> FetchResult:
        fetcher = self._fetchers.get(method)
        if fetcher is None and method is FetchMethod.HTTP:
            external = ExternalFetcher(self.config)
            self._created.append(external)
            fetcher = self._fetchers[method] = external
        if fetcher is None:
            logger.error("No in-process handler configured, cannot fetch %s", url)
            return FetchResult(content=b"", status=None, message="No in-process handler configured")
        return fetcher.fetch(url)

    def close(self) -> None:
        """Close the fetchers this set created; injected ones stay open."""
        for fetcher in self._created:
            fetcher.close()
            if self._fetchers.get(FetchMethod.HTTP) is fetcher:
                del self._fetchers[FetchMethod.HTTP]
        self._created.clear()
