"""HTTP response returned by in-process handlers."""

from dataclasses import dataclass, replace
from typing import Protocol

from perch.http.request import Request


@dataclass(frozen=True, slots=True)
class Response:
    """A fully buffered HTTP response.

    Handlers may return ``str`` or ``bytes`` bodies; ``body_bytes``
    always yields the encoded form that ends up in the cache.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> "Response":
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> "Response":
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    @property
    def body_bytes(self) -> bytes:
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode("utf-8")

    @property
    def text(self) -> str:
        return self.body_bytes.decode("utf-8", errors="replace")


class Handler(Protocol):
    """The application's single request-handling entry point.

    Any callable matching this shape works; it may raise. Output it
    prints to stdout while handling is captured separately.
    """

    def __call__(self, request: Request) -> Response: ...
