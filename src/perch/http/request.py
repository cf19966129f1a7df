"""Synthetic HTTP request handed to in-process handlers.

Frozen dataclass. Built from a target URL plus the Host header of the
site being generated; never parsed from the wire.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Request:
    """A GET-style request for one target URL.

    Usage::

        request = Request.from_url("/blog?page=2", host="example.com")
        request.path          # "/blog"
        request.query_string  # "page=2"
        request.header("host")  # "example.com"
    """

    method: str
    path: str
    query_string: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_url(cls, url: str, *, host: str = "", method: str = "GET") -> "Request":
        """Create a request for *url* (path plus optional query string)."""
        path, _, query = url.partition("?")
        headers: tuple[tuple[str, str], ...] = (("host", host),) if host else ()
        return cls(
            method=method.upper(),
            path=path or "/",
            query_string=query,
            headers=headers,
        )

    @property
    def uri(self) -> str:
        """Path with the query string, as a client would send it."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    def header(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return default
