"""Fallback table generation.

The generated module is the runtime shim: the host application imports
it at the very start of its entry point and wraps its ASGI app, so a
cached page is answered before the framework does any work::

    from static_site.static_fallback import wrap

    app = wrap(app)

The table lists every resolved URL, cached or not. The shim checks that
the file exists on each request, so an uncached entry just falls through
to the application and the table never has to be regenerated because a
page's eligibility changed.
"""

import pprint
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from perch.records import CacheRecord

FALLBACK_MODULE_NAME = "static_fallback.py"

# str.format() template; literal braces are doubled.
FALLBACK_MODULE_TEMPLATE = '''\
# Generated by perch. Changes are lost on the next run.
"""Serve pre-rendered pages before the application runs.

Usage::

    from static_fallback import wrap

    app = wrap(app)
"""

import mimetypes
from pathlib import Path

STATIC_ROOT = Path(__file__).resolve().parent

STATIC_FILES: dict[str, str] = {table}


def lookup(uri: str) -> Path | None:
    """Cached file for *uri*, or None when there is no usable cache."""
    file_name = STATIC_FILES.get(uri)
    if file_name is None:
        return None
    path = STATIC_ROOT / file_name
    if not path.is_file():
        return None
    return path


def _request_uri(scope) -> str:
    # Table keys are request URIs as sent, so percent-encoding is kept
    raw_path = scope.get("raw_path")
    uri = raw_path.decode("latin-1") if raw_path else scope["path"]
    query = scope.get("query_string", b"")
    if query:
        uri += "?" + query.decode("latin-1")
    return uri


def wrap(app):
    """Wrap an ASGI app so cached pages are served without calling it."""

    async def static_fallback(scope, receive, send):
        if scope["type"] == "http" and scope["method"] in ("GET", "HEAD"):
            path = lookup(_request_uri(scope))
            if path is not None:
                body = path.read_bytes()
                content_type, _ = mimetypes.guess_type(path.name)
                headers = [
                    (b"content-type", (content_type or "{default_content_type}").encode("latin-1")),
                    (b"content-length", str(len(body)).encode("latin-1")),
                ]
                await send({{"type": "http.response.start", "status": 200, "headers": headers}})
                await send({{"type": "http.response.body", "body": b"" if scope["method"] == "HEAD" else body}})
                return
        await app(scope, receive, send)

    return static_fallback
'''

DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"


def build_fallback_table(records: Iterable[CacheRecord]) -> dict[str, str]:
    """Map every record's URL to its file name, cached or not."""
    return {record.url: record.file_name for record in records}


def render_fallback_module(table: Mapping[str, str]) -> str:
    """Render the self-contained fallback module for *table*.

    Output is deterministic: entries are sorted by URL.
    """
    literal = pprint.pformat(dict(sorted(table.items())), indent=4, width=100, sort_dicts=True)
    return FALLBACK_MODULE_TEMPLATE.format(
        table=literal,
        default_content_type=DEFAULT_CONTENT_TYPE,
    )


@dataclass(frozen=True, slots=True)
class FallbackTable:
    """In-process view of a fallback table with the same lookup rules
    as the generated module.
    """

    directory: Path
    entries: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_records(cls, directory: str | Path, records: Iterable[CacheRecord]) -> "FallbackTable":
        return cls(directory=Path(directory), entries=build_fallback_table(records))

    def __contains__(self, uri: object) -> bool:
        return uri in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def lookup(self, uri: str) -> Path | None:
        """Cached file for *uri*, or ``None`` when there is no usable cache."""
        file_name = self.entries.get(uri)
        if file_name is None:
            return None
        path = self.directory / file_name
        if not path.is_file():
            return None
        return path

    def render(self) -> str:
        return render_fallback_module(self.entries)
