"""CSRF marker detection.

A page that embeds an anti-forgery token is request-specific: freezing
it would hand every visitor the same single-use token. The guard looks
for the two usual carriers::

    <input type="hidden" name="_token" value="...">
    <meta name="csrf-token" content="...">

Matching is case-insensitive and does not depend on attribute order.
"""

import logging
import re
from dataclasses import dataclass
from enum import StrEnum

from perch.config import GeneratorConfig

logger = logging.getLogger("perch.csrf")

_CSRF_INPUT_RE = re.compile(rb"""<input[^>]*name=["']_token["'][^>]*>""", re.IGNORECASE)
_CSRF_META_RE = re.compile(rb"""<meta[^>]*name=["']csrf-token["'][^>]*>""", re.IGNORECASE)


class CsrfMarker(StrEnum):
    INPUT = "input"
    META = "meta"


@dataclass(frozen=True, slots=True)
class CsrfScan:
    """Which CSRF markers a page contains."""

    has_input: bool = False
    has_meta: bool = False

    def __bool__(self) -> bool:
        return self.has_input or self.has_meta


def scan(content: bytes | str) -> CsrfScan:
    """Scan page content for CSRF markers."""
    data = content.encode("utf-8") if isinstance(content, str) else content
    return CsrfScan(
        has_input=_CSRF_INPUT_RE.search(data) is not None,
        has_meta=_CSRF_META_RE.search(data) is not None,
    )


class CsrfGuard:
    """Decides whether CSRF markers block caching.

    In auto mode an enabled marker blocks the page (the input check wins
    when both are present). With ``auto`` disabled the URL list is a
    deliberate choice: markers only log a warning and never block.
    """

    __slots__ = ("config",)

    def __init__(self, config: GeneratorConfig) -> None:
        self.config = config

    def check(self, url: str, content: bytes | str) -> CsrfMarker | None:
        """Return the marker that blocks caching of *url*, or ``None``."""
        found = scan(content)
        if not found:
            return None

        if not self.config.auto:
            if found.has_input:
                logger.warning("CSRF token input found in page content at %s", url)
            else:
                logger.warning("CSRF meta tag found in page content at %s", url)
            return None

        if self.config.auto_skip_csrf_input and found.has_input:
            return CsrfMarker.INPUT
        if self.config.auto_skip_csrf_meta and found.has_meta:
            return CsrfMarker.META
        return None
