"""Perch exception hierarchy.

Shared across config loading, the generator, storage, and the CLI so every
module raises and catches the same types. Fetch failures are not
exceptions: they are recorded as ``FetchResult`` data and never abort a run.
"""

from dataclasses import dataclass
from pathlib import Path


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when generator configuration is invalid.

    Typically raised by ``GeneratorConfig`` validation or ``load_config()``.
    """


class LifespanError(PerchError):
    """Raised when an ASGI application reports ``lifespan.startup.failed``."""


@dataclass(frozen=True, slots=True)
class CacheWriteError(PerchError):
    """Writing a cached file (or creating its directory) failed.

    The generator catches this per task and records it in the report.
    """

    path: Path
    reason: str = ""

    def __str__(self) -> str:
        if self.reason:
            return f"Cannot write {self.path}: {self.reason}"
        return f"Cannot write {self.path}"
