"""Per-URL outcome of a generation run."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from perch._internal.types import FetchMethod


class CacheDecision(Enum):
    """Why a URL was or was not written to the cache.

    The value is the message shown in the report.
    """

    CACHED = "Ok"
    SKIPPED_BY_STATUS = "Skipped by Status Code"
    SKIPPED_BY_CSRF_INPUT = "Skipped by CSRF Input"
    SKIPPED_BY_CSRF_META = "Skipped by CSRF Meta"
    WRITE_FAILED = "Write failed"

    @property
    def message(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class CacheRecord:
    """Outcome for one resolved URL.

    ``is_cached`` is true only if the file was written during this run.
    ``message`` carries the fetch message, replaced by the decision's
    message when the URL was skipped or the write failed.
    """

    url: str
    status: int | None
    message: str
    file_name: str
    file_path: Path
    is_cached: bool
    fetch_method: FetchMethod
    decision: CacheDecision
