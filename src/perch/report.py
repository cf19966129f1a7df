"""Run report — which URLs were cached and which were not."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from perch.records import CacheRecord

CACHED_COLUMNS = ("Url", "Status", "File", "Method")
NOT_CACHED_COLUMNS = ("Url", "Status", "Message", "Method")


def _status(record: CacheRecord) -> str:
    return "" if record.status is None else str(record.status)


def render_table(columns: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render rows as a left-aligned text table with a header rule."""
    widths = [len(col) for col in columns]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    fmt = "  ".join(f"{{:<{w}}}" for w in widths)
    lines = [fmt.format(*columns).rstrip(), "-" * min(sum(widths) + 2 * (len(widths) - 1), 80)]
    lines.extend(fmt.format(*row).rstrip() for row in rows)
    return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class Report:
    """Records split into cached and not-cached, in task order."""

    cached: tuple[CacheRecord, ...] = ()
    not_cached: tuple[CacheRecord, ...] = ()

    @classmethod
    def from_records(cls, records: Iterable[CacheRecord]) -> "Report":
        items = tuple(records)
        return cls(
            cached=tuple(r for r in items if r.is_cached),
            not_cached=tuple(r for r in items if not r.is_cached),
        )

    @property
    def total(self) -> int:
        return len(self.cached) + len(self.not_cached)

    def cached_rows(self) -> list[tuple[str, str, str, str]]:
        return [(r.url, _status(r), str(r.file_path), r.fetch_method.value) for r in self.cached]

    def not_cached_rows(self) -> list[tuple[str, str, str, str]]:
        return [(r.url, _status(r), r.message, r.fetch_method.value) for r in self.not_cached]

    def render(self) -> str:
        """Both sections as text, ready to print."""
        return "\n".join(
            [
                "Successfully cached:",
                render_table(CACHED_COLUMNS, self.cached_rows()),
                "",
                "Not cached:",
                render_table(NOT_CACHED_COLUMNS, self.not_cached_rows()),
            ]
        )
