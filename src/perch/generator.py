"""Static site generation pipeline.

One run is a synchronous batch over the resolved URL tasks::

    resolve tasks -> skip list -> fetch -> status rule -> CSRF guard
                  -> file name -> write -> record

followed by the fallback module and, optionally, a ``.gitignore``.
Every task yields a ``CacheRecord``; a failing task is recorded and the
loop moves on.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from perch._internal.types import FetchMethod
from perch.config import GeneratorConfig
from perch.csrf import CsrfGuard, CsrfMarker
from perch.discovery import UrlTask, normalize_url, resolve_tasks
from perch.errors import CacheWriteError
from perch.fallback import FALLBACK_MODULE_NAME, build_fallback_table, render_fallback_module
from perch.fetching import Fetcher, FetcherSet, FetchResult
from perch.http.response import Handler
from perch.records import CacheDecision, CacheRecord
from perch.routing.route import Route
from perch.storage import CacheStorage, url_to_filename

logger = logging.getLogger("perch.generator")

_CSRF_DECISIONS = {
    CsrfMarker.INPUT: CacheDecision.SKIPPED_BY_CSRF_INPUT,
    CsrfMarker.META: CacheDecision.SKIPPED_BY_CSRF_META,
}


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Everything a run produced."""

    records: tuple[CacheRecord, ...]
    fallback_path: Path
    gitignore_path: Path | None = None

    @property
    def cached(self) -> tuple[CacheRecord, ...]:
        return tuple(r for r in self.records if r.is_cached)

    @property
    def not_cached(self) -> tuple[CacheRecord, ...]:
        return tuple(r for r in self.records if not r.is_cached)


class StaticSiteGenerator:
    """Pre-renders URLs of an application into the storage directory.

    Usage::

        generator = StaticSiteGenerator(config, routes=router.routes, handler=handler)
        result = generator.run()
        print(Report.from_records(result.records).render())

    *handler* serves ``FetchMethod.APP`` tasks; ``FetchMethod.HTTP``
    tasks go to the running site at ``config.base_url``. Pass *fetchers*
    to replace either strategy.
    """

    __slots__ = ("_fetchers", "config", "csrf_guard", "routes", "storage")

    def __init__(
        self,
        config: GeneratorConfig,
        *,
        routes: Iterable[Route] = (),
        handler: Handler | None = None,
        fetchers: dict[FetchMethod, Fetcher] | None = None,
    ) -> None:
        self.config = config
        self.routes = tuple(routes)
        self.storage = CacheStorage(
            config.storage_path,
            dir_mode=config.dir_mode,
            file_mode=config.file_mode,
        )
        self.csrf_guard = CsrfGuard(config)
        self._fetchers = FetcherSet(config, handler=handler, fetchers=fetchers)

    def tasks(self) -> list[UrlTask]:
        return resolve_tasks(self.routes, self.config)

    def file_name(self, url: str) -> str:
        return url_to_filename(
            url,
            root_file_name=self.config.root_url_file_name,
            extension=self.config.file_extension,
        )

    def generate(self) -> list[CacheRecord]:
        """Fetch and cache every task. Returns one record per processed task."""
        skip = {normalize_url(url) for url in self.config.skip_url_list}
        records: list[CacheRecord] = []
        try:
            for task in self.tasks():
                if task.url in skip:
                    logger.info("Skip: %s", task.url)
                    continue
                records.append(self.process(task))
        finally:
            self._fetchers.close()
        return records

    def process(self, task: UrlTask) -> CacheRecord:
        """Fetch, judge, and (maybe) write one task."""
        file_name = self.file_name(task.url)
        file_path = self.storage.path(file_name)
        result = self._fetchers.fetch(task.url, task.fetch_method)
        decision = self.decide(task.url, result)

        message = result.message
        if decision is CacheDecision.CACHED:
            try:
                self.storage.write(file_path, result.content)
            except CacheWriteError as exc:
                logger.error("%s", exc)
                decision = CacheDecision.WRITE_FAILED
                message = f"{decision.message}: {exc.reason}" if exc.reason else decision.message
        else:
            message = decision.message

        return CacheRecord(
            url=task.url,
            status=result.status,
            message=message,
            file_name=file_name,
            file_path=file_path,
            is_cached=decision is CacheDecision.CACHED,
            fetch_method=task.fetch_method,
            decision=decision,
        )

    def decide(self, url: str, result: FetchResult) -> CacheDecision:
        """Cache eligibility of a fetch result.

        The status rule comes first and overrides any CSRF outcome.
        """
        if result.status not in self.config.status_codes:
            return CacheDecision.SKIPPED_BY_STATUS
        marker = self.csrf_guard.check(url, result.content)
        if marker is not None:
            return _CSRF_DECISIONS[marker]
        return CacheDecision.CACHED

    def write_fallback(self, records: Iterable[CacheRecord]) -> Path:
        """Write the fallback module for *records* into the storage directory."""
        path = self.storage.path(FALLBACK_MODULE_NAME)
        self.storage.write(path, render_fallback_module(build_fallback_table(records)))
        return path

    def run(self) -> GenerationResult:
        """Generate all pages, then the fallback module and ``.gitignore``."""
        records = tuple(self.generate())
        fallback_path = self.write_fallback(records)
        gitignore_path = self.storage.write_gitignore() if self.config.add_gitignore else None
        logger.info(
            "Generated %d of %d URLs into %s",
            sum(1 for r in records if r.is_cached),
            len(records),
            self.storage.directory,
        )
        return GenerationResult(
            records=records,
            fallback_path=fallback_path,
            gitignore_path=gitignore_path,
        )
