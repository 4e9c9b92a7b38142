"""Run coordinator wiring fetching, aggregation, diffing, reporting and persistence."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence

import structlog

from .config import WatcherConfig
from .engine import (
    CrawlResult,
    DiffEngine,
    FingerprintRecord,
    Item,
    PageAggregator,
    strip_to_fingerprints,
)
from .engine.exporter import BaseExporter
from .errors import ColdStartUnresolved
from .infra import FingerprintStore
from .logging_conf import get_logger


class Crawler(Protocol):
    def crawl(self, start_url: str) -> CrawlResult: ...


@dataclass
class CycleResult:
    """What one cycle produced; ``record`` feeds the following cycle."""

    record: FingerprintRecord
    start_page: str
    new_items: list[Item] = field(default_factory=list)
    changed: bool = False
    persisted: bool = False
    partial: bool = False
    pages_fetched: int = 0
    highest_page: int | None = None

    def summary(self) -> dict[str, int | str | bool | None]:
        return {
            "start_page": self.start_page,
            "pages_fetched": self.pages_fetched,
            "new_items": len(self.new_items),
            "changed": self.changed,
            "persisted": self.persisted,
            "partial": self.partial,
            "highest_page": self.highest_page,
        }


class RunCoordinator:
    """Drive one scan cycle at a time against a single thread."""

    def __init__(
        self,
        config: WatcherConfig,
        store: FingerprintStore,
        fetcher: Crawler,
        exporters: Sequence[BaseExporter] = (),
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.fetcher = fetcher
        self.exporters = list(exporters)
        self.aggregator = PageAggregator(config.persistence.window_pages)
        self.diff_engine = DiffEngine()
        self.logger = logger or get_logger("coordinator")

    def bootstrap(self, start_page: str | None = None) -> FingerprintRecord | None:
        """Load the durable record at process start.

        Returns ``None`` on a cold start, which is only acceptable when an
        explicit start page was supplied.
        """

        record = self.store.load_or_empty()
        if record is None:
            if not start_page:
                raise ColdStartUnresolved(self.store.path)
            self.logger.info("cold_start", start_page=start_page)
        else:
            self.logger.info("record_loaded", pages=record.page_numbers(), path=str(self.store.path))
        return record

    def resolve_start_page(
        self, previous: FingerprintRecord | None, start_page: str | None = None
    ) -> str:
        if start_page:
            return start_page
        if previous is not None and not previous.is_empty:
            # Continue from the earliest retained page so nothing falls in a gap
            return str(max(previous.lowest_page(), 1))
        raise ColdStartUnresolved(self.store.path)

    def run_cycle(
        self, previous: FingerprintRecord | None, start_page: str | None = None
    ) -> CycleResult:
        page = self.resolve_start_page(previous, start_page)
        previous = previous if previous is not None else FingerprintRecord.empty()
        start_url = self.config.crawl.page_url(page)
        log = self.logger.bind(start_page=page)
        log.info("cycle_started", url=start_url)

        crawl = self.fetcher.crawl(start_url)
        if crawl.partial:
            log.warning("cycle_partial_fetch", errors=[str(error) for error in crawl.errors])
        if not crawl.items:
            log.warning("no_items_fetched", pages=len(crawl.pages))
            return CycleResult(
                record=previous,
                start_page=page,
                partial=crawl.partial,
                pages_fetched=len(crawl.pages),
            )

        window = self.aggregator.window(crawl.items)
        if crawl.partial:
            # The window sits around the last page reached, not the thread's real tail
            log.warning(
                "window_from_partial_crawl",
                highest_page=max(window),
                window=sorted(window),
            )
        current = strip_to_fingerprints(window)
        outcome = self.diff_engine.compare(window, current, previous)
        result = CycleResult(
            record=previous,
            start_page=page,
            partial=crawl.partial,
            pages_fetched=len(crawl.pages),
            highest_page=max(window),
        )
        if not outcome.changed:
            log.info("no_changes", pages=current.page_numbers())
            return result

        if outcome.overflow_suspected:
            log.warning(
                "window_overflow_suspected",
                window_pages=self.config.persistence.window_pages,
                previous_pages=previous.page_numbers(),
                current_pages=current.page_numbers(),
            )
        self._report(outcome.new_items)
        self.store.save(current)
        log.info(
            "record_saved",
            pages=current.page_numbers(),
            new_items=len(outcome.new_items),
            path=str(self.store.path),
        )
        result.record = current
        result.new_items = outcome.new_items
        result.changed = True
        result.persisted = True
        return result

    def close(self) -> None:
        for exporter in self.exporters:
            exporter.close()
        close_fetcher = getattr(self.fetcher, "close", None)
        if callable(close_fetcher):
            close_fetcher()

    def _report(self, items: list[Item]) -> None:
        for item in items:
            self.logger.info(
                "new_item_detected", fingerprint=item.fingerprint, url=item.source_locator
            )
        for exporter in self.exporters:
            exporter.export_many(items)
            exporter.flush()


__all__ = ["Crawler", "CycleResult", "RunCoordinator"]
