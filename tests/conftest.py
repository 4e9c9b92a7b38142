"""Shared fixtures for thread-watcher tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable

import pytest

from thread_watcher.config import (
    ConfigLocator,
    ConfigRepository,
    CrawlConfig,
    PersistenceConfig,
    ReportConfig,
    WatcherConfig,
)
from thread_watcher.engine import CrawlResult, FingerprintOnly, FingerprintRecord, Item

THREAD_URL = "https://forum.example.com/deals/thread-{page}.html"


@pytest.fixture
def watcher_config() -> WatcherConfig:
    return WatcherConfig(
        crawl=CrawlConfig(
            thread_url=THREAD_URL,
            allowed_domains=["forum.example.com"],
            delay_range=(0.0, 0.0),
        ),
        persistence=PersistenceConfig(record_file="persist.json"),
        report=ReportConfig(console=False),
    )


@pytest.fixture
def make_item() -> Callable[[str, int], Item]:
    def _builder(text: str, page: int) -> Item:
        return Item(text=text, source_locator=THREAD_URL.format(page=page))

    return _builder


@pytest.fixture
def make_record() -> Callable[[dict[int, Iterable[str]]], FingerprintRecord]:
    """Build a record from raw fingerprints, e.g. ``{5: ["a"], 4: ["b"]}``."""

    def _builder(pages: dict[int, Iterable[str]]) -> FingerprintRecord:
        return FingerprintRecord(
            {number: tuple(FingerprintOnly(value) for value in values) for number, values in pages.items()}
        )

    return _builder


class StubFetcher:
    """Return canned crawl results and remember the start URLs requested."""

    def __init__(self, *results: CrawlResult) -> None:
        self.results = list(results)
        self.calls: list[str] = []
        self.closed = False

    def crawl(self, start_url: str) -> CrawlResult:
        self.calls.append(start_url)
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def stub_fetcher() -> type[StubFetcher]:
    return StubFetcher


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    monkeypatch.setenv("THREAD_WATCHER_HOME", str(tmp_path))
    return ConfigRepository(ConfigLocator(project_root=tmp_path))
