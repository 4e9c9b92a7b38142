from __future__ import annotations

import json

import pytest
from structlog.testing import capture_logs

from thread_watcher.coordinator import RunCoordinator
from thread_watcher.engine import CrawlResult, FingerprintRecord, Item, fingerprint_text
from thread_watcher.engine.exporter import BaseExporter
from thread_watcher.errors import ColdStartUnresolved, FetchFailure, MalformedLocator
from thread_watcher.infra import FingerprintStore

class RecordingExporter(BaseExporter):
    def __init__(self) -> None:
        self.items: list[Item] = []
        self.flushed = 0
        self.closed = False

    def export(self, item: Item) -> None:
        self.items.append(item)

    def flush(self) -> None:
        self.flushed += 1

    def close(self) -> None:
        self.closed = True

class CountingStore(FingerprintStore):
    def __init__(self, path) -> None:
        super().__init__(path)
        self.saves = 0

    def save(self, record: FingerprintRecord) -> None:
        self.saves += 1
        super().save(record)

def _crawl(make_item, layout: list[tuple[int, str]]) -> CrawlResult:
    return CrawlResult(
        items=[make_item(text, page) for page, text in layout],
        pages=sorted({f"page-{page}" for page, _ in layout}),
    )

@pytest.fixture
def store(tmp_path) -> CountingStore:
    return CountingStore(tmp_path / "persist.json")

def test_end_to_end_reports_only_new_post(watcher_config, store, stub_fetcher, make_item, make_record) -> None:
    a, b, c = (fingerprint_text(text) for text in ("post a", "post b", "post c"))
    previous = make_record({5: [a], 4: [b]})
    store.save(previous)
    store.saves = 0
    fetcher = stub_fetcher(_crawl(make_item, [(4, "post b"), (5, "post a"), (5, "post c")]))
    exporter = RecordingExporter()
    coordinator = RunCoordinator(watcher_config, store, fetcher, [exporter])

    result = coordinator.run_cycle(coordinator.bootstrap())

    assert fetcher.calls == [watcher_config.crawl.page_url("4")]
    assert [item.fingerprint for item in exporter.items] == [c]
    assert [item.text for item in result.new_items] == ["post c"]
    assert result.changed and result.persisted
    assert store.saves == 1
    assert json.loads(store.path.read_text(encoding="utf-8")) == {
        "5": {"items": [{"texthash": a}, {"texthash": c}]},
        "4": {"items": [{"texthash": b}]},
    }
    assert result.record == make_record({5: [a, c], 4: [b]})

def test_unchanged_cycle_does_not_write(watcher_config, store, stub_fetcher, make_item) -> None:
    crawl = _crawl(make_item, [(4, "x"), (5, "y")])
    exporter = RecordingExporter()
    coordinator = RunCoordinator(watcher_config, store, stub_fetcher(crawl), [exporter])

    first = coordinator.run_cycle(None, "4")
    assert [item.text for item in first.new_items] == ["x", "y"]
    assert store.saves == 1

    second = coordinator.run_cycle(first.record)
    assert not second.changed
    assert not second.persisted
    assert second.new_items == []
    assert second.record == first.record
    assert store.saves == 1
    assert len(exporter.items) == 2

def test_chained_cycles_resume_from_lowest_retained_page(
    watcher_config, store, stub_fetcher, make_item
) -> None:
    fetcher = stub_fetcher(
        _crawl(make_item, [(1, "a"), (2, "b"), (3, "c")]),
        _crawl(make_item, [(2, "b"), (3, "c"), (3, "d")]),
    )
    coordinator = RunCoordinator(watcher_config, store, fetcher)

    first = coordinator.run_cycle(None, "1")
    second = coordinator.run_cycle(first.record)

    assert first.record.page_numbers() == [2, 3]
    assert fetcher.calls[1] == watcher_config.crawl.page_url("2")
    assert [item.text for item in second.new_items] == ["d"]

def test_explicit_start_page_overrides_record(watcher_config, store, stub_fetcher, make_item, make_record) -> None:
    fetcher = stub_fetcher(_crawl(make_item, [(9, "z")]))
    coordinator = RunCoordinator(watcher_config, store, fetcher)
    coordinator.run_cycle(make_record({4: ["b"], 5: ["a"]}), "9")
    assert fetcher.calls == [watcher_config.crawl.page_url("9")]

def test_cold_start_without_start_page_aborts(watcher_config, store, stub_fetcher) -> None:
    coordinator = RunCoordinator(watcher_config, store, stub_fetcher(CrawlResult()))
    with pytest.raises(ColdStartUnresolved):
        coordinator.bootstrap()
    with pytest.raises(ColdStartUnresolved):
        coordinator.run_cycle(None)
    assert coordinator.bootstrap("12") is None

def test_malformed_locator_leaves_record_untouched(watcher_config, store, stub_fetcher, make_item, make_record) -> None:
    original = make_record({5: ["a"], 4: ["b"]})
    store.save(original)
    store.saves = 0
    crawl = CrawlResult(items=[make_item("fine", 5), Item(text="bad", source_locator="https://forum.example.com/t.html")])
    exporter = RecordingExporter()
    coordinator = RunCoordinator(watcher_config, store, stub_fetcher(crawl), [exporter])

    with pytest.raises(MalformedLocator):
        coordinator.run_cycle(store.load())

    assert store.saves == 0
    assert store.load() == original
    assert exporter.items == []

def test_empty_fetch_keeps_previous_record(watcher_config, store, stub_fetcher, make_record) -> None:
    previous = make_record({5: ["a"], 4: ["b"]})
    failed = CrawlResult(errors=[FetchFailure("https://forum.example.com/deals/thread-4.html", "timeout")])
    coordinator = RunCoordinator(watcher_config, store, stub_fetcher(failed))

    result = coordinator.run_cycle(previous)

    assert result.record is previous
    assert result.partial
    assert not result.persisted
    assert store.saves == 0

def test_partial_fetch_still_reports_collected_posts(watcher_config, store, stub_fetcher, make_item) -> None:
    crawl = _crawl(make_item, [(4, "a")])
    crawl.errors.append(FetchFailure("https://forum.example.com/deals/thread-5.html", "503"))
    coordinator = RunCoordinator(watcher_config, store, stub_fetcher(crawl))

    result = coordinator.run_cycle(None, "4")

    assert result.partial
    assert [item.text for item in result.new_items] == ["a"]
    assert result.persisted

def test_partial_fetch_warns_with_highest_page_reached(watcher_config, store, stub_fetcher, make_item) -> None:
    crawl = _crawl(make_item, [(3, "a"), (4, "b")])
    crawl.errors.append(FetchFailure("https://forum.example.com/deals/thread-5.html", "503"))

    with capture_logs() as logs:
        coordinator = RunCoordinator(watcher_config, store, stub_fetcher(crawl))
        result = coordinator.run_cycle(None, "3")

    warnings = [entry for entry in logs if entry["event"] == "window_from_partial_crawl"]
    assert len(warnings) == 1
    assert warnings[0]["log_level"] == "warning"
    assert warnings[0]["highest_page"] == 4
    assert result.highest_page == 4
    assert result.persisted

def test_complete_fetch_does_not_warn_about_partial_window(
    watcher_config, store, stub_fetcher, make_item
) -> None:
    with capture_logs() as logs:
        coordinator = RunCoordinator(watcher_config, store, stub_fetcher(_crawl(make_item, [(4, "a")])))
        coordinator.run_cycle(None, "4")

    assert "window_from_partial_crawl" not in [entry["event"] for entry in logs]

def test_close_releases_exporters_and_fetcher(watcher_config, store, stub_fetcher) -> None:
    fetcher = stub_fetcher(CrawlResult())
    exporter = RecordingExporter()
    RunCoordinator(watcher_config, store, fetcher, [exporter]).close()
    assert exporter.closed
    assert fetcher.closed

def test_summary_is_serialisable(watcher_config, store, stub_fetcher, make_item) -> None:
    coordinator = RunCoordinator(watcher_config, store, stub_fetcher(_crawl(make_item, [(3, "a")])))
    summary = coordinator.run_cycle(None, "3").summary()
    assert summary == {
        "start_page": "3",
        "pages_fetched": 1,
        "new_items": 1,
        "changed": True,
        "persisted": True,
        "partial": False,
        "highest_page": 3,
    }
