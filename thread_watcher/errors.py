"""Exception hierarchy shared by the watcher engine, storage and CLI."""

from __future__ import annotations

from pathlib import Path


class ThreadWatcherError(Exception):
    """Base class for every failure the watcher reports to its caller."""


class ColdStartUnresolved(ThreadWatcherError):
    """Neither a stored record nor an explicit start page is available."""

    def __init__(self, record_path: Path | None = None) -> None:
        location = f" ({record_path})" if record_path else ""
        super().__init__(
            "No stored fingerprint record found"
            f"{location} and no start page provided; cannot choose where to begin."
        )
        self.record_path = record_path


class MalformedLocator(ThreadWatcherError):
    """An item's source URL carries no page number before ``.html``."""

    def __init__(self, locator: str) -> None:
        super().__init__(f"Cannot parse page number from locator: {locator!r}")
        self.locator = locator


class StorageReadFailure(ThreadWatcherError):
    """The fingerprint record exists but could not be read or decoded."""


class RecordNotFound(StorageReadFailure):
    """The fingerprint record file does not exist (cold start)."""


class StorageWriteFailure(ThreadWatcherError):
    """The fingerprint record could not be written."""


class FetchFailure(ThreadWatcherError):
    """A page of the thread could not be retrieved or parsed."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Fetch failed for {url}: {reason}")
        self.url = url
        self.reason = reason


__all__ = [
    "ColdStartUnresolved",
    "FetchFailure",
    "MalformedLocator",
    "RecordNotFound",
    "StorageReadFailure",
    "StorageWriteFailure",
    "ThreadWatcherError",
]
