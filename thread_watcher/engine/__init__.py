"""Engine components wiring fetch → aggregate → diff → export."""

from .aggregator import PageAggregator, page_number
from .diff import DiffEngine, DiffResult, strip_to_fingerprints
from .fetcher import CrawlResult, ThreadFetcher
from .fingerprint import fingerprint_text
from .models import FingerprintOnly, FingerprintRecord, Item, Page, Window
from .parser import ThreadParser

__all__ = [
    "CrawlResult",
    "DiffEngine",
    "DiffResult",
    "FingerprintOnly",
    "FingerprintRecord",
    "Item",
    "Page",
    "PageAggregator",
    "ThreadFetcher",
    "ThreadParser",
    "Window",
    "fingerprint_text",
    "page_number",
    "strip_to_fingerprints",
]
