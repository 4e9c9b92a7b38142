"""Value types flowing between the aggregator, diff engine and record store."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from .fingerprint import fingerprint_text


@dataclass(frozen=True, slots=True)
class FingerprintOnly:
    """Projection of a post reduced to its fingerprint; the only diffable type."""

    fingerprint: str


@dataclass(slots=True)
class Item:
    """A post extracted from one page of the thread."""

    text: str
    source_locator: str
    fingerprint: str = field(init=False)

    def __post_init__(self) -> None:
        self.fingerprint = fingerprint_text(self.text)

    def project(self) -> FingerprintOnly:
        return FingerprintOnly(self.fingerprint)


@dataclass(slots=True)
class Page:
    """Posts sharing one page number, in the order they were encountered."""

    number: int
    items: list[Item] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)


# Page number -> Page of full items; only the tail pages are retained.
Window = dict[int, Page]


@dataclass(frozen=True)
class FingerprintRecord:
    """Fingerprint-only snapshot of a window, keyed by integer page number.

    This is both what gets persisted between runs and what the current run is
    compared against. Equality is structural and ignores key order.
    """

    pages: Mapping[int, tuple[FingerprintOnly, ...]] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "FingerprintRecord":
        return cls({})

    @property
    def is_empty(self) -> bool:
        return not self.pages

    def page_numbers(self) -> list[int]:
        return sorted(self.pages)

    def lowest_page(self) -> int | None:
        return min(self.pages) if self.pages else None

    def fingerprints(self) -> frozenset[FingerprintOnly]:
        """Flatten every page into one unordered set."""

        return frozenset(entry for entries in self.pages.values() for entry in entries)

    def __iter__(self) -> Iterator[tuple[int, tuple[FingerprintOnly, ...]]]:
        for number in self.page_numbers():
            yield number, self.pages[number]

    def to_payload(self) -> dict[str, Any]:
        """Render the persisted JSON shape: ``{"5": {"items": [{"texthash": ...}]}}``."""

        return {
            str(number): {"items": [{"texthash": entry.fingerprint} for entry in entries]}
            for number, entries in self
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "FingerprintRecord":
        if not isinstance(payload, Mapping):
            raise ValueError("Fingerprint record must be a JSON object")
        pages: dict[int, tuple[FingerprintOnly, ...]] = {}
        for key, page in payload.items():
            number = int(key)
            raw_items: Iterable[Any] = ()
            if isinstance(page, Mapping):
                raw_items = page.get("items") or ()
            elif page is not None:
                raise ValueError(f"Page {key!r} must be an object")
            entries = []
            for raw in raw_items:
                if not isinstance(raw, Mapping) or not isinstance(raw.get("texthash"), str):
                    raise ValueError(f"Page {key!r} holds an item without a texthash")
                entries.append(FingerprintOnly(raw["texthash"]))
            pages[number] = tuple(entries)
        return cls(pages)


__all__ = ["FingerprintOnly", "FingerprintRecord", "Item", "Page", "Window"]
