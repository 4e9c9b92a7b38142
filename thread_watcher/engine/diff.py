"""Page-boundary agnostic change detection between two fingerprint records."""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import FingerprintOnly, FingerprintRecord, Item, Window


def strip_to_fingerprints(window: Window) -> FingerprintRecord:
    """Project a window of full posts down to the persisted fingerprint shape."""

    return FingerprintRecord(
        {number: tuple(item.project() for item in page.items) for number, page in window.items()}
    )


@dataclass
class DiffResult:
    """Outcome of comparing the current window with the previous record."""

    changed: bool
    new_items: list[Item] = field(default_factory=list)
    overlap: int = 0
    overflow_suspected: bool = False


class DiffEngine:
    """Compare flattened fingerprint sets so posts moving pages are not new.

    Posts migrate from page N to N+1 as the thread grows, so a page-by-page
    comparison would flag unchanged posts. Both records are flattened into
    unordered sets before taking the difference.
    """

    def diff(
        self, current: FingerprintRecord, previous: FingerprintRecord
    ) -> set[FingerprintOnly]:
        return set(current.fingerprints() - previous.fingerprints())

    def resolve(self, window: Window, new: set[FingerprintOnly]) -> list[Item]:
        """Map new fingerprints back to full posts in page then encounter order."""

        resolved: list[Item] = []
        emitted: set[FingerprintOnly] = set()
        for number in sorted(window):
            for item in window[number].items:
                key = item.project()
                if key in new and key not in emitted:
                    emitted.add(key)
                    resolved.append(item)
        return resolved

    def compare(
        self,
        window: Window,
        current: FingerprintRecord,
        previous: FingerprintRecord,
    ) -> DiffResult:
        if current == previous:
            return DiffResult(changed=False)
        current_set = current.fingerprints()
        previous_set = previous.fingerprints()
        overlap = len(current_set & previous_set)
        new = self.diff(current, previous)
        return DiffResult(
            changed=True,
            new_items=self.resolve(window, new),
            overlap=overlap,
            overflow_suspected=bool(previous_set) and bool(current_set) and overlap == 0,
        )


__all__ = ["DiffEngine", "DiffResult", "strip_to_fingerprints"]
