"""Append new posts to a JSON-lines file."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from ..aggregator import page_number
from ..models import Item
from .base import BaseExporter


class FileExporter(BaseExporter):
    """Write one JSON object per detected post to ``path``."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("a", encoding="utf-8")

    def export(self, item: Item) -> None:
        record = {
            "fingerprint": item.fingerprint,
            "page": page_number(item.source_locator),
            "url": item.source_locator,
            "text": item.text,
            "detected_at": datetime.now(timezone.utc).isoformat(),
        }
        json.dump(record, self._file, ensure_ascii=False)
        self._file.write("\n")

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        self._file.close()


__all__ = ["FileExporter"]
