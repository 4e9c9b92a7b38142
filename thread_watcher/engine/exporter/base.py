"""Reporting sink interface for newly detected posts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from ..models import Item


class BaseExporter(ABC):
    """Uniform sink contract; each new post is exported once per cycle."""

    @abstractmethod
    def export(self, item: Item) -> None:
        """Emit a single newly detected post."""

    def export_many(self, items: Iterable[Item]) -> None:
        for item in items:
            self.export(item)

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseExporter"]
