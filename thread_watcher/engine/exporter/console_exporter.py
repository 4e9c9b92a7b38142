"""Print new posts to the terminal."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

from ..models import Item
from .base import BaseExporter


class ConsoleExporter(BaseExporter):
    """Write each new post's text to a rich console, separated by a rule."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def export(self, item: Item) -> None:
        self.console.rule(style="dim")
        self.console.print(escape(item.text))

    def flush(self) -> None:
        self.console.file.flush()

    def close(self) -> None:
        self.flush()


__all__ = ["ConsoleExporter"]
