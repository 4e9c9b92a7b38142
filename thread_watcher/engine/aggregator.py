"""Group crawled posts by the page number embedded in their source URL."""

from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import urlsplit

from ..errors import MalformedLocator
from .models import Item, Page, Window

_PAGE_NUMBER = re.compile(r"(\d+)\.html$")


def page_number(locator: str) -> int:
    """Parse the integer right before ``.html`` at the end of the URL path."""

    path = urlsplit(locator).path
    match = _PAGE_NUMBER.search(path)
    if match is None:
        raise MalformedLocator(locator)
    return int(match.group(1))


class PageAggregator:
    """Bucket posts per page and cut the tail window out of the buckets."""

    def __init__(self, window_pages: int = 2) -> None:
        if window_pages < 1:
            raise ValueError("window_pages must be >= 1")
        self.window_pages = window_pages

    def aggregate(self, items: Iterable[Item]) -> dict[int, Page]:
        pages: dict[int, Page] = {}
        for item in items:
            number = page_number(item.source_locator)
            page = pages.get(number)
            if page is None:
                page = pages[number] = Page(number)
            page.items.append(item)
        return pages

    def build_window(self, pages: dict[int, Page]) -> Window:
        if not pages:
            return {}
        last_page = max(pages)
        window: Window = {}
        for offset in range(self.window_pages):
            number = last_page - offset
            # A page missing from the crawl behaves as an empty page
            window[number] = pages.get(number) or Page(number)
        return window

    def window(self, items: Iterable[Item]) -> Window:
        return self.build_window(self.aggregate(items))


__all__ = ["PageAggregator", "page_number"]
