"""DOM helpers extracting posts and the next-page link from a thread page."""

from __future__ import annotations

from urllib.parse import urljoin

from selectolax.parser import HTMLParser

from ..config import CrawlConfig
from .models import Item


class ThreadParser:
    """Parse thread pages according to the configured selectors."""

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config

    def parse_posts(self, html: str, page_url: str) -> list[Item]:
        parser = HTMLParser(html)
        items: list[Item] = []
        for post in parser.css(self.config.post_selector):
            parts = [
                node.text(separator=" ", strip=True)
                for node in post.css(self.config.text_selector)
            ]
            items.append(Item(text=" ".join(part for part in parts if part), source_locator=page_url))
        return items

    def parse_next_link(self, html: str, page_url: str) -> str | None:
        node = HTMLParser(html).css_first(self.config.next_selector)
        if node is None:
            return None
        href = (node.attributes.get("href") or "").strip()
        if not href or href.startswith(("javascript:", "#")):
            return None
        return urljoin(page_url, href)


__all__ = ["ThreadParser"]
