"""HTTP crawler walking a thread from a start page through its next links."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from urllib.parse import urlparse

import httpx
import structlog

from ..config import CrawlConfig
from ..errors import FetchFailure
from .models import Item
from .parser import ThreadParser


@dataclass(slots=True)
class CrawlResult:
    """Posts collected by one crawl, in page then encounter order."""

    items: list[Item] = field(default_factory=list)
    pages: list[str] = field(default_factory=list)
    errors: list[FetchFailure] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.errors)


class ThreadFetcher:
    """Fetch thread pages politely and hand back the complete item list."""

    def __init__(
        self,
        config: CrawlConfig,
        logger: structlog.BoundLogger | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or structlog.get_logger("thread_watcher.fetcher")
        self.parser = ThreadParser(config)
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=config.timeout,
            headers={"User-Agent": config.user_agent},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ThreadFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def is_allowed(self, url: str) -> bool:
        if not self.config.allowed_domains:
            return True
        host = (urlparse(url).hostname or "").lower()
        return host in {domain.lower() for domain in self.config.allowed_domains}

    def crawl(self, start_url: str) -> CrawlResult:
        """Follow next-page links until exhausted; fetch errors end the walk."""

        result = CrawlResult()
        visited: set[str] = set()
        url: str | None = start_url
        while url is not None:
            if url in visited:
                self.logger.warning("pagination_loop_detected", url=url)
                break
            if not self.is_allowed(url):
                failure = FetchFailure(url, "domain not allowed")
                self.logger.warning("fetch_error", url=url, error=failure.reason)
                result.errors.append(failure)
                break
            if visited:
                self._polite_delay()
            visited.add(url)
            try:
                landed, html = self.fetch_page(url)
            except FetchFailure as failure:
                self.logger.warning("fetch_error", url=url, error=failure.reason)
                result.errors.append(failure)
                break
            if landed != url:
                # Locators are the post-redirect URL
                self.logger.info("redirected", url=url, landed=landed)
                if landed in visited:
                    self.logger.warning("pagination_loop_detected", url=landed)
                    break
                visited.add(landed)
            posts = self.parser.parse_posts(html, landed)
            result.pages.append(landed)
            result.items.extend(posts)
            self.logger.debug("page_parsed", url=landed, posts=len(posts))
            url = self.parser.parse_next_link(html, landed)
        return result

    def fetch_page(self, url: str) -> tuple[str, str]:
        """Return the URL the response came from after redirects, and its body."""

        attempts = self.config.retry_on_fail + 1
        reason = "no attempt made"
        for attempt in range(1, attempts + 1):
            self.logger.info("visiting", url=url, attempt=attempt)
            try:
                response = self._client.get(url)
            except httpx.HTTPError as exc:
                reason = str(exc) or exc.__class__.__name__
            else:
                if response.is_success:
                    return str(response.url), response.text
                reason = f"unexpected status {response.status_code}"
            if attempt < attempts:
                time.sleep(min(2.0 ** (attempt - 1), 30.0))
        raise FetchFailure(url, reason)

    def _polite_delay(self) -> None:
        low, high = self.config.delay_range
        if high <= 0:
            return
        time.sleep(random.uniform(low, high))


__all__ = ["CrawlResult", "ThreadFetcher"]
