"""Pydantic models describing the watched thread and runtime behaviour."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_THREAD_URL = (
    "https://www.mygarage.ro/componente/"
    "110958-cele-mai-bune-oferte-ale-zilei-cititi-regula-din-primul-post-inainte-sa-postati-{page}.html"
)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/114.0"
)


class CrawlConfig(BaseModel):
    """How to walk the thread and pull posts out of each page."""

    thread_url: str = DEFAULT_THREAD_URL
    allowed_domains: list[str] = Field(default_factory=lambda: ["www.mygarage.ro"])
    user_agent: str = DEFAULT_USER_AGENT
    post_selector: str = ".ppost"
    text_selector: str = "[id^=post_message]"
    next_selector: str = "[rel=next]"
    delay_range: tuple[float, float] = (0.0, 5.0)
    timeout: float = 20.0
    retry_on_fail: int = 0

    @field_validator("delay_range", mode="before")
    @classmethod
    def _coerce_delay(cls, value: Any) -> tuple[float, float]:
        if value in (None, ""):
            return (0.0, 0.0)
        if isinstance(value, (list, tuple)) and len(value) == 2:
            low, high = float(value[0]), float(value[1])
            if low < 0 or high < 0:
                raise ValueError("Delay range values must be non-negative")
            if high < low:
                raise ValueError("Delay range upper bound must be >= lower bound")
            return (low, high)
        raise ValueError("Delay range expects a two-item list or tuple")

    @model_validator(mode="after")
    def _validate_crawl(self) -> "CrawlConfig":
        if "{page}" not in self.thread_url:
            raise ValueError("thread_url must contain a {page} placeholder")
        if self.retry_on_fail < 0:
            raise ValueError("retry_on_fail must be >= 0")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        for selector in (self.post_selector, self.text_selector, self.next_selector):
            if not selector.strip():
                raise ValueError("CSS selectors cannot be empty")
        return self

    def page_url(self, page: str) -> str:
        return self.thread_url.replace("{page}", str(page).strip())


class ScheduleConfig(BaseModel):
    """Fixed delay between the end of one cycle and the start of the next."""

    interval_seconds: float = 120.0

    @field_validator("interval_seconds")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("interval_seconds must be > 0")
        return value


class PersistenceConfig(BaseModel):
    """Where the fingerprint record lives and how many tail pages it keeps."""

    record_file: Path = Field(default=Path("persist.json"))
    window_pages: int = 2

    @field_validator("record_file", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("window_pages")
    @classmethod
    def _window_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("window_pages must be >= 1")
        return value

    def resolved_record_path(self, base_dir: Path) -> Path:
        """Return record path relative to the data directory."""

        if not self.record_file.is_absolute():
            return (base_dir / self.record_file).resolve()
        return self.record_file


class ReportConfig(BaseModel):
    """Sinks receiving newly detected posts."""

    console: bool = True
    jsonl_file: Path | None = None

    @field_validator("jsonl_file", mode="before")
    @classmethod
    def _coerce_optional_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)

    def resolved_jsonl_path(self, base_dir: Path) -> Path | None:
        if self.jsonl_file is None:
            return None
        if not self.jsonl_file.is_absolute():
            return (base_dir / self.jsonl_file).resolve()
        return self.jsonl_file


class WatcherConfig(BaseModel):
    """Top level configuration document."""

    crawl: CrawlConfig = Field(default_factory=CrawlConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)


__all__ = [
    "CrawlConfig",
    "DEFAULT_THREAD_URL",
    "DEFAULT_USER_AGENT",
    "PersistenceConfig",
    "ReportConfig",
    "ScheduleConfig",
    "WatcherConfig",
]
