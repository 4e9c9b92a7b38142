"""Configuration package exports."""

from .loader import CONFIG_FILENAME, ConfigLocator, ConfigRepository
from .models import (
    CrawlConfig,
    PersistenceConfig,
    ReportConfig,
    ScheduleConfig,
    WatcherConfig,
)

__all__ = [
    "CONFIG_FILENAME",
    "ConfigLocator",
    "ConfigRepository",
    "CrawlConfig",
    "PersistenceConfig",
    "ReportConfig",
    "ScheduleConfig",
    "WatcherConfig",
]
