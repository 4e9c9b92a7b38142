"""Incremental new-post detection for paginated forum threads."""

__version__ = "0.1.0"
