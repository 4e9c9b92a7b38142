"""Infra layer utilities (record storage)."""

from .storage import FingerprintStore

__all__ = ["FingerprintStore"]
