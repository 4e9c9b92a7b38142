"""Content fingerprinting used as the identity key for posts."""

from __future__ import annotations

import hashlib


def fingerprint_text(text: str) -> str:
    """Return the lowercase hex SHA-256 digest of ``text`` encoded as UTF-8."""

    return hashlib.sha256(text.encode("utf-8")).hexdigest()


__all__ = ["fingerprint_text"]
