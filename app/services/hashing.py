"""Content fingerprint for cache keys: SHA-256 of the exact text (no normalization)."""

import hashlib


def content_hash(text: str) -> str:
    """Return the lowercase hex SHA-256 of text (UTF-8). Case and whitespace sensitive."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
