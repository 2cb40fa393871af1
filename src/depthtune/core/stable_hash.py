"""
Stable hashing helpers that do NOT rely on Python's built-in hash().

Same inputs => same integer across processes, platforms and interpreter runs,
which is what cohort bucketing needs.
"""
from __future__ import annotations

import hashlib

_SALT = "depthtune"


def stable_hash(text: str, *, salt: str = _SALT) -> int:
    """Return a non-negative 32-bit integer derived from `text`.

    Uses the first four bytes of SHA-256 over `salt|text`, read big-endian and
    unsigned, so there is no sign to strip and no per-process randomisation.
    """
    digest = hashlib.sha256(f"{salt}|{text}".encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big", signed=False)


def stable_bucket(text: str, buckets: int = 100, *, salt: str = _SALT) -> int:
    """Map `text` onto 0..buckets-1."""
    if buckets <= 0:
        raise ValueError("buckets must be positive.")
    return stable_hash(text, salt=salt) % buckets
