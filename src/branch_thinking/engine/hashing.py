"""Deterministic hashing utilities for branch-thinking.

Provides canonical JSON serialization and SHA-256 hashing for insight
content. All hashing is deterministic: same input always produces
same output, regardless of dict key ordering.
"""

from __future__ import annotations

import hashlib
import json
import re
import unicodedata
from typing import Any

_WHITESPACE = re.compile(r"\s+")


def canonical_json(data: Any) -> bytes:
    """Serialize data to canonical JSON bytes.

    Uses sorted keys, compact separators, and UTF-8 encoding
    to ensure deterministic output.

    Args:
        data: Any JSON-serializable Python object (dict, list, str, int, etc.).

    Returns:
        UTF-8 encoded bytes of the canonical JSON string.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def content_hash(payload: dict) -> str:
    """Compute SHA-256 hash of a payload dict.

    Returns:
        Hex digest of SHA-256 hash.
    """
    return hashlib.sha256(canonical_json(payload)).hexdigest()


def normalize_text(text: str) -> str:
    """Normalize text for deduplication.

    Applies NFKC, collapses runs of whitespace to a single space,
    strips the ends, and casefolds.
    """
    text = unicodedata.normalize("NFKC", text)
    return _WHITESPACE.sub(" ", text).strip().casefold()


def insight_hash(text: str) -> str:
    """Compute the insight id for a key point.

    Texts differing only in case or whitespace hash identically.
    """
    return content_hash({"insight": normalize_text(text)})
