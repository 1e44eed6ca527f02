"""Content fingerprints used as the bill deduplication key."""

from __future__ import annotations

import hashlib

FINGERPRINT_LENGTH = 32


def compute_file_hash(file_bytes: bytes) -> str:
    """Return the MD5 hex digest of raw file bytes.

    A 128-bit digest is enough for a dedup key; it is not a security boundary.
    """
    return hashlib.md5(file_bytes, usedforsecurity=False).hexdigest()
