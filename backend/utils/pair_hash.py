"""Source/markup pair hashing for client reconciliation."""

import hashlib
import json


def hash_pair(source_code: str, preview_markup: str) -> str:
    """
    Compute a deterministic hash of a source/markup pair.

    Clients compare it against the hash of the preview they are showing to
    detect that a newer result has been applied.

    Returns:
        Hexadecimal hash string (first 16 characters of SHA-256)
    """
    serialized = json.dumps([source_code, preview_markup], separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()[:16]
