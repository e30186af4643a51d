"""Content hashes for PII-sensitive deployments.

Producers that must not ship raw prompts or responses can send these hashes
instead and still correlate identical content across events.
"""

import hashlib
import json
from typing import Any

HASH_LENGTH = 16


def hash_text(data: str) -> str:
    """Return the first 16 hex characters of the SHA-256 of `data`."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def hash_object(obj: Any) -> str:
    """Hash an object by its compact JSON rendering."""
    return hash_text(json.dumps(obj, separators=(",", ":"), ensure_ascii=False, default=str))
