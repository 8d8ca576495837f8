"""
Lightweight hashing utilities.

- Provides a stable fingerprint helper (lru_cache) for repeated keys, used to
  tag audit log lines with a short configuration hash.
"""

from functools import lru_cache
from hashlib import sha256


@lru_cache(maxsize=1024)
def fingerprint(key: str) -> str:
    """
    Deterministically hash a string key (cached to avoid repeated hashing).
    """
    return sha256(key.encode("utf-8")).hexdigest()
