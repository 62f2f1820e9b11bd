"""
cache/store.py -- Short-lived in-memory cache of validated session tokens.

Avoids a store round trip on every authenticated request. A validated token is
remembered together with its principal for a fixed TTL (default 60 seconds)
counted from the last validation or login.

Staleness:
  The cache is never told about logout. A revoked token keeps validating from
  the cache until its entry's TTL lapses -- at most one TTL after logout. The
  durable token expiry is always longer than the TTL (enforced in Settings),
  so the cache cannot extend a session past its own expiry by more than that.

Size:
  There is no eviction. Stale entries stay until the same token is validated
  again and overwrites them. Memory is bounded by the number of distinct tokens
  seen, which is small for the deployments this targets.

Thread safety:
  Every read and every write takes the same lock.

Usage:
    cache = TokenCache(ttl_seconds=60)
    cache.store(token, principal)
    principal = cache.lookup(token)   # Principal or None on miss/expiry
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from auth.models import CachedEntry

if TYPE_CHECKING:
    from auth.models import Principal

_DEFAULT_TTL = 60  # seconds


class TokenCache:
    def __init__(self, ttl_seconds: float = _DEFAULT_TTL, clock: Callable[[], float] = time.time) -> None:
        self.ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CachedEntry] = {}
        self._lock = threading.Lock()

    def lookup(self, token: str) -> Principal | None:
        """Return the cached principal if the entry exists and its TTL has not lapsed."""
        with self._lock:
            entry = self._entries.get(token)
        if entry is None or self._clock() >= entry.cache_expiry:
            return None
        return entry.principal

    def store(self, token: str, principal: Principal) -> None:
        """Insert or overwrite the entry for token, restarting its TTL."""
        entry = CachedEntry(principal=principal, cache_expiry=self._clock() + self.ttl)
        with self._lock:
            self._entries[token] = entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
