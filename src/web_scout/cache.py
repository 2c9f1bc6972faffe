"""In-process TTL cache with content validators.

One ``ContentCache`` is built per concern when the services are wired (proxy
HTML, enrichment results) and handed to the components that use it. Entries
live in process memory only: a restart empties the cache, and anything past
its TTL forces a refetch unless the caller explicitly asks for the fast path,
which accepts stale entries to answer immediately.

Entries are never mutated; ``put`` swaps in a whole new ``CacheEntry``. The
validator is a SHA-1 of the value's canonical form, so storing an equal value
keeps the validator and storing a different value changes it.

Stale entries stay available to the fast path until they are older than the
retention window (``STALE_RETENTION_FACTOR`` TTLs by default). ``put`` sweeps
out entries past retention at most once per TTL, so memory is bounded by the
keys touched within one retention window.
"""

from __future__ import annotations

import hashlib
import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any

from .models import CacheEntry

Clock = Callable[[], float]

STALE_RETENTION_FACTOR = 4


class CacheStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    NOT_MODIFIED = "not_modified"


@dataclass(frozen=True)
class CacheLookup:
    status: CacheStatus
    entry: CacheEntry | None = None
    stale: bool = False


def make_validator(value: Any) -> str:
    """Hash a cached value into an opaque validator."""
    if isinstance(value, str):
        payload = value
    elif hasattr(value, "to_dict"):
        payload = json.dumps(value.to_dict(), sort_keys=True)
    else:
        payload = json.dumps(value, sort_keys=True, default=str)
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


def weak_etag(validator: str) -> str:
    return f'W/"{validator}"'


def etag_matches(if_none_match: str | None, validator: str) -> bool:
    """Compare an If-None-Match header against a validator, weak or strong."""
    if not if_none_match:
        return False
    for candidate in if_none_match.split(","):
        token = candidate.strip()
        if token == "*":
            return True
        if token.startswith("W/"):
            token = token[2:]
        if token.strip('"') == validator:
            return True
    return False


class ContentCache:
    """Process-wide key/value store with TTL freshness and a stale-tolerant fast path."""

    def __init__(
        self,
        ttl: float,
        *,
        clock: Clock = time.monotonic,
        name: str = "cache",
        retention: float | None = None,
    ) -> None:
        self._ttl = ttl
        self._retention = max(retention if retention is not None else ttl * STALE_RETENTION_FACTOR, ttl)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()
        self._last_sweep = clock()
        self.name = name

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def retention(self) -> float:
        return self._retention

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.stored_at < self._ttl

    def get(self, key: str, *, fast: bool = False) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if fast or self.is_fresh(entry):
            return entry
        return None

    def put(self, key: str, value: Any) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(
            key=key,
            value=value,
            stored_at=now,
            validator=make_validator(value),
        )
        with self._lock:
            self._entries[key] = entry
            if now - self._last_sweep >= self._ttl:
                self._purge_locked(now)
        return entry

    def lookup(
        self,
        key: str,
        *,
        validator: str | None = None,
        if_none_match: str | None = None,
        fast: bool = False,
    ) -> CacheLookup:
        """Like ``get`` but reports whether the caller's validator is still current.

        The caller's copy is named either by a bare ``validator`` or by a raw
        ``If-None-Match`` header value.
        """
        entry = self.get(key, fast=fast)
        if entry is None:
            return CacheLookup(CacheStatus.MISS)
        stale = not self.is_fresh(entry)
        if validator == entry.validator or etag_matches(if_none_match, entry.validator):
            return CacheLookup(CacheStatus.NOT_MODIFIED, entry, stale)
        return CacheLookup(CacheStatus.HIT, entry, stale)

    def evict(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def purge_expired(self) -> int:
        """Drop entries older than the retention window; returns how many went."""
        with self._lock:
            return self._purge_locked(self._clock())

    def _purge_locked(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if now - entry.stored_at >= self._retention]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
