"""Bounded in-process cache with sliding TTL and oldest-touched eviction.

``GenericCache`` is the only shared mutable store in the package. Every
mutation goes through ``set``/``delete``/``clear``/eviction/``sweep`` under a
single re-entrant lock, so a reader never sees a half-written entry.

Expiry is sliding: a successful ``get`` resets the entry's idle window. A
daemon sweeper thread removes expired entries every ``cleanup_interval``
seconds and re-checks each candidate right before deleting it, so an entry
refreshed after the candidate snapshot survives the sweep.
"""
from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

import orjson
from pydantic import BaseModel

from .logger import get_logger
from .schema import CacheStats

log = get_logger("cache")

T = TypeVar("T")

DEFAULT_TTL = 60.0 * 60  # 1 hour
DEFAULT_MAX_SIZE = 1000
DEFAULT_CLEANUP_INTERVAL = 60.0 * 5


@dataclass
class CacheEntry(Generic[T]):
    data: T
    last_touch: float
    ttl: float
    access_count: int = 0

    def is_expired(self, now: float) -> bool:
        return now - self.last_touch >= self.ttl


def _is_positive_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def _clamp(value: Any, default: float, name: str) -> float:
    if _is_positive_number(value):
        return value
    log.warning("Invalid cache %s=%r, using default %r", name, value, default)
    return default


def _normalize_key(key: Any) -> str:
    return key if isinstance(key, str) else str(key)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump()
    return str(obj)


def cache_key(prefix: str, *parts: str) -> str:
    """Compose ``prefix:part1:part2`` keys.

    Example: cache_key("scenario", "invest-1000-...", "en") -> "scenario:invest-1000-...:en"
    """
    return ":".join([prefix, *parts])


class GenericCache(Generic[T]):
    """Thread-safe TTL cache bounded by ``max_size`` entries.

    Invalid construction arguments are clamped to defaults rather than
    rejected. After :meth:`destroy` every operation is a silent no-op.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        max_size: int = DEFAULT_MAX_SIZE,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        start_sweeper: bool = True,
        name: str = "cache",
    ):
        self.default_ttl = float(_clamp(default_ttl, DEFAULT_TTL, "default_ttl"))
        size = int(_clamp(max_size, DEFAULT_MAX_SIZE, "max_size"))
        self.max_size = size if size > 0 else DEFAULT_MAX_SIZE
        self.cleanup_interval = float(_clamp(cleanup_interval, DEFAULT_CLEANUP_INTERVAL, "cleanup_interval"))
        self.name = name
        self._clock = clock
        self._store: Dict[str, CacheEntry[T]] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._destroyed = False
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if start_sweeper:
            self._sweeper = threading.Thread(
                target=self._sweep_loop, name=f"{name}-sweeper", daemon=True
            )
            self._sweeper.start()

    # ------------------------------------------------------------------ core

    def set(self, key: Any, value: T, ttl: Optional[float] = None) -> None:
        k = _normalize_key(key)
        entry_ttl = float(ttl) if _is_positive_number(ttl) else self.default_ttl
        with self._lock:
            if self._destroyed:
                return
            if k not in self._store and len(self._store) >= self.max_size:
                self._evict_oldest()
            self._store[k] = CacheEntry(data=value, last_touch=self._clock(), ttl=entry_ttl)

    def get(self, key: Any, default: Optional[T] = None) -> Optional[T]:
        k = _normalize_key(key)
        with self._lock:
            if self._destroyed:
                return default
            entry = self._store.get(k)
            if entry is None:
                self._misses += 1
                return default
            now = self._clock()
            if entry.is_expired(now):
                del self._store[k]
                self._misses += 1
                return default
            entry.last_touch = now
            entry.access_count += 1
            self._hits += 1
            return entry.data

    def has(self, key: Any) -> bool:
        """Presence check; drops an expired entry but does not refresh a live one."""
        k = _normalize_key(key)
        with self._lock:
            if self._destroyed:
                return False
            entry = self._store.get(k)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._store[k]
                return False
            return True

    def delete(self, key: Any) -> bool:
        k = _normalize_key(key)
        with self._lock:
            if self._destroyed:
                return False
            return self._store.pop(k, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def size(self) -> int:
        """Number of live entries; expired ones are pruned first."""
        with self._lock:
            if self._destroyed:
                return 0
            now = self._clock()
            for k in [k for k, e in self._store.items() if e.is_expired(now)]:
                del self._store[k]
            return len(self._store)

    def keys(self, prefix: str = "") -> List[str]:
        """Snapshot of live keys, optionally restricted to a prefix."""
        with self._lock:
            now = self._clock()
            return [
                k for k, e in self._store.items()
                if k.startswith(prefix) and not e.is_expired(now)
            ]

    def access_counts(self, prefix: str = "") -> Dict[str, int]:
        with self._lock:
            now = self._clock()
            return {
                k: e.access_count for k, e in self._store.items()
                if k.startswith(prefix) and not e.is_expired(now)
            }

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: Any) -> bool:
        return self.has(key)

    # ------------------------------------------------------------ accounting

    def stats(self) -> CacheStats:
        with self._lock:
            now = self._clock()
            total = len(self._store)
            expired = sum(1 for e in self._store.values() if e.is_expired(now))
            hits, misses = self._hits, self._misses
        lookups = hits + misses
        return CacheStats(
            total=total,
            valid=total - expired,
            expired=expired,
            max_size=self.max_size,
            hit_rate=(hits / lookups) if lookups else 0.0,
            hits=hits,
            misses=misses,
            approx_bytes=self.estimate_memory(),
        )

    def estimate_memory(self) -> int:
        """Rough byte size of keys plus JSON-encoded values.

        Values that cannot be encoded (circular references, oversized ints)
        are left out of the total.
        """
        with self._lock:
            items = [(k, e.data) for k, e in self._store.items()]
        total = 0
        for key, data in items:
            total += len(key.encode("utf-8", errors="replace"))
            try:
                total += len(orjson.dumps(data, default=_json_default, option=orjson.OPT_NON_STR_KEYS))
            except (orjson.JSONEncodeError, TypeError, ValueError, RecursionError):
                continue
        return total

    # -------------------------------------------------------------- eviction

    def _evict_oldest(self) -> None:
        # Caller holds the lock. Strict "<" keeps the first-found entry on ties.
        oldest_key = None
        oldest_touch = math.inf
        for k, entry in self._store.items():
            if entry.last_touch < oldest_touch:
                oldest_touch = entry.last_touch
                oldest_key = k
        if oldest_key is not None:
            del self._store[oldest_key]
            log.debug("%s evicted %r", self.name, oldest_key)

    def _expired_keys(self) -> List[str]:
        with self._lock:
            now = self._clock()
            return [k for k, e in self._store.items() if e.is_expired(now)]

    def sweep(self) -> int:
        """Delete expired entries; returns how many were removed."""
        if self._destroyed:
            return 0
        removed = 0
        for k in self._expired_keys():
            with self._lock:
                entry = self._store.get(k)
                # re-check: the entry may have been refreshed since the snapshot
                if entry is not None and entry.is_expired(self._clock()):
                    del self._store[k]
                    removed += 1
        return removed

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.cleanup_interval):
            try:
                removed = self.sweep()
            except Exception:
                log.exception("%s sweep failed", self.name)
                continue
            if removed:
                log.debug("%s sweep removed %d expired entries", self.name, removed)

    # ------------------------------------------------------------- lifecycle

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def destroy(self) -> None:
        """Stop the sweeper and drop all entries. Safe to call repeatedly."""
        with self._lock:
            if self._destroyed:
                return
            self._destroyed = True
            self._store.clear()
        self._stop.set()
        sweeper = self._sweeper
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join()
        self._sweeper = None

    def __enter__(self) -> "GenericCache[T]":
        return self

    def __exit__(self, *exc) -> None:
        self.destroy()


__all__ = [
    "CacheEntry",
    "GenericCache",
    "cache_key",
    "DEFAULT_TTL",
    "DEFAULT_MAX_SIZE",
    "DEFAULT_CLEANUP_INTERVAL",
]
