"""
FinScope — In-Process Caching Layer

Process-local TTL cache with per-namespace lifetimes, a read-through helper,
and the ordered fallback chain used by every provider service. Storage is a
``cachetools.TLRUCache`` whose time-to-use comes from each entry's TTL.
"""

from __future__ import annotations

import copy
import functools
import hashlib
import inspect
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, NamedTuple, Optional, Sequence

import structlog
from cachetools import TLRUCache

log = structlog.get_logger(__name__)


# ──────────────────────────────────────────────
# Namespace TTLs (seconds)
# ──────────────────────────────────────────────


TTL_QUOTE = 300         # 5 minutes: market quotes, series, index quotes
TTL_ECONOMIC = 1800     # 30 minutes: economic series and summaries
TTL_FILINGS = 3600      # 1 hour: SEC filings and XBRL facts
TTL_NEWS = 900          # 15 minutes: news articles
TTL_OVERVIEW = 3600     # 1 hour: company overview
TTL_TECHNICAL = 1800    # 30 minutes: technical indicators
TTL_ANALYSIS = 300      # 5 minutes: stock-analysis synthesis

NAMESPACE_TTLS: dict[str, float] = {
    "quote": TTL_QUOTE,
    "economic": TTL_ECONOMIC,
    "filings": TTL_FILINGS,
    "news": TTL_NEWS,
    "overview": TTL_OVERVIEW,
    "technical": TTL_TECHNICAL,
    "analysis": TTL_ANALYSIS,
}

DEFAULT_MAX_ENTRIES = 4096


class CacheEntry(NamedTuple):
    data: Any
    ttl: float


def _time_to_use(_key: str, entry: CacheEntry, now: float) -> float:
    return now + entry.ttl


@dataclass
class _Counters:
    hits: int = 0
    misses: int = 0
    expired: int = 0
    writes: int = 0


# ──────────────────────────────────────────────
# TTL Cache
# ──────────────────────────────────────────────


class TTLCache:
    """String-keyed cache where every entry carries its own TTL.

    Values are deep-copied on the way in and out, so two reads inside the
    TTL window return equal payloads even if a caller mutates its copy.
    When ``max_entries`` is reached the least recently used entry is evicted.
    """

    def __init__(
        self,
        default_ttl: float = 300.0,
        namespace_ttls: Optional[dict[str, float]] = None,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        self.default_ttl = default_ttl
        self.namespace_ttls = dict(NAMESPACE_TTLS if namespace_ttls is None else namespace_ttls)
        self._store: TLRUCache = TLRUCache(maxsize=max_entries, ttu=_time_to_use, timer=clock)
        self._counters = _Counters()

    def ttl_for(self, namespace: str) -> float:
        return self.namespace_ttls.get(namespace, self.default_ttl)

    def _purge(self) -> None:
        self._counters.expired += len(self._store.expire())

    def get(self, key: str) -> Optional[Any]:
        """Fresh value for ``key`` or None. Stale entries are dropped here."""
        self._purge()
        entry = self._store.get(key)
        if entry is None:
            self._counters.misses += 1
            return None
        self._counters.hits += 1
        return copy.deepcopy(entry.data)

    def put_with_ttl(self, key: str, data: Any, ttl: float) -> None:
        self._store[key] = CacheEntry(data=copy.deepcopy(data), ttl=ttl)
        self._counters.writes += 1

    def put(self, namespace: str, key: str, data: Any) -> None:
        self.put_with_ttl(key, data, self.ttl_for(namespace))

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def clear_prefix(self, prefix: str) -> int:
        """Delete all keys under a namespace prefix. Returns count deleted."""
        doomed = [k for k in list(self._store.keys()) if k.startswith(f"{prefix}:")]
        for k in doomed:
            self._store.pop(k, None)
        return len(doomed)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        self._purge()
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def stats(self) -> dict:
        self._purge()
        return {
            "keys": len(self._store),
            "maxEntries": int(self._store.maxsize),
            "hits": self._counters.hits,
            "misses": self._counters.misses,
            "expired": self._counters.expired,
            "writes": self._counters.writes,
        }

    async def read_through(
        self,
        namespace: str,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None,
    ) -> Any:
        """Return the cached value or await ``loader`` and store a non-None result.

        Concurrent misses for the same key each run the loader; the last
        write wins.
        """
        hit = self.get(key)
        if hit is not None:
            log.debug("cache.hit", key=key)
            return hit

        result = await loader()
        if result is not None:
            self.put_with_ttl(key, result, ttl if ttl is not None else self.ttl_for(namespace))
            log.debug("cache.set", key=key, namespace=namespace)
        return result


# ──────────────────────────────────────────────
# Keys + @cached Decorator
# ──────────────────────────────────────────────


def make_cache_key(namespace: str, *parts: Any, **kwargs: Any) -> str:
    """Build a deterministic cache key from call arguments."""
    pieces = [namespace]
    for p in parts:
        pieces.append(str(p))
    for k, v in sorted(kwargs.items()):
        pieces.append(f"{k}={v}")
    raw = ":".join(pieces)
    if len(raw) > 128:
        raw = namespace + ":" + hashlib.md5(raw.encode()).hexdigest()
    return raw


def cached(namespace: str, name: Optional[str] = None):
    """Read-through caching for async service methods.

    Usage::

        @cached("quote")
        async def get_quote(self, symbol):
            ...

    - The owning instance must expose ``self.cache`` (a ``TTLCache``).
    - ``self`` is skipped when building the key.
    - ``None`` results are never stored, so the next call retries upstream.
    """

    def decorator(func: Callable) -> Callable:
        label = name or func.__name__

        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            key = make_cache_key(namespace, label, *args, **kwargs)
            return await self.cache.read_through(namespace, key, lambda: func(self, *args, **kwargs))

        return wrapper

    return decorator


# ──────────────────────────────────────────────
# Ordered Fallback Chain
# ──────────────────────────────────────────────


Loader = Callable[[], Any]


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict)) and not value:
        return True
    return False


@dataclass
class FallbackResult:
    value: Any = None
    provider: Optional[str] = None
    attempted: list[str] = field(default_factory=list)
    used_mock: bool = False

    @property
    def found(self) -> bool:
        return self.value is not None


async def _call(loader: Loader) -> Any:
    result = loader()
    if inspect.isawaitable(result):
        result = await result
    return result


async def first_available(
    loaders: Sequence[tuple[str, Loader]],
    *,
    mock: Optional[Loader] = None,
    label: str = "fallback",
) -> FallbackResult:
    """Evaluate loaders strictly left to right; the first non-empty result wins.

    Exceptions inside a loader are logged and treated as an empty answer.
    Empty lists and dicts count as "no answer" too. ``mock`` runs only
    after every real loader came back empty.
    """
    outcome = FallbackResult()
    for provider, loader in loaders:
        outcome.attempted.append(provider)
        try:
            value = await _call(loader)
        except Exception as exc:
            log.warning(f"{label}.provider_error", provider=provider, error=str(exc))
            value = None
        if not _is_empty(value):
            outcome.value = value
            outcome.provider = provider
            if len(outcome.attempted) > 1:
                log.info(f"{label}.fallback_used", provider=provider, attempted=outcome.attempted)
            return outcome
        log.debug(f"{label}.provider_empty", provider=provider)

    if mock is not None:
        outcome.attempted.append("mock")
        outcome.value = await _call(mock)
        outcome.provider = "mock"
        outcome.used_mock = True
        log.info(f"{label}.mock_used", attempted=outcome.attempted)
    return outcome
