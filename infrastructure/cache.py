"""Per-buffer analysis result cache with single-flight computation.

One AnalysisCache belongs to exactly one SampleBuffer. It is never partially
invalidated: when the engine loads a new buffer it drops the whole cache
object and builds a new one, so no result computed for an older buffer can
survive the swap.

Single flight:
    get_or_compute() holds a per-kind lock while computing, and re-checks the
    table after acquiring it. Concurrent callers asking for the same kind wait
    for the first computation and receive the identical result object.
    Different kinds compute in parallel. A computation that raises is not
    cached; the next caller retries.

Usage::

    from infrastructure.cache import AnalysisCache

    cache = AnalysisCache(buffer)
    result = cache.get_or_compute(AnalysisKind.BEATS, lambda: analyze_beats(buffer))
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Any

from core.analysis.types import AnalysisKind, AnalysisResult, SampleBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Cached analysis result with metadata."""

    result: AnalysisResult
    computed_at: float  # Unix timestamp when cached
    compute_seconds: float  # Wall-clock time of the computation


class AnalysisCache:
    """
    Thread-safe, single-flight cache of analysis results for one buffer.

    Args:
        buffer: The buffer every cached result was computed from.
    """

    def __init__(self, buffer: SampleBuffer) -> None:
        """Initialize an empty cache bound to ``buffer``."""
        self.buffer = buffer
        self._entries: dict[AnalysisKind, CacheEntry] = {}
        self._lock = Lock()
        self._kind_locks: dict[AnalysisKind, Lock] = {}
        self._hits = 0
        self._misses = 0

    def _kind_lock(self, kind: AnalysisKind) -> Lock:
        with self._lock:
            lock = self._kind_locks.get(kind)
            if lock is None:
                lock = self._kind_locks[kind] = Lock()
            return lock

    def get(self, kind: AnalysisKind) -> AnalysisResult | None:
        """Return the cached result for ``kind`` or None. Does not count as a hit."""
        with self._lock:
            entry = self._entries.get(kind)
            return entry.result if entry is not None else None

    def get_or_compute(
        self, kind: AnalysisKind, compute: Callable[[], AnalysisResult]
    ) -> tuple[AnalysisResult, bool]:
        """
        Return the cached result for ``kind``, computing it at most once.

        Args:
            kind: Analysis kind (cache slot).
            compute: Zero-argument callable producing the result.

        Returns:
            (result, hit) where ``hit`` is True when no computation ran in
            this call.

        Raises:
            Whatever ``compute`` raises; nothing is cached in that case.
        """
        with self._lock:
            entry = self._entries.get(kind)
            if entry is not None:
                self._hits += 1
                return entry.result, True

        with self._kind_lock(kind):
            # Another thread may have finished while we waited
            with self._lock:
                entry = self._entries.get(kind)
                if entry is not None:
                    self._hits += 1
                    return entry.result, True
                self._misses += 1

            start = time.perf_counter()
            result = compute()
            entry = CacheEntry(
                result=result,
                computed_at=time.time(),
                compute_seconds=time.perf_counter() - start,
            )
            with self._lock:
                self._entries[kind] = entry
            logger.debug("AnalysisCache: stored %s (%.3fs)", kind.value, entry.compute_seconds)
            return result, False

    def kinds(self) -> tuple[AnalysisKind, ...]:
        """Kinds currently cached, in insertion order."""
        with self._lock:
            return tuple(self._entries)

    def size(self) -> int:
        """Return current number of cached results."""
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Clear all cached results."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, Any]:
        """
        Return basic cache statistics.

        Returns:
            Dict with keys: size, hits, misses, kinds, compute_seconds.
        """
        with self._lock:
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "kinds": [kind.value for kind in self._entries],
                "compute_seconds": {
                    kind.value: entry.compute_seconds for kind, entry in self._entries.items()
                },
            }
