"""
ingestion/analysis_engine.py — Orchestrator: buffer ownership, dispatch, caching.

AnalysisEngine is the single integration point between callers (CLI, viewers,
mesh export) and the pure analyzers:

    audio file / decoded audio / SampleBuffer
        │
        ├─ load_buffer()      replaces the AnalysisCache wholesale
        │       ↓
        ├─ analyze_for_tab()  kind → ANALYZERS[kind] via the cache
        │       ↓             (at most one computation per kind per buffer)
        └─ AnalysisResult | None

Failure isolation: an analyzer that raises is logged with its traceback and
reported as None. Nothing is cached for it, and results already cached for
other kinds are untouched.

This module is in `ingestion/` because it owns mutable state (the loaded
buffer and its cache) and may read files. Analysis itself lives in `core/`.

Usage:
    engine = AnalysisEngine()
    engine.load_file("/path/to/track.wav", duration=30.0)
    beats = engine.analyze_for_tab("beats")
    if beats is not None:
        print(beats.tempo)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from threading import Lock
from typing import Any

from core.analysis.registry import ANALYZERS, Analyzer, config_for, parse_kind
from core.analysis.types import AnalysisKind, AnalysisResult, SampleBuffer
from core.config import DEFAULT_CONFIG, AnalysisConfig
from infrastructure.cache import AnalysisCache
from infrastructure.metrics import LatencyTimer, record_analysis, record_cache_invalidation
from ingestion.audio_loader import load_audio

logger = logging.getLogger(__name__)


class AnalysisEngine:
    """Owns the loaded buffer and its result cache.

    Thread-safe: analyze_for_tab may be called from several threads, and
    load_buffer may race with running analyses. A result computed for a buffer
    that has since been replaced lands in the discarded cache, never in the
    new one.

    Example:
        engine = AnalysisEngine()
        engine.load_buffer(SampleBuffer(samples, 44100))
        results = engine.analyze_many(["basic", "beats", "tempo"])
    """

    def __init__(
        self,
        config: AnalysisConfig = DEFAULT_CONFIG,
        *,
        analyzers: Mapping[AnalysisKind, Analyzer] = ANALYZERS,
        librosa: Any = None,
    ) -> None:
        """Initialise the engine.

        Args:
            config: Per-kind analyzer configuration.
            analyzers: Dispatch table; tests inject failing or counting stubs.
            librosa: Injected librosa module for load_file(). None = import
                     lazily on first use.
        """
        self.config = config
        self._analyzers = analyzers
        self._librosa = librosa
        self._lock = Lock()
        self._cache: AnalysisCache | None = None
        self._source: Any = None

    # ------------------------------------------------------------------
    # Buffer ownership
    # ------------------------------------------------------------------

    @property
    def buffer(self) -> SampleBuffer | None:
        """Currently loaded buffer, or None."""
        with self._lock:
            return self._cache.buffer if self._cache is not None else None

    def load_buffer(self, source: Any) -> SampleBuffer:
        """Make ``source`` the current buffer and drop every cached result.

        Args:
            source: A SampleBuffer, or a decoded-audio object exposing
                    get_channel_data() and sample_rate (channel 0 is used).

        Returns:
            The SampleBuffer now being analyzed.

        Raises:
            MissingInputError: If a decoded object lacks channel data or a
                               sample rate.
        """
        buffer = source if isinstance(source, SampleBuffer) else SampleBuffer.from_decoded(source)
        with self._lock:
            replaced = self._cache is not None
            self._cache = AnalysisCache(buffer)
            self._source = source
        if replaced:
            record_cache_invalidation()
        logger.info(
            "Loaded buffer: %d samples @ %d Hz (%.2fs)",
            buffer.n_samples,
            buffer.sample_rate,
            buffer.duration,
        )
        return buffer

    def load_file(
        self, path: str | Path, *, duration: float | None = None, sr: int | None = None
    ) -> SampleBuffer:
        """Decode ``path`` and load channel 0 as the current buffer.

        Raises:
            FileNotFoundError / ValueError / RuntimeError: see load_audio().
        """
        decoded = load_audio(path, duration=duration, sr=sr, librosa=self._librosa)
        return self.load_buffer(decoded)

    def _is_current(self, source: Any) -> bool:
        with self._lock:
            if self._cache is None:
                return False
            return source is self._source or source is self._cache.buffer

    def clear(self) -> None:
        """Drop every cached result for the current buffer."""
        with self._lock:
            if self._cache is None:
                return
            self._cache = AnalysisCache(self._cache.buffer)
        record_cache_invalidation()
        logger.info("Analysis cache cleared")

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def _compute(self, kind: AnalysisKind, buffer: SampleBuffer) -> AnalysisResult:
        logger.info("Computing %s analysis (%.2fs of audio)", kind.value, buffer.duration)
        with LatencyTimer() as t:
            result = self._analyzers[kind](buffer, config_for(kind, self.config))
        record_analysis(kind=kind.value, status="miss", latency_seconds=t.elapsed)
        logger.info("%s analysis done in %.3fs", kind.value, t.elapsed)
        return result

    def analyze_for_tab(
        self, kind: AnalysisKind | str, buffer: Any = None
    ) -> AnalysisResult | None:
        """Return the result of ``kind`` for the current (or given) buffer.

        Args:
            kind: AnalysisKind or its string tag ("basic", "beats", ...).
            buffer: When given and not the current buffer, it is loaded first,
                    which invalidates the cache.

        Returns:
            The cached or freshly computed result; the identical object on
            every call for the same buffer and kind. None when no buffer is
            loaded or the analysis failed.
        """
        tag = kind.value if isinstance(kind, AnalysisKind) else str(kind)
        try:
            parsed = parse_kind(kind)
            if buffer is not None and not self._is_current(buffer):
                self.load_buffer(buffer)
            with self._lock:
                cache = self._cache
            if cache is None:
                logger.warning("analyze_for_tab(%s): no buffer loaded", tag)
                return None
            result, hit = cache.get_or_compute(parsed, lambda: self._compute(parsed, cache.buffer))
        except Exception:
            logger.exception("Analysis %r failed", tag)
            record_analysis(kind=tag, status="error")
            return None

        if hit:
            logger.debug("Cache hit: %s", parsed.value)
            record_analysis(kind=parsed.value, status="hit")
        return result

    def analyze_many(
        self,
        kinds: Iterable[AnalysisKind | str],
        buffer: Any = None,
        max_workers: int | None = None,
    ) -> dict[AnalysisKind, AnalysisResult | None]:
        """Run several kinds concurrently on one buffer.

        Duplicate kinds are computed once. Unknown tags are skipped with a
        warning.

        Returns:
            kind → result (or None for a failed analysis), in request order.
        """
        if buffer is not None and not self._is_current(buffer):
            self.load_buffer(buffer)

        unique: list[AnalysisKind] = []
        for kind in kinds:
            try:
                parsed = parse_kind(kind)
            except ValueError as exc:
                logger.warning("Skipping analysis kind: %s", exc)
                continue
            if parsed not in unique:
                unique.append(parsed)
        if not unique:
            return {}

        with ThreadPoolExecutor(
            max_workers=max_workers or len(unique), thread_name_prefix="analysis"
        ) as executor:
            results = list(executor.map(self.analyze_for_tab, unique))
        return dict(zip(unique, results))

    def cached(self, kind: AnalysisKind | str) -> AnalysisResult | None:
        """Cached result for ``kind`` without computing; None when absent."""
        parsed = parse_kind(kind)
        with self._lock:
            cache = self._cache
        return cache.get(parsed) if cache is not None else None

    def stats(self) -> dict[str, Any]:
        """Cache statistics for the current buffer (empty dict when none)."""
        with self._lock:
            cache = self._cache
        return cache.stats() if cache is not None else {}
