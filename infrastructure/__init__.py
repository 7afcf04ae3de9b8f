"""Infrastructure layer — caching and observability for the analysis engine.

Modules:
    cache       Per-buffer, single-flight analysis result cache.
    metrics     Prometheus metrics registry.
"""
