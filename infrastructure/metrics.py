"""Prometheus metrics for the audio feature engine.

Exposes what the engine detected, not just how long it took, so dashboards
show how often captures are silent, atonal or tempo-less.

Metrics:
    afe_analyses_total            Counter by kind (file/segment/samples) and advanced flag
    afe_analysis_latency_seconds  Histogram of analysis latency by kind
    afe_detections_total          Counter by feature (pitch/bpm/chord) and outcome
                                  (detected/none)
    afe_analysis_errors_total     Counter of failed analyses by error type

Usage::

    from infrastructure.metrics import LatencyTimer, record_analysis

    with LatencyTimer() as t:
        result = analyzer.analyze(buffer)
    record_analysis(kind="file", result=result, latency_seconds=t.elapsed)
"""

from __future__ import annotations

import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from core.audio.types import AnalysisResult


_REGISTRY = CollectorRegistry()

analyses_total = Counter(
    "afe_analyses_total",
    "Completed analyses by kind and whether advanced analysis ran",
    ["kind", "advanced"],
    registry=_REGISTRY,
)

analysis_latency_seconds = Histogram(
    "afe_analysis_latency_seconds",
    "Analysis latency in seconds (decoding included for file analyses)",
    ["kind"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=_REGISTRY,
)

detections_total = Counter(
    "afe_detections_total",
    "Detector outcomes by feature",
    ["feature", "outcome"],
    registry=_REGISTRY,
)

analysis_errors_total = Counter(
    "afe_analysis_errors_total",
    "Analyses that failed before producing a result",
    ["error"],
    registry=_REGISTRY,
)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def _outcome(detected: bool) -> str:
    return "detected" if detected else "none"


def record_analysis(
    *,
    kind: str,
    result: AnalysisResult,
    latency_seconds: float,
) -> None:
    """Record a completed analysis and what it found.

    Args:
        kind: One of "file", "segment", "samples".
        result: The analysis result.
        latency_seconds: Wall-clock time in seconds.
    """
    advanced = result.advanced
    analyses_total.labels(kind=kind, advanced=str(advanced is not None).lower()).inc()
    analysis_latency_seconds.labels(kind=kind).observe(latency_seconds)
    detections_total.labels(feature="pitch", outcome=_outcome(result.pitch is not None)).inc()
    if advanced is not None:
        detections_total.labels(feature="bpm", outcome=_outcome(advanced.bpm is not None)).inc()
        detections_total.labels(
            feature="chord", outcome=_outcome(advanced.chord is not None)
        ).inc()


def record_analysis_error(error: str) -> None:
    """Increment the failed-analysis counter.

    Args:
        error: Short error class, e.g. "not_found", "unsupported", "decode".
    """
    analysis_errors_total.labels(error=error).inc()


def get_metrics_response() -> tuple[bytes, str]:
    """Generate Prometheus text exposition format.

    Returns:
        Tuple of (body_bytes, content_type_string).
    """
    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Context manager for measuring latency.

    Usage::

        with LatencyTimer() as t:
            result = run_pipeline()
        record_analysis(kind="file", result=result, latency_seconds=t.elapsed)
    """

    def __init__(self) -> None:
        """Initialize timer."""
        self._start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        """Start timing."""
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        """Stop timing and record elapsed."""
        self.elapsed = time.perf_counter() - self._start
