"""Statistics and formatting helpers for k6 result reporting.

This module provides utilities for:
- Computing linear-interpolation percentiles from pre-sorted samples.
- Folding raw trend samples into k6-style aggregates (avg, min, med, max, p90/p95/p99).
- Reducing a parsed k6 summary map into canonical ``TestStatistics``.
- Deriving the overall statistics of a multi-category run.
- Formatting milliseconds, counts and percentages for HTML reports.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Mapping, Optional

from .models import OverallStatistics, TestStatistics

HTTP_REQS = "http_reqs"
HTTP_REQ_DURATION = "http_req_duration"
HTTP_REQ_FAILED = "http_req_failed"
VUS = "vus"
VUS_MAX = "vus_max"
ITERATIONS = "iterations"

# Lookup order for peak concurrency: the declared maximum beats the sampled gauge.
_CONCURRENCY_SOURCES = (
    (VUS_MAX, "max"),
    (VUS_MAX, "value"),
    (VUS, "max"),
    (VUS, "value"),
)


def calculate_percentile(sorted_values: List[float], p: float) -> Optional[float]:
    """Calculate a percentile using linear interpolation.

    The input sequence is expected to already be sorted in ascending order.
    - Empty input returns ``None``.
    - ``p <= 0`` returns the first value.
    - ``p >= 100`` returns the last value.
    - Otherwise, percentile is linearly interpolated between adjacent ranks.

    Args:
        sorted_values: Sorted numeric samples.
        p: Percentile in the inclusive range ``[0, 100]``.

    Returns:
        Percentile value as ``float`` or ``None`` when input is empty.

    Raises:
        ValueError: If ``p`` is outside ``[0, 100]``.
    """
    if not 0 <= p <= 100:
        raise ValueError("Percentile 'p' must be in the range [0, 100].")

    if not sorted_values:
        return None

    if p <= 0:
        return sorted_values[0]

    if p >= 100:
        return sorted_values[-1]

    position = (len(sorted_values) - 1) * (p / 100.0)
    lower_index = math.floor(position)
    upper_index = math.ceil(position)

    if lower_index == upper_index:
        return sorted_values[int(position)]

    lower_value = sorted_values[lower_index]
    upper_value = sorted_values[upper_index]
    return lower_value + (upper_value - lower_value) * (position - lower_index)


def compute_trend(samples: Iterable[float]) -> Dict[str, float]:
    """Aggregate raw trend samples the way k6 summarises a Trend metric.

    ``None`` and NaN samples are ignored. Returns an empty mapping when no
    valid sample remains, so callers fall back to their zero defaults.
    """
    clean_samples = sorted(
        float(sample) for sample in samples if sample is not None and not math.isnan(sample)
    )
    if not clean_samples:
        return {}

    return {
        "avg": sum(clean_samples) / len(clean_samples),
        "min": clean_samples[0],
        "med": calculate_percentile(clean_samples, 50),
        "max": clean_samples[-1],
        "p(90)": calculate_percentile(clean_samples, 90),
        "p(95)": calculate_percentile(clean_samples, 95),
        "p(99)": calculate_percentile(clean_samples, 99),
    }


def _number(summary: Mapping[str, Mapping[str, float]], metric: str, key: str) -> Optional[float]:
    """Return a finite, non-negative metric field, or ``None`` when absent or unusable."""
    values = summary.get(metric)
    if not isinstance(values, Mapping):
        return None

    value = values.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return max(0.0, float(value))


def _field(summary: Mapping[str, Mapping[str, float]], metric: str, key: str) -> float:
    value = _number(summary, metric, key)
    return 0.0 if value is None else value


def empty_statistics() -> TestStatistics:
    """Return the all-zero statistics used for categories without data."""
    return TestStatistics()


def reduce_summary(
    summary: Mapping[str, Mapping[str, float]],
    thresholds: Optional[Mapping[str, Mapping[str, bool]]] = None,
) -> TestStatistics:
    """Reduce one category's k6 summary map to canonical statistics.

    Business logic:
    - ``total_requests`` is the ``http_reqs`` count.
    - ``failed_requests`` is derived from the ``http_req_failed`` rate
      (``round(total * rate)``), since k6 reports failures as a rate.
    - ``success_rate`` is ``(1 - rate) * 100`` when any request was made, else 0.
    - Duration fields are copied from ``http_req_duration``, each defaulting
      independently to 0; none is derived from another.
    - Rounding happens once, here at the boundary.

    Every field has a zero default, so partial or failed runs still produce
    renderable statistics instead of an exception.
    """
    total = _field(summary, HTTP_REQS, "count")
    failure_rate = min(1.0, _field(summary, HTTP_REQ_FAILED, "rate"))

    total_requests = int(round(total))
    failed_requests = min(total_requests, int(round(total_requests * failure_rate)))
    success_rate = (1.0 - failure_rate) * 100.0 if total_requests > 0 else 0.0

    max_concurrency = 0.0
    for metric, key in _CONCURRENCY_SOURCES:
        value = _number(summary, metric, key)
        if value is not None:
            max_concurrency = value
            break

    breached = sum(
        1
        for results in (thresholds or {}).values()
        for ok in results.values()
        if ok is False
    )

    return TestStatistics(
        total_requests=total_requests,
        failed_requests=failed_requests,
        success_rate=round(success_rate, 2),
        avg_duration_ms=round(_field(summary, HTTP_REQ_DURATION, "avg"), 2),
        min_duration_ms=round(_field(summary, HTTP_REQ_DURATION, "min"), 2),
        max_duration_ms=round(_field(summary, HTTP_REQ_DURATION, "max"), 2),
        p90=round(_field(summary, HTTP_REQ_DURATION, "p(90)"), 2),
        p95=round(_field(summary, HTTP_REQ_DURATION, "p(95)"), 2),
        p99=round(_field(summary, HTTP_REQ_DURATION, "p(99)"), 2),
        requests_per_second=round(_field(summary, HTTP_REQS, "rate"), 2),
        max_concurrency=int(round(max_concurrency)),
        iteration_count=int(round(_field(summary, ITERATIONS, "count"))),
        thresholds_breached=breached,
    )


def compute_overall(per_test: Mapping[str, TestStatistics]) -> OverallStatistics:
    """Fold per-category statistics into run totals.

    ``avg_success_rate`` is the unweighted mean over categories that made at
    least one request; categories that never ran do not drag it toward zero.
    """
    ran = [stats for stats in per_test.values() if stats.total_requests > 0]
    avg_success_rate = (
        sum(stats.success_rate for stats in ran) / len(ran) if ran else 0.0
    )

    return OverallStatistics(
        total_requests=sum(stats.total_requests for stats in per_test.values()),
        total_failed=sum(stats.failed_requests for stats in per_test.values()),
        total_iterations=sum(stats.iteration_count for stats in per_test.values()),
        avg_success_rate=round(avg_success_rate, 2),
    )


def format_ms(value: Optional[float]) -> str:
    """Format a millisecond duration as ``"150.50 ms"`` (``"n/a"`` for ``None``)."""
    if value is None:
        return "n/a"
    return f"{value:,.2f} ms"


def format_count(value: Optional[float]) -> str:
    """Format an integer count with thousands separators."""
    if value is None:
        return "n/a"
    return f"{int(value):,}"


def format_percent(value: Optional[float]) -> str:
    """Format a percentage with two decimals."""
    if value is None:
        return "n/a"
    return f"{value:.2f}%"
