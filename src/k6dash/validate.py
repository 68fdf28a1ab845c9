"""Consistency checks for a combined k6 summary artifact."""

from __future__ import annotations

from typing import List

from .models import CombinedSummary, TestStatistics

# Allowed disagreement between the rate-derived success rate and the counts.
SUCCESS_RATE_TOLERANCE = 1.0

_NON_NEGATIVE_FIELDS = (
    "avg_duration_ms",
    "min_duration_ms",
    "max_duration_ms",
    "p90",
    "p95",
    "p99",
    "requests_per_second",
    "max_concurrency",
    "iteration_count",
    "thresholds_breached",
)


def validate_statistics(category: str, stats: TestStatistics, require_traffic: bool = False) -> List[str]:
    """Return human-readable invariant violations for one category."""
    problems: List[str] = []

    if stats.total_requests < 0:
        problems.append(f"{category}: totalRequests is negative ({stats.total_requests})")

    if not 0 <= stats.failed_requests <= max(stats.total_requests, 0):
        problems.append(
            f"{category}: failedRequests ({stats.failed_requests}) is outside "
            f"[0, totalRequests={stats.total_requests}]"
        )

    if not 0 <= stats.success_rate <= 100:
        problems.append(f"{category}: successRate ({stats.success_rate}) is outside [0, 100]")

    for name in _NON_NEGATIVE_FIELDS:
        value = getattr(stats, name)
        if value < 0:
            problems.append(f"{category}: {name} is negative ({value})")

    if stats.total_requests > 0:
        counted_rate = (stats.total_requests - stats.failed_requests) / stats.total_requests * 100
        if abs(counted_rate - stats.success_rate) > SUCCESS_RATE_TOLERANCE:
            problems.append(
                f"{category}: successRate ({stats.success_rate:.2f}) disagrees with counts "
                f"({counted_rate:.2f}) by more than {SUCCESS_RATE_TOLERANCE} percentage point"
            )
        if stats.p95 <= 0:
            problems.append(f"{category}: p95 must be greater than 0 when requests were made")
    else:
        if stats.success_rate != 0:
            problems.append(f"{category}: successRate must be 0 when no requests were made")
        if require_traffic:
            problems.append(f"{category}: no requests recorded")

    return problems


def validate_summary(summary: CombinedSummary, require_all: bool = False) -> List[str]:
    """Check every category of a combined summary.

    Args:
        summary: The artifact to check.
        require_all: Treat a category with zero requests as a violation.

    Returns:
        Violation messages; empty when the summary is consistent.
    """
    problems: List[str] = []
    if not summary.per_test:
        problems.append("summary has no categories")

    for category, stats in summary.per_test.items():
        problems.extend(validate_statistics(category, stats, require_traffic=require_all))

    if summary.overall.total_failed > summary.overall.total_requests:
        problems.append("overall: totalFailed exceeds totalRequests")

    return problems
