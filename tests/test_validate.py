"""Tests for combined summary validation."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from k6dash.models import CombinedSummary, OverallStatistics, TestStatistics
from k6dash.stats import compute_overall, empty_statistics, reduce_summary
from k6dash.validate import validate_statistics, validate_summary

GOOD = TestStatistics(total_requests=1000, failed_requests=20, success_rate=98.0, p95=300.0)


def _summary(**per_test) -> CombinedSummary:
    return CombinedSummary(
        timestamp="2026-03-01T12:00:00Z",
        per_test=per_test,
        overall=compute_overall(per_test),
    )


def test_validate_summary_accepts_consistent_summary():
    """Verify a reduced summary with idle categories passes."""
    load = reduce_summary(
        {
            "http_reqs": {"count": 1000},
            "http_req_failed": {"rate": 0.02},
            "http_req_duration": {"p(95)": 300.0},
        }
    )

    assert validate_summary(_summary(load=load, stress=empty_statistics())) == []


def test_validate_summary_require_all_flags_idle_categories():
    """Verify --require-all treats zero-request categories as violations."""
    problems = validate_summary(_summary(load=GOOD, stress=empty_statistics()), require_all=True)

    assert problems == ["stress: no requests recorded"]


@pytest.mark.parametrize(
    ("stats", "fragment"),
    [
        (TestStatistics(total_requests=10, failed_requests=11, success_rate=0.0, p95=1.0), "failedRequests"),
        (TestStatistics(total_requests=10, failed_requests=0, success_rate=101.0, p95=1.0), "outside [0, 100]"),
        (TestStatistics(total_requests=1000, failed_requests=20, success_rate=90.0, p95=1.0), "disagrees"),
        (TestStatistics(total_requests=1000, failed_requests=20, success_rate=98.0, p95=0.0), "p95"),
        (TestStatistics(total_requests=0, success_rate=50.0), "successRate must be 0"),
        (TestStatistics(total_requests=1000, failed_requests=20, success_rate=98.0, p95=1.0, p99=-1.0), "p99"),
    ],
)
def test_validate_statistics_catches_each_violation(stats, fragment):
    """Verify every invariant violation is reported."""
    problems = validate_statistics("load", stats)

    assert any(fragment in problem for problem in problems), problems


def test_validate_summary_without_categories_fails():
    """Verify an empty perTest map is a violation."""
    empty = CombinedSummary(timestamp="", per_test={}, overall=OverallStatistics())

    assert validate_summary(empty) == ["summary has no categories"]
