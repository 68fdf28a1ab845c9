"""Domain models for k6 result aggregation and dashboard rendering.

These dataclasses model only what the pipeline needs: parsed metric records,
the canonical per-category statistics, and the combined summary artifact.
The JSON artifact uses camelCase keys; Python attributes stay snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional


class MetricKind(str, Enum):
    """Metric types declared by k6 ``Metric`` records."""

    COUNTER = "counter"
    RATE = "rate"
    TREND = "trend"
    GAUGE = "gauge"

    @classmethod
    def parse(cls, value: Any) -> Optional["MetricKind"]:
        """Return the kind for a k6 type string, or ``None`` when unknown."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ReportState(str, Enum):
    """Rendering state of a single category report."""

    COMPLETE = "complete"
    PENDING = "pending"
    ERROR = "error"


class Status(str, Enum):
    """Badge shown for a category on reports and the dashboard."""

    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"
    PENDING = "pending"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class MetricDefinition:
    """Declares the kind of a metric before (or between) its points."""

    name: str
    kind: MetricKind


@dataclass(frozen=True, slots=True)
class MetricPoint:
    """One observation taken from an NDJSON ``Point`` line."""

    metric_name: str
    kind: Optional[MetricKind]
    values: Mapping[str, float]
    time: Optional[str] = None


@dataclass(slots=True)
class ParsedMetrics:
    """Result of parsing one k6 result file."""

    definitions: Dict[str, MetricKind] = field(default_factory=dict)
    summary: Dict[str, Dict[str, float]] = field(default_factory=dict)
    thresholds: Dict[str, Dict[str, bool]] = field(default_factory=dict)
    lines_read: int = 0
    skipped_lines: int = 0
    point_count: int = 0

    @property
    def is_empty(self) -> bool:
        """True when the input carried no metric data at all."""
        return not (self.definitions or self.summary or self.point_count)


@dataclass(frozen=True, slots=True)
class StatusThresholds:
    """Success-rate limits (percent) for the pass and warning badges."""

    pass_rate: float
    warning_rate: float


_STAT_FIELDS = (
    ("total_requests", "totalRequests", int),
    ("failed_requests", "failedRequests", int),
    ("success_rate", "successRate", float),
    ("avg_duration_ms", "avgDurationMs", float),
    ("min_duration_ms", "minDurationMs", float),
    ("max_duration_ms", "maxDurationMs", float),
    ("p90", "p90", float),
    ("p95", "p95", float),
    ("p99", "p99", float),
    ("requests_per_second", "requestsPerSecond", float),
    ("max_concurrency", "maxConcurrency", int),
    ("iteration_count", "iterationCount", int),
    ("thresholds_breached", "thresholdsBreached", int),
)


@dataclass(frozen=True, slots=True)
class TestStatistics:
    """Canonical summary statistics for one test category."""

    __test__ = False

    total_requests: int = 0
    failed_requests: int = 0
    success_rate: float = 0.0
    avg_duration_ms: float = 0.0
    min_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    requests_per_second: float = 0.0
    max_concurrency: int = 0
    iteration_count: int = 0
    thresholds_breached: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the artifact's camelCase keys."""
        return {key: getattr(self, attr) for attr, key, _ in _STAT_FIELDS}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TestStatistics":
        """Build statistics from an artifact mapping; absent keys default to zero."""
        values = {}
        for attr, key, cast in _STAT_FIELDS:
            raw = payload.get(key, 0)
            values[attr] = cast(raw) if raw is not None else cast(0)
        return cls(**values)


@dataclass(frozen=True, slots=True)
class OverallStatistics:
    """Totals across all categories of one run."""

    total_requests: int = 0
    total_failed: int = 0
    total_iterations: int = 0
    avg_success_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRequests": self.total_requests,
            "totalFailed": self.total_failed,
            "totalIterations": self.total_iterations,
            "avgSuccessRate": self.avg_success_rate,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "OverallStatistics":
        return cls(
            total_requests=int(payload.get("totalRequests", 0)),
            total_failed=int(payload.get("totalFailed", 0)),
            total_iterations=int(payload.get("totalIterations", 0)),
            avg_success_rate=float(payload.get("avgSuccessRate", 0.0)),
        )


@dataclass(frozen=True, slots=True)
class CombinedSummary:
    """Statistics for every configured category plus derived overall totals."""

    timestamp: str
    per_test: Mapping[str, TestStatistics]
    overall: OverallStatistics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "perTest": {name: stats.to_dict() for name, stats in self.per_test.items()},
            "overall": self.overall.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CombinedSummary":
        per_test = payload.get("perTest") or {}
        return cls(
            timestamp=str(payload.get("timestamp", "")),
            per_test={
                str(name): TestStatistics.from_dict(stats) for name, stats in per_test.items()
            },
            overall=OverallStatistics.from_dict(payload.get("overall") or {}),
        )


@dataclass(frozen=True, slots=True)
class CategoryOutcome:
    """Per-category aggregation result handed to the renderer and composer."""

    category: str
    statistics: TestStatistics
    state: ReportState
    source: Optional[Path] = None
    error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PlaywrightStats:
    """Pass/fail counts of the functional API test run."""

    passed: int
    failed: int

    @property
    def total(self) -> int:
        return self.passed + self.failed


@dataclass(slots=True)
class WorkflowRun:
    """The subset of a GitHub Actions workflow run shown on the dashboard."""

    id: int
    run_number: int
    name: str
    head_sha: str
    head_branch: str
    event: str
    status: str
    conclusion: Optional[str]


@dataclass(slots=True)
class WorkflowJob:
    """One job of a workflow run, used to derive per-job pass/fail status."""

    id: int
    name: str
    status: str
    conclusion: Optional[str]
