"""Aggregation of k6 results across the dashboard's test categories.

Each category is read and reduced independently: a missing or unreadable
file for one category leaves that category zeroed (and marked pending or
errored) without affecting the others.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Union

from .categories import DEFAULT_CATEGORIES
from .errors import InputNotFoundError, MalformedInputError
from .models import CategoryOutcome, CombinedSummary, ReportState, TestStatistics
from .output import atomic_write_text
from .parser import DEFAULT_STREAM_THRESHOLD_BYTES, load_metrics
from .stats import compute_overall, empty_statistics, reduce_summary

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DEFAULT_CATEGORY_KEYS = tuple(category.key for category in DEFAULT_CATEGORIES)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as a UTC ISO 8601 string with a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class AggregationResult:
    """Combined summary plus the per-category outcomes it was built from."""

    summary: CombinedSummary
    outcomes: Dict[str, CategoryOutcome]

    @property
    def all_pending(self) -> bool:
        return all(outcome.state is ReportState.PENDING for outcome in self.outcomes.values())


def locate_input(results_dir: Union[str, Path], category: str) -> Optional[Path]:
    """Find the result file for a category.

    ``<category>-summary.json`` (a pre-aggregated summary export) is preferred
    over ``<category>.json`` (usually the raw NDJSON stream).
    """
    directory = Path(results_dir)
    for candidate in (directory / f"{category}-summary.json", directory / f"{category}.json"):
        if candidate.is_file():
            return candidate
    return None


def aggregate_file(
    path: Union[str, Path],
    category: str,
    stream_threshold_bytes: int = DEFAULT_STREAM_THRESHOLD_BYTES,
) -> CategoryOutcome:
    """Parse and reduce one result file without ever raising.

    Returns a ``pending`` outcome when the file is missing or carries no
    metric data, ``error`` when parsing or reduction failed, and ``complete``
    otherwise. A file that has metric data but zero requests is a run with
    zero traffic and is reported as complete.
    """
    source = Path(path)
    try:
        parsed = load_metrics(source, stream_threshold_bytes=stream_threshold_bytes)
        statistics = reduce_summary(parsed.summary, parsed.thresholds)
    except InputNotFoundError:
        logger.warning("No k6 results for category", extra={"category": category, "path": str(source)})
        return CategoryOutcome(category=category, statistics=empty_statistics(), state=ReportState.PENDING)
    except Exception as exc:  # contained per category; siblings still aggregate
        logger.exception(
            "Failed to aggregate k6 results",
            extra={"category": category, "path": str(source)},
        )
        return CategoryOutcome(
            category=category,
            statistics=empty_statistics(),
            state=ReportState.ERROR,
            source=source,
            error=f"{type(exc).__name__}: {exc}",
        )

    if parsed.is_empty and statistics.total_requests == 0:
        state = ReportState.PENDING
    else:
        state = ReportState.COMPLETE

    logger.info(
        "Aggregated k6 results",
        extra={
            "category": category,
            "path": str(source),
            "state": state.value,
            "total_requests": statistics.total_requests,
            "skipped_lines": parsed.skipped_lines,
        },
    )
    return CategoryOutcome(category=category, statistics=statistics, state=state, source=source)


def aggregate_category(
    results_dir: Union[str, Path],
    category: str,
    stream_threshold_bytes: int = DEFAULT_STREAM_THRESHOLD_BYTES,
) -> CategoryOutcome:
    """Locate and aggregate one category's results."""
    path = locate_input(results_dir, category)
    if path is None:
        logger.warning(
            "No k6 results for category",
            extra={"category": category, "results_dir": str(results_dir)},
        )
        return CategoryOutcome(category=category, statistics=empty_statistics(), state=ReportState.PENDING)
    return aggregate_file(path, category, stream_threshold_bytes)


def aggregate(
    results_dir: Union[str, Path],
    categories: Sequence[str] = DEFAULT_CATEGORY_KEYS,
    clock: Clock = utc_now,
    stream_threshold_bytes: int = DEFAULT_STREAM_THRESHOLD_BYTES,
) -> AggregationResult:
    """Aggregate every category into one combined summary.

    Every requested category is present in the result, in the order given,
    whether or not its results exist.
    """
    outcomes: Dict[str, CategoryOutcome] = {}
    for category in categories:
        outcomes[category] = aggregate_category(results_dir, category, stream_threshold_bytes)

    per_test: Dict[str, TestStatistics] = {
        category: outcome.statistics for category, outcome in outcomes.items()
    }
    summary = CombinedSummary(
        timestamp=format_timestamp(clock()),
        per_test=per_test,
        overall=compute_overall(per_test),
    )
    return AggregationResult(summary=summary, outcomes=outcomes)


def write_summary(summary: CombinedSummary, path: Union[str, Path]) -> Path:
    """Write the combined summary artifact, replacing any previous run's file."""
    content = json.dumps(summary.to_dict(), indent=2) + "\n"
    written = atomic_write_text(path, content)
    logger.info("Wrote combined k6 summary", extra={"path": str(written)})
    return written


def read_summary(path: Union[str, Path]) -> CombinedSummary:
    """Read a combined summary artifact back.

    Raises:
        InputNotFoundError: If the file does not exist.
        MalformedInputError: If the file is not a combined summary document.
    """
    summary_path = Path(path)
    if not summary_path.is_file():
        raise InputNotFoundError(f"Combined summary not found: {summary_path}")

    try:
        payload = json.loads(summary_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise MalformedInputError(f"Combined summary is not valid JSON: {summary_path}") from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("perTest"), dict):
        raise MalformedInputError(f"Combined summary has no 'perTest' mapping: {summary_path}")

    try:
        return CombinedSummary.from_dict(payload)
    except (AttributeError, TypeError, ValueError) as exc:
        raise MalformedInputError(f"Combined summary has invalid statistics: {summary_path}") from exc
