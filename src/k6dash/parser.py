"""Parsing of k6 result files into typed metric records.

Two input layouts are supported:
- NDJSON streams written by ``k6 run --out json=...``: one record per line with a
  ``type`` discriminator (``"Metric"`` declares a metric or carries a summary
  rollup, ``"Point"`` carries one sample).
- Single-document summaries written by ``--summary-export`` or ``handleSummary``.

Malformed lines never fail a parse; they are skipped and counted.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .errors import InputNotFoundError, MalformedInputError
from .models import MetricDefinition, MetricKind, MetricPoint, ParsedMetrics
from .stats import compute_trend

logger = logging.getLogger(__name__)

DEFAULT_STREAM_THRESHOLD_BYTES = 50 * 1024 * 1024

# k6 has written percentiles both as "p(95)" and "p95" across versions.
_FIELD_ALIASES = {
    "p90": "p(90)",
    "p95": "p(95)",
    "p99": "p(99)",
}

_DEFAULT_KINDS = {
    "http_reqs": MetricKind.COUNTER,
    "iterations": MetricKind.COUNTER,
    "data_sent": MetricKind.COUNTER,
    "data_received": MetricKind.COUNTER,
    "http_req_failed": MetricKind.RATE,
    "checks": MetricKind.RATE,
    "vus": MetricKind.GAUGE,
    "vus_max": MetricKind.GAUGE,
}

_FRACTION_PATTERN = re.compile(r"\.(\d+)")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (math.isnan(value) or math.isinf(value))


def _numeric_fields(source: Mapping[str, Any]) -> Dict[str, float]:
    fields: Dict[str, float] = {}
    for key, value in source.items():
        if not isinstance(key, str) or not _is_number(value):
            continue
        fields[_FIELD_ALIASES.get(key, key)] = float(value)
    return fields


def extract_metric_values(entry: Mapping[str, Any]) -> Dict[str, float]:
    """Return the aggregate fields of one metric entry, whatever its k6 layout.

    Priority order:
    1. ``entry["values"]`` (k6 >= 0.30 summary export and ``handleSummary`` data).
    2. ``entry["data"]`` when ``data.type == "summary"`` (NDJSON rollup record);
       a nested ``data["values"]`` mapping wins over the flat ``data`` fields.
    3. The flat numeric fields of ``entry`` itself (legacy ``--summary-export``).
       Rate metrics there keep their ratio under ``value`` next to
       ``passes``/``fails``; it is returned as ``rate``.

    Only finite numbers are kept, and percentile aliases such as ``p95`` are
    normalised to ``p(95)``.
    """
    values = entry.get("values")
    if isinstance(values, Mapping):
        return _numeric_fields(values)

    data = entry.get("data")
    if isinstance(data, Mapping) and data.get("type") == "summary":
        nested = data.get("values")
        return _numeric_fields(nested if isinstance(nested, Mapping) else data)

    fields = _numeric_fields(entry)
    if "rate" not in fields and "value" in fields and ("passes" in fields or "fails" in fields):
        fields["rate"] = fields["value"]
    return fields


def _threshold_results(raw: Any) -> Dict[str, bool]:
    """Normalise threshold outcomes to ``{expression: ok}``.

    ``{"expr": {"ok": bool}}`` is the current layout. Legacy summary exports
    store a bare boolean that is ``True`` when the threshold was crossed.
    Threshold lists (NDJSON metric declarations) carry no outcome and are ignored.
    """
    if not isinstance(raw, Mapping):
        return {}

    results: Dict[str, bool] = {}
    for expression, outcome in raw.items():
        if isinstance(outcome, Mapping) and isinstance(outcome.get("ok"), bool):
            results[str(expression)] = outcome["ok"]
        elif isinstance(outcome, bool):
            results[str(expression)] = not outcome
    return results


def _six_digit_fraction(match: re.Match[str]) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def _parse_time(value: Any) -> Optional[datetime]:
    """Parse k6 RFC 3339 timestamps.

    k6 trims trailing zeros from nanosecond fractions, so the fraction is
    truncated or padded to the six digits ``fromisoformat`` accepts.
    """
    if not isinstance(value, str) or not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    normalized = _FRACTION_PATTERN.sub(_six_digit_fraction, normalized)
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class _PointSeries:
    """Raw samples of one metric, kept until the stream has been read."""

    values: List[float] = field(default_factory=list)
    first_time: Optional[datetime] = None
    last_time: Optional[datetime] = None

    def add(self, point: MetricPoint) -> None:
        self.values.append(point.values["value"])
        timestamp = _parse_time(point.time)
        if timestamp is None:
            return
        if self.first_time is None or timestamp < self.first_time:
            self.first_time = timestamp
        if self.last_time is None or timestamp > self.last_time:
            self.last_time = timestamp

    @property
    def elapsed_seconds(self) -> float:
        if self.first_time is None or self.last_time is None:
            return 0.0
        return (self.last_time - self.first_time).total_seconds()


def _aggregate_points(kind: MetricKind, series: _PointSeries) -> Dict[str, float]:
    """Derive k6-style aggregate fields from raw points of one metric."""
    values = series.values
    if not values:
        return {}

    if kind is MetricKind.COUNTER:
        count = sum(values)
        elapsed = series.elapsed_seconds
        return {"count": count, "rate": count / elapsed if elapsed > 0 else 0.0}

    if kind is MetricKind.RATE:
        passes = sum(1 for value in values if value != 0)
        return {
            "rate": passes / len(values),
            "passes": float(passes),
            "fails": float(len(values) - passes),
        }

    if kind is MetricKind.GAUGE:
        return {"value": values[-1], "min": min(values), "max": max(values)}

    return compute_trend(values)


def _apply_record(
    record: Any,
    parsed: ParsedMetrics,
    series: Dict[str, _PointSeries],
) -> bool:
    """Fold one decoded NDJSON record into the parse state.

    Returns ``False`` when the record is unusable and should count as skipped.
    """
    if not isinstance(record, Mapping):
        return False

    name = record.get("metric")
    data = record.get("data")
    if not isinstance(name, str) or not name or not isinstance(data, Mapping):
        return False

    record_type = record.get("type")

    if record_type == "Metric":
        if data.get("type") == "summary":
            parsed.summary[name] = extract_metric_values(record)
            thresholds = _threshold_results(data.get("thresholds"))
            if thresholds:
                parsed.thresholds[name] = thresholds
            return True

        kind = MetricKind.parse(data.get("type"))
        if kind is None:
            logger.debug("Skipping metric declaration with unknown kind", extra={"metric": name})
            return False
        definition = MetricDefinition(name=name, kind=kind)
        parsed.definitions[definition.name] = definition.kind
        return True

    if record_type == "Point":
        value = data.get("value")
        if not _is_number(value):
            return False
        point = MetricPoint(
            metric_name=name,
            kind=parsed.definitions.get(name),
            values={"value": float(value)},
            time=data.get("time"),
        )
        series.setdefault(name, _PointSeries()).add(point)
        parsed.point_count += 1
        return True

    return False


def _log_parse_result(parsed: ParsedMetrics, source: str) -> None:
    level = logging.WARNING if parsed.skipped_lines else logging.DEBUG
    logger.log(
        level,
        "Parsed k6 metrics from %s (%d skipped line(s))",
        source,
        parsed.skipped_lines,
        extra={
            "lines_read": parsed.lines_read,
            "skipped_lines": parsed.skipped_lines,
            "points": parsed.point_count,
            "metrics": len(parsed.summary),
        },
    )


def parse_lines(lines: Iterable[str], source: str = "<stream>") -> ParsedMetrics:
    """Parse NDJSON lines into definitions and per-metric aggregates.

    Summary rollup records are authoritative: when a metric has one, its raw
    points are ignored. Metrics seen only as points get aggregates derived from
    those points according to their declared (or conventional) kind.
    """
    parsed = ParsedMetrics()
    series: Dict[str, _PointSeries] = {}

    for line in lines:
        if not line.strip():
            continue

        parsed.lines_read += 1
        try:
            record = json.loads(line)
        except ValueError:
            parsed.skipped_lines += 1
            continue

        if not _apply_record(record, parsed, series):
            parsed.skipped_lines += 1

    for name, points in series.items():
        if name in parsed.summary:
            continue
        kind = parsed.definitions.get(name) or _DEFAULT_KINDS.get(name, MetricKind.TREND)
        aggregate = _aggregate_points(kind, points)
        if aggregate:
            parsed.summary[name] = aggregate

    _log_parse_result(parsed, source)
    return parsed


def parse_text(text: str, source: str = "<text>") -> ParsedMetrics:
    """Parse an in-memory NDJSON buffer."""
    return parse_lines(text.splitlines(), source=source)


def parse_summary_export(document: Mapping[str, Any], source: str = "<summary>") -> ParsedMetrics:
    """Parse a single-document k6 summary (``--summary-export`` / ``handleSummary``).

    Raises:
        MalformedInputError: If the document has no ``metrics`` mapping.
    """
    metrics = document.get("metrics")
    if not isinstance(metrics, Mapping):
        raise MalformedInputError(f"k6 summary document has no 'metrics' mapping: {source}")

    parsed = ParsedMetrics()
    for name, entry in metrics.items():
        parsed.lines_read += 1
        if not isinstance(entry, Mapping):
            parsed.skipped_lines += 1
            continue

        kind = MetricKind.parse(entry.get("type"))
        if kind is not None:
            parsed.definitions[str(name)] = kind

        parsed.summary[str(name)] = extract_metric_values(entry)
        thresholds = _threshold_results(entry.get("thresholds"))
        if thresholds:
            parsed.thresholds[str(name)] = thresholds

    _log_parse_result(parsed, source)
    return parsed


def _as_summary_document(text: str) -> Optional[Dict[str, Any]]:
    """Return ``text`` decoded when it is one summary-export document."""
    stripped = text.strip()
    if not stripped.startswith("{"):
        return None

    try:
        document = json.loads(stripped)
    except ValueError:
        return None

    if isinstance(document, dict) and "type" not in document and "metrics" in document:
        return document
    return None


def parse_file(
    path: Union[str, Path],
    stream_threshold_bytes: int = DEFAULT_STREAM_THRESHOLD_BYTES,
) -> ParsedMetrics:
    """Parse an NDJSON file, streaming it line by line when it is large.

    Raises:
        InputNotFoundError: If ``path`` does not exist.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise InputNotFoundError(f"k6 results file not found: {file_path}")

    if file_path.stat().st_size <= stream_threshold_bytes:
        text = file_path.read_text(encoding="utf-8", errors="replace")
        return parse_text(text, source=str(file_path))

    logger.info(
        "Streaming large k6 results file",
        extra={"path": str(file_path), "size_bytes": file_path.stat().st_size},
    )
    with file_path.open("r", encoding="utf-8", errors="replace") as handle:
        return parse_lines(handle, source=str(file_path))


def load_metrics(
    path: Union[str, Path],
    stream_threshold_bytes: int = DEFAULT_STREAM_THRESHOLD_BYTES,
) -> ParsedMetrics:
    """Parse a k6 results file in either layout.

    A file whose whole content is one JSON object with a ``metrics`` key is
    treated as a summary export; anything else is parsed as NDJSON.

    Raises:
        InputNotFoundError: If ``path`` does not exist.
        MalformedInputError: If a summary export has an unusable ``metrics`` value.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise InputNotFoundError(f"k6 results file not found: {file_path}")

    if file_path.stat().st_size > stream_threshold_bytes:
        return parse_file(file_path, stream_threshold_bytes)

    text = file_path.read_text(encoding="utf-8", errors="replace")
    document = _as_summary_document(text)
    if document is not None:
        return parse_summary_export(document, source=str(file_path))
    return parse_text(text, source=str(file_path))
