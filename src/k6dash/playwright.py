"""Functional test counts from a Playwright (Ortoni) JSON report."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from .errors import MalformedInputError
from .models import PlaywrightStats

logger = logging.getLogger(__name__)


def _count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        return 0
    return int(value)


def load_playwright_stats(path: Union[str, Path]) -> Optional[PlaywrightStats]:
    """Read passed/failed counts from ``stats.expected`` and ``stats.unexpected``.

    Returns ``None`` when the report does not exist yet.

    Raises:
        MalformedInputError: If the report is not a JSON object.
    """
    report_path = Path(path)
    if not report_path.is_file():
        logger.info("No Playwright report found", extra={"path": str(report_path)})
        return None

    try:
        report = json.loads(report_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise MalformedInputError(f"Playwright report is not valid JSON: {report_path}") from exc

    if not isinstance(report, dict):
        raise MalformedInputError(f"Playwright report is not a JSON object: {report_path}")

    stats = report.get("stats") or {}
    if not isinstance(stats, dict):
        stats = {}

    return PlaywrightStats(passed=_count(stats.get("expected")), failed=_count(stats.get("unexpected")))
