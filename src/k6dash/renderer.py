"""HTML rendering of category reports with pending and error fallbacks.

Every render either produces a fully substituted document or raises
``RenderError``; ``ReportRenderer.render_safely`` turns any failure into an
error page so an output file can always be written.
"""

from __future__ import annotations

import html
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from jinja2 import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    select_autoescape,
)
from markupsafe import Markup, escape

from .aggregator import aggregate_file
from .categories import TestCategory, category_for
from .errors import RenderError
from .models import CategoryOutcome, ReportState, Status, StatusThresholds
from .output import atomic_write_text
from .parser import DEFAULT_STREAM_THRESHOLD_BYTES
from .stats import format_count, format_ms, format_percent
from .templates import TEMPLATES

logger = logging.getLogger(__name__)

_PLACEHOLDER_RESIDUE = re.compile(r"\{\{.*?\}\}|\{%.*?%\}", re.DOTALL)

_BADGE_CLASSES = {
    Status.PASS: "bg-success",
    Status.WARNING: "bg-warning text-dark",
    Status.FAIL: "bg-danger",
    Status.PENDING: "bg-secondary",
    Status.ERROR: "bg-dark",
}

_JOB_STATUS_CLASSES = {
    "PASSED": "bg-success",
    "FAILED": "bg-danger",
    "RUNNING": "bg-warning text-dark",
}

_MINIMAL_ERROR_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>{title} (error)</title></head>
<body>
<h1>{title}</h1>
<div data-report-state="error">
<h2>Report generation error</h2>
<pre>{message}</pre>
</div>
</body>
</html>
"""


def classify_status(success_rate: float, thresholds: StatusThresholds) -> Status:
    """Grade a success rate (percent) against a category's limits."""
    if success_rate >= thresholds.pass_rate:
        return Status.PASS
    if success_rate >= thresholds.warning_rate:
        return Status.WARNING
    return Status.FAIL


def status_for(outcome: CategoryOutcome, category: TestCategory) -> Status:
    """Badge for an aggregation outcome."""
    if outcome.state is ReportState.PENDING:
        return Status.PENDING
    if outcome.state is ReportState.ERROR:
        return Status.ERROR
    return classify_status(outcome.statistics.success_rate, category.thresholds)


def badge_class(status: Status) -> str:
    return _BADGE_CLASSES[status]


def job_status_class(status: str) -> str:
    return _JOB_STATUS_CLASSES.get(status.upper(), "bg-secondary")


def neutralize_braces(value: Any) -> Any:
    """Output hook: interpolated text renders its braces as character references.

    Only template source can then leave ``{{ }}`` or ``{% %}`` in a document.
    Markup values such as ``tojson`` output pass through unchanged.
    """
    if not isinstance(value, str) or isinstance(value, Markup):
        return value
    if "{" not in value and "}" not in value:
        return value
    return Markup(str(escape(value)).replace("{", "&#123;").replace("}", "&#125;"))


def build_environment(template_dir: Optional[Union[str, Path]] = None) -> Environment:
    """Create the Jinja2 environment with built-in templates and report filters.

    Undefined template variables raise instead of rendering as empty strings,
    and interpolated values cannot produce template-like tokens.
    """
    loaders: List[Any] = []
    if template_dir is not None:
        loaders.append(FileSystemLoader(str(template_dir)))
    loaders.append(DictLoader(TEMPLATES))

    environment = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(["html", "xml"]),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        finalize=neutralize_braces,
    )
    environment.filters.update(
        {
            "ms": format_ms,
            "thousands": format_count,
            "percent": format_percent,
            "badge_class": badge_class,
            "job_class": job_status_class,
        }
    )
    return environment


def find_residue(document: str) -> List[str]:
    """Return template tokens left unrendered in a document."""
    return _PLACEHOLDER_RESIDUE.findall(document)


def minimal_error_page(title: str, message: str) -> str:
    """Template-free error page used when even the error template fails."""
    return _MINIMAL_ERROR_PAGE.format(title=html.escape(title), message=html.escape(message))


class ReportRenderer:
    """Renders category reports and the dashboard from built-in or custom templates."""

    def __init__(self, template_dir: Optional[Union[str, Path]] = None) -> None:
        self._environment = build_environment(template_dir)

    def _render(self, names: Iterable[str], context: Mapping[str, Any]) -> str:
        """Render the first available template of ``names``.

        Raises:
            RenderError: If rendering fails or placeholder tokens remain.
        """
        candidates = list(names)
        try:
            template = self._environment.select_template(candidates)
            document = template.render(**context)
        except TemplateError as exc:
            raise RenderError(f"Template rendering failed for {candidates[-1]}: {exc}") from exc

        residue = find_residue(document)
        if residue:
            raise RenderError(
                f"Template {template.name} left unrendered placeholders: {', '.join(residue[:5])}"
            )
        return document

    def render_report(self, outcome: CategoryOutcome, category: TestCategory) -> str:
        """Render the page matching the outcome's state.

        Raises:
            RenderError: If the template fails or leaves placeholders behind.
        """
        if outcome.state is ReportState.PENDING:
            return self.render_pending(category)
        if outcome.state is ReportState.ERROR:
            return self.render_error(category, outcome.error or "Unknown error")

        stats = outcome.statistics
        context: Dict[str, Any] = {
            "category": category,
            "stats": stats,
            "status": status_for(outcome, category),
            "source": str(outcome.source) if outcome.source else None,
            "chart_data": [
                stats.min_duration_ms,
                stats.avg_duration_ms,
                stats.p90,
                stats.p95,
                stats.p99,
                stats.max_duration_ms,
            ],
        }
        return self._render([f"report_{category.key}.html", "report.html"], context)

    def render_pending(self, category: TestCategory) -> str:
        return self._render(["pending.html"], {"category": category})

    def render_error(self, category: TestCategory, message: str) -> str:
        return self._render(["error.html"], {"category": category, "message": message})

    def render_safely(self, outcome: CategoryOutcome, category: TestCategory) -> str:
        """Render a report, falling back to an error page on any failure."""
        try:
            return self.render_report(outcome, category)
        except Exception as exc:
            logger.exception("Report rendering failed", extra={"category": category.key})
            message = f"{type(exc).__name__}: {exc}"

        try:
            return self.render_error(category, message)
        except Exception:
            logger.exception("Error page rendering failed", extra={"category": category.key})
            return minimal_error_page(category.title, message)

    def render_dashboard(self, context: Mapping[str, Any]) -> str:
        return self._render(["dashboard.html"], context)

    def render_dashboard_error(self, message: str, links: List[Dict[str, str]]) -> str:
        try:
            return self._render(["dashboard_error.html"], {"message": message, "links": links})
        except Exception:
            logger.exception("Dashboard error page rendering failed")
            return minimal_error_page("Test Reports Dashboard", message)


def write_report(document: str, path: Union[str, Path]) -> Path:
    """Write a rendered document, replacing any previous file.

    Raises:
        OutputWriteError: If the path cannot be written.
    """
    written = atomic_write_text(path, document)
    logger.info("Wrote report", extra={"path": str(written), "size_bytes": len(document)})
    return written


def _category_key_from_path(path: Path) -> str:
    stem = path.stem
    return stem[: -len("-summary")] if stem.endswith("-summary") else stem


def generate_report(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    category: Optional[str] = None,
    template_dir: Optional[Union[str, Path]] = None,
    categories: Optional[Iterable[TestCategory]] = None,
    stream_threshold_bytes: int = DEFAULT_STREAM_THRESHOLD_BYTES,
) -> CategoryOutcome:
    """Render one k6 results file to an HTML report.

    A file is always written: the full report, the pending page when the
    input is missing or empty, or the error page when processing fails. The
    category defaults to the input file name (``load.json`` -> ``load``).

    Raises:
        OutputWriteError: If the output path itself cannot be written.
    """
    source = Path(input_path)
    key = category or _category_key_from_path(source)
    test_category = (
        category_for(key, tuple(categories)) if categories is not None else category_for(key)
    )

    outcome = aggregate_file(source, key, stream_threshold_bytes)
    document = ReportRenderer(template_dir).render_safely(outcome, test_category)
    write_report(document, output_path)
    return outcome
