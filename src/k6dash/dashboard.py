"""Dashboard composition and the full report-generation pipeline."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .aggregator import AggregationResult, Clock, aggregate, utc_now, write_summary
from .categories import TestCategory
from .config import Config
from .metadata import DashboardMetadata
from .models import CategoryOutcome, PlaywrightStats, ReportState, Status, TestStatistics
from .output import atomic_write_text
from .renderer import ReportRenderer, status_for, write_report
from .stats import empty_statistics

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"


@dataclass(frozen=True)
class DashboardRow:
    """One category line of the dashboard's results table."""

    category: TestCategory
    state: ReportState
    stats: TestStatistics
    status: Status
    link: str
    error: Optional[str] = None


@dataclass(frozen=True)
class DashboardResult:
    """Paths written by one pipeline run and the state of every category."""

    summary_path: Path
    dashboard_path: Path
    metadata_path: Path
    report_paths: Dict[str, Path]
    states: Dict[str, ReportState]
    used_fallback: bool = False

    @property
    def all_pending(self) -> bool:
        return all(state is ReportState.PENDING for state in self.states.values())


class DashboardComposer:
    """Builds the dashboard page and runs the aggregate, render and write pipeline."""

    def __init__(self, config: Config, renderer: Optional[ReportRenderer] = None) -> None:
        self._config = config
        self._renderer = renderer or ReportRenderer(config.template_dir)

    def _outcome(self, aggregation: AggregationResult, category: TestCategory) -> CategoryOutcome:
        outcome = aggregation.outcomes.get(category.key)
        if outcome is None:
            return CategoryOutcome(
                category=category.key,
                statistics=empty_statistics(),
                state=ReportState.PENDING,
            )
        return outcome

    def build_rows(self, aggregation: AggregationResult) -> List[DashboardRow]:
        """One row per configured category, in registry order."""
        rows: List[DashboardRow] = []
        for category in self._config.categories:
            outcome = self._outcome(aggregation, category)
            rows.append(
                DashboardRow(
                    category=category,
                    state=outcome.state,
                    stats=outcome.statistics,
                    status=status_for(outcome, category),
                    link=category.report_path,
                    error=outcome.error,
                )
            )
        return rows

    def compose(
        self,
        aggregation: AggregationResult,
        metadata: DashboardMetadata,
        playwright: Optional[PlaywrightStats] = None,
    ) -> str:
        """Render the dashboard HTML.

        The only time value on the page is the summary timestamp, so identical
        inputs produce identical output.

        Raises:
            RenderError: If the dashboard template fails or leaves placeholders.
        """
        context: Dict[str, Any] = {
            "metadata": metadata,
            "last_run": aggregation.summary.timestamp,
            "playwright": playwright,
            "rows": self.build_rows(aggregation),
            "overall": aggregation.summary.overall,
        }
        return self._renderer.render_dashboard(context)

    def _report_links(self) -> List[Dict[str, str]]:
        return [
            {"href": category.report_path, "title": f"{category.title} Report"}
            for category in self._config.categories
        ]

    def write_metadata(self, metadata: DashboardMetadata) -> Path:
        path = self._config.site_dir / METADATA_FILE
        return atomic_write_text(path, json.dumps(metadata.to_dict(), indent=2) + "\n")

    def run(
        self,
        metadata: DashboardMetadata,
        clock: Clock = utc_now,
        playwright: Optional[PlaywrightStats] = None,
    ) -> DashboardResult:
        """Aggregate results and write the summary, every report and the dashboard.

        Per-category failures end up as pending or error pages. A dashboard that
        cannot be composed is replaced by a fallback page linking the reports.

        Raises:
            OutputWriteError: If an output path cannot be written.
        """
        config = self._config
        aggregation = aggregate(
            config.results_dir,
            [category.key for category in config.categories],
            clock=clock,
            stream_threshold_bytes=config.stream_threshold_bytes,
        )
        summary_path = write_summary(aggregation.summary, config.summary_path)

        report_paths: Dict[str, Path] = {}
        for category in config.categories:
            outcome = self._outcome(aggregation, category)
            document = self._renderer.render_safely(outcome, category)
            report_paths[category.key] = write_report(document, config.report_path(category))

        metadata_path = self.write_metadata(metadata)

        used_fallback = False
        try:
            document = self.compose(aggregation, metadata, playwright)
        except Exception as exc:
            logger.exception("Dashboard composition failed; writing fallback page")
            document = self._renderer.render_dashboard_error(
                f"{type(exc).__name__}: {exc}", self._report_links()
            )
            used_fallback = True

        dashboard_path = write_report(document, config.dashboard_path)

        states = {key: outcome.state for key, outcome in aggregation.outcomes.items()}
        logger.info(
            "Dashboard generated",
            extra={
                "path": str(dashboard_path),
                "states": {key: state.value for key, state in states.items()},
                "fallback": used_fallback,
            },
        )
        return DashboardResult(
            summary_path=summary_path,
            dashboard_path=dashboard_path,
            metadata_path=metadata_path,
            report_paths=report_paths,
            states=states,
            used_fallback=used_fallback,
        )
