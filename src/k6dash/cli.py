"""Command-line argument parsing for the k6 dashboard generator."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn, Optional, Sequence

USAGE_EXIT_CODE = 1


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser whose usage errors exit with status 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(USAGE_EXIT_CODE, f"{self.prog}: error: {message}\n")


def _positive_float(value: str) -> float:
    """Parse and validate a positive number CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive number.
    """
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a number") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def build_parser() -> argparse.ArgumentParser:
    """Build the ``k6-dashboard`` parser with its subcommands."""
    parser = _ArgumentParser(
        prog="k6-dashboard",
        description="Aggregate k6 results and render HTML reports and a test dashboard.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--template-dir",
        default=None,
        help="Directory with template overrides (default: K6DASH_TEMPLATE_DIR).",
    )
    parser.add_argument(
        "--stream-threshold-mb",
        type=_positive_float,
        default=None,
        help="Stream result files larger than this many MB (default: 50).",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    report = subparsers.add_parser(
        "generate-report",
        help="Render one k6 results file to an HTML report.",
    )
    report.add_argument("input", help="k6 JSON results file (NDJSON or summary export).")
    report.add_argument("output", help="HTML file to write.")
    report.add_argument(
        "--category",
        default=None,
        help="Test category (default: derived from the input file name).",
    )

    aggregate = subparsers.add_parser(
        "aggregate",
        help="Write the combined summary JSON for every test category.",
    )
    aggregate.add_argument(
        "--results-dir",
        default=None,
        help="Directory with <category>.json results (default: K6DASH_RESULTS_DIR or k6-results).",
    )
    aggregate.add_argument(
        "--output",
        default=None,
        help="Summary file to write (default: <site-dir>/reports/k6-summary.json).",
    )

    dashboard = subparsers.add_parser(
        "dashboard",
        help="Run the full pipeline: summary, category reports and dashboard.",
    )
    dashboard.add_argument("--results-dir", default=None, help="Directory with k6 results.")
    dashboard.add_argument(
        "--site-dir",
        default=None,
        help="Output directory for the site (default: K6DASH_SITE_DIR or site).",
    )
    dashboard.add_argument(
        "--playwright-report",
        default=None,
        help="Playwright/Ortoni JSON report with functional test counts.",
    )
    dashboard.add_argument(
        "--history-dir",
        default=None,
        help="Also copy the dashboard and summary to <history-dir>/<run number>/.",
    )
    dashboard.add_argument(
        "--github",
        action="store_true",
        help="Fill unknown build metadata from the GitHub Actions API.",
    )

    validate = subparsers.add_parser(
        "validate",
        help="Check a combined summary file for inconsistent statistics.",
    )
    validate.add_argument("summary", help="Combined summary JSON file.")
    validate.add_argument(
        "--require-all",
        action="store_true",
        help="Treat a category without requests as a failure.",
    )

    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Arguments without the program name; defaults to ``sys.argv[1:]``.

    Returns:
        Parsed arguments with the selected ``command``.
    """
    return build_parser().parse_args(argv)
