"""Tests for command-line argument parsing."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from k6dash.cli import parse_args


def test_parse_args_generate_report(monkeypatch):
    """Verify generate-report takes input, output and an optional category."""
    monkeypatch.setattr(
        sys,
        "argv",
        ["k6-dashboard", "generate-report", "k6-results/load.json", "site/k6/load/index.html", "--category", "load"],
    )

    args = parse_args()

    assert args.command == "generate-report"
    assert args.input == "k6-results/load.json"
    assert args.output == "site/k6/load/index.html"
    assert args.category == "load"
    assert args.verbose is False


def test_parse_args_dashboard_options():
    """Verify dashboard options and global flags are parsed."""
    args = parse_args(
        [
            "--verbose",
            "--stream-threshold-mb",
            "10",
            "dashboard",
            "--results-dir",
            "results",
            "--site-dir",
            "out",
            "--playwright-report",
            "reports/ortoni-report.json",
            "--history-dir",
            "history",
            "--github",
        ]
    )

    assert args.command == "dashboard"
    assert args.verbose is True
    assert args.stream_threshold_mb == 10.0
    assert args.results_dir == "results"
    assert args.site_dir == "out"
    assert args.playwright_report == "reports/ortoni-report.json"
    assert args.history_dir == "history"
    assert args.github is True


def test_parse_args_validate_defaults():
    """Verify validate requires a summary path and defaults --require-all off."""
    args = parse_args(["validate", "site/reports/k6-summary.json"])

    assert args.summary == "site/reports/k6-summary.json"
    assert args.require_all is False


def test_parse_args_aggregate_defaults_to_configured_paths():
    """Verify aggregate leaves directories unset so configuration can fill them."""
    args = parse_args(["aggregate"])

    assert args.results_dir is None
    assert args.output is None
    assert args.template_dir is None


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["generate-report"],
        ["generate-report", "only-input.json"],
        ["unknown-command"],
        ["--stream-threshold-mb", "0", "aggregate"],
    ],
)
def test_parse_args_usage_errors_exit_with_status_1(argv):
    """Verify missing or invalid arguments exit with the usage status."""
    with pytest.raises(SystemExit) as excinfo:
        parse_args(argv)

    assert excinfo.value.code == 1
