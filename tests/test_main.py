"""Tests for application orchestration in the main module."""

import json
import sys
from argparse import Namespace
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, patch

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from k6dash.errors import ApiError, ConfigurationError, OutputWriteError
from k6dash.main import (
    main,
    orchestrate_aggregate,
    orchestrate_dashboard,
    orchestrate_generate_report,
    orchestrate_validate,
    run_command,
)


def _clock() -> datetime:
    return datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def _global_args(**kwargs) -> Namespace:
    values = {"verbose": False, "template_dir": None, "stream_threshold_mb": None}
    values.update(kwargs)
    return Namespace(**values)


def _dashboard_args(tmp_path: Path, **kwargs) -> Namespace:
    values = {
        "command": "dashboard",
        "results_dir": str(tmp_path / "results"),
        "site_dir": str(tmp_path / "site"),
        "playwright_report": None,
        "history_dir": None,
        "github": False,
    }
    values.update(kwargs)
    return _global_args(**values)


def _write_load_results(results_dir: Path) -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    document = {
        "metrics": {
            "http_reqs": {"values": {"count": 1000, "rate": 20.0}},
            "http_req_failed": {"values": {"rate": 0.02}},
            "http_req_duration": {"values": {"avg": 150.5, "p(95)": 300.0}},
        }
    }
    (results_dir / "load.json").write_text(json.dumps(document), encoding="utf-8")


def test_orchestrate_generate_report_writes_pending_for_missing_input(tmp_path, capsys):
    """Verify a missing input still exits 0 because a pending page was written."""
    output = tmp_path / "report.html"
    args = _global_args(command="generate-report", input=str(tmp_path / "load.json"), output=str(output), category=None)

    exit_code = orchestrate_generate_report(args, environ={})

    assert exit_code == 0
    assert 'data-report-state="pending"' in output.read_text(encoding="utf-8")
    assert "load: wrote pending report" in capsys.readouterr().out


def test_orchestrate_aggregate_writes_summary(tmp_path, capsys):
    """Verify aggregate writes the combined summary to --output."""
    _write_load_results(tmp_path / "results")
    output = tmp_path / "summary.json"
    args = _global_args(command="aggregate", results_dir=str(tmp_path / "results"), output=str(output))

    exit_code = orchestrate_aggregate(args, environ={}, clock=_clock)

    assert exit_code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["perTest"]["load"]["totalRequests"] == 1000
    assert payload["overall"]["avgSuccessRate"] == 98.0
    assert "Summary written to" in capsys.readouterr().out


def test_orchestrate_dashboard_success(tmp_path, capsys):
    """Verify the dashboard pipeline exits 0 when at least one category has results."""
    _write_load_results(tmp_path / "results")
    args = _dashboard_args(tmp_path, history_dir=str(tmp_path / "history"))

    exit_code = orchestrate_dashboard(args, environ={"GITHUB_RUN_NUMBER": "7"}, clock=_clock)

    assert exit_code == 0
    assert (tmp_path / "site" / "index.html").is_file()
    assert (tmp_path / "site" / "k6" / "security" / "index.html").is_file()
    assert (tmp_path / "history" / "7" / "index.html").is_file()
    output = capsys.readouterr().out
    assert "complete" in output
    assert "Dashboard written to" in output


def test_orchestrate_dashboard_all_missing_exits_1(tmp_path):
    """Verify a run without any results still writes the site but exits 1."""
    exit_code = orchestrate_dashboard(_dashboard_args(tmp_path), environ={}, clock=_clock)

    assert exit_code == 1
    assert (tmp_path / "site" / "index.html").is_file()


def test_orchestrate_dashboard_github_enrichment(tmp_path):
    """Verify --github builds a client from configuration and enriches metadata."""
    _write_load_results(tmp_path / "results")
    environ = {"GITHUB_REPOSITORY": "owner/repo", "GITHUB_TOKEN": "secret", "GITHUB_RUN_ID": "9"}

    with patch("k6dash.main.GitHubClient") as client_ctor_mock, patch(
        "k6dash.main.enrich_metadata", side_effect=lambda metadata, client: metadata
    ) as enrich_mock:
        exit_code = orchestrate_dashboard(_dashboard_args(tmp_path, github=True), environ=environ, clock=_clock)

    assert exit_code == 0
    client_ctor_mock.assert_called_once_with("owner/repo", token="secret")
    enrich_mock.assert_called_once()


def test_orchestrate_dashboard_reads_playwright_report(tmp_path):
    """Verify functional test counts from the Playwright report reach the dashboard."""
    _write_load_results(tmp_path / "results")
    report = tmp_path / "ortoni-report.json"
    report.write_text(json.dumps({"stats": {"expected": 12, "unexpected": 3}}), encoding="utf-8")

    orchestrate_dashboard(_dashboard_args(tmp_path, playwright_report=str(report)), environ={}, clock=_clock)

    content = (tmp_path / "site" / "index.html").read_text(encoding="utf-8")
    assert "12 passed" in content
    assert "3 failed" in content


def test_orchestrate_validate_reports_violations(tmp_path, capsys):
    """Verify validate exits 1 and prints each violation."""
    path = tmp_path / "summary.json"
    path.write_text(
        json.dumps(
            {
                "timestamp": "2026-03-01T12:00:00Z",
                "perTest": {"load": {"totalRequests": 10, "failedRequests": 20, "successRate": 98.0, "p95": 1.0}},
                "overall": {},
            }
        ),
        encoding="utf-8",
    )

    exit_code = orchestrate_validate(_global_args(command="validate", summary=str(path), require_all=False))

    assert exit_code == 1
    assert "FAIL load: failedRequests" in capsys.readouterr().out


def test_orchestrate_validate_accepts_aggregated_summary(tmp_path, capsys):
    """Verify a summary produced by aggregate passes validation."""
    _write_load_results(tmp_path / "results")
    output = tmp_path / "summary.json"
    orchestrate_aggregate(
        _global_args(command="aggregate", results_dir=str(tmp_path / "results"), output=str(output)),
        environ={},
        clock=_clock,
    )

    exit_code = orchestrate_validate(_global_args(command="validate", summary=str(output), require_all=False))

    assert exit_code == 0
    assert "OK" in capsys.readouterr().out


def test_run_command_configuration_error_returns_2():
    """Verify invalid configuration maps to exit code 2."""
    args = _global_args(command="aggregate", results_dir=None, output=None)

    with patch("k6dash.main.load_config", side_effect=ConfigurationError("bad thresholds")):
        assert run_command(args) == 2


def test_run_command_api_error_returns_4():
    """Verify GitHub API failures that escape the pipeline map to exit code 4."""
    args = _global_args(command="validate", summary="x.json", require_all=False)

    with patch("k6dash.main.read_summary", side_effect=ApiError("boom")):
        assert run_command(args) == 4


def test_run_command_output_error_returns_1(tmp_path):
    """Verify an unwritable output maps to exit code 1."""
    args = _global_args(command="generate-report", input="in.json", output="out.html", category=None)

    with patch("k6dash.main.generate_report", side_effect=OutputWriteError("read-only")):
        assert run_command(args, environ={}) == 1


def test_run_command_missing_summary_returns_1(tmp_path):
    """Verify a missing summary file for validate maps to exit code 1."""
    args = _global_args(command="validate", summary=str(tmp_path / "missing.json"), require_all=False)

    assert run_command(args) == 1


def test_run_command_unexpected_error_returns_1():
    """Verify unexpected exceptions are mapped to the generic non-zero exit code."""
    args = _global_args(command="validate", summary="x.json", require_all=False)

    with patch("k6dash.main.read_summary", side_effect=RuntimeError("boom")):
        assert run_command(args) == 1


def test_main_parses_configures_logging_and_dispatches():
    """Verify main wires parsing, logging and dispatch together."""
    args = _global_args(command="validate", summary="x.json", require_all=False, verbose=True)

    with patch("k6dash.main.parse_args", return_value=args) as parse_mock, patch(
        "k6dash.main.configure_logging"
    ) as logging_mock, patch("k6dash.main.run_command", return_value=0) as run_mock:
        assert main(["validate", "x.json"]) == 0

    parse_mock.assert_called_once_with(["validate", "x.json"])
    logging_mock.assert_called_once_with(True)
    run_mock.assert_called_once_with(args)


def test_orchestrate_dashboard_without_repository_skips_github(tmp_path):
    """Verify --github without GITHUB_REPOSITORY does not build a client."""
    _write_load_results(tmp_path / "results")
    client_ctor = Mock()

    with patch("k6dash.main.GitHubClient", client_ctor):
        exit_code = orchestrate_dashboard(_dashboard_args(tmp_path, github=True), environ={}, clock=_clock)

    assert exit_code == 0
    client_ctor.assert_not_called()
