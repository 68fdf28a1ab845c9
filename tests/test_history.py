"""Tests for per-run history snapshots."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from k6dash.errors import OutputWriteError
from k6dash.history import save_history


def test_save_history_copies_dashboard_and_summary(tmp_path):
    """Verify index.html and the summary JSON are copied under the run number."""
    site = tmp_path / "site"
    (site / "reports").mkdir(parents=True)
    (site / "index.html").write_text("<html></html>", encoding="utf-8")
    (site / "reports" / "k6-summary.json").write_text("{}", encoding="utf-8")

    copied = save_history(site, tmp_path / "history", "42")

    target = tmp_path / "history" / "42"
    assert copied == [target / "index.html", target / "k6-summary.json"]
    assert (target / "index.html").read_text(encoding="utf-8") == "<html></html>"


def test_save_history_skips_missing_files_and_defaults_run(tmp_path):
    """Verify missing files are skipped and an empty run number becomes "local"."""
    site = tmp_path / "site"
    site.mkdir()
    (site / "index.html").write_text("x", encoding="utf-8")

    copied = save_history(site, tmp_path / "history", "")

    assert copied == [tmp_path / "history" / "local" / "index.html"]


def test_save_history_unwritable_target_raises(tmp_path):
    """Verify a history path blocked by a file raises OutputWriteError."""
    blocker = tmp_path / "history"
    blocker.write_text("file", encoding="utf-8")

    with pytest.raises(OutputWriteError):
        save_history(tmp_path, blocker, "1")
