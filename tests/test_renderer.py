"""Tests for report rendering, state pages and the generate-report operation."""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from markupsafe import Markup

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from k6dash.categories import DEFAULT_CATEGORIES, category_for
from k6dash.errors import OutputWriteError, RenderError
from k6dash.models import CategoryOutcome, ReportState, Status, StatusThresholds, TestStatistics
from k6dash.renderer import (
    ReportRenderer,
    classify_status,
    find_residue,
    generate_report,
    minimal_error_page,
    neutralize_braces,
    status_for,
)
from k6dash.stats import empty_statistics

LOAD = DEFAULT_CATEGORIES[0]


def _complete(success_rate: float = 98.0) -> CategoryOutcome:
    stats = TestStatistics(
        total_requests=1000,
        failed_requests=20,
        success_rate=success_rate,
        avg_duration_ms=150.5,
        min_duration_ms=10.0,
        max_duration_ms=900.0,
        p90=200.0,
        p95=300.0,
        p99=500.0,
        requests_per_second=33.33,
        max_concurrency=50,
        iteration_count=500,
    )
    return CategoryOutcome(category="load", statistics=stats, state=ReportState.COMPLETE)


@pytest.mark.parametrize(
    ("rate", "expected"),
    [(100.0, Status.PASS), (90.0, Status.PASS), (89.99, Status.WARNING), (70.0, Status.WARNING), (69.9, Status.FAIL)],
)
def test_classify_status_boundaries(rate, expected):
    """Verify pass and warning limits are inclusive."""
    assert classify_status(rate, StatusThresholds(pass_rate=90.0, warning_rate=70.0)) is expected


def test_status_for_uses_category_thresholds():
    """Verify the same success rate can pass for load and warn for performance."""
    performance = category_for("performance")
    outcome = _complete(success_rate=92.0)

    assert status_for(outcome, LOAD) is Status.PASS
    assert status_for(outcome, performance) is Status.WARNING


def test_status_for_pending_and_error_states():
    """Verify non-complete states map to their own badges."""
    pending = CategoryOutcome(category="load", statistics=empty_statistics(), state=ReportState.PENDING)
    error = CategoryOutcome(category="load", statistics=empty_statistics(), state=ReportState.ERROR, error="x")

    assert status_for(pending, LOAD) is Status.PENDING
    assert status_for(error, LOAD) is Status.ERROR


def test_render_report_complete_contains_formatted_values():
    """Verify the complete report shows formatted statistics and no template residue."""
    document = ReportRenderer().render_report(_complete(), LOAD)

    assert 'data-report-state="complete"' in document
    assert "1,000" in document
    assert "98.00%" in document
    assert "150.50 ms" in document
    assert "300.00 ms" in document
    assert find_residue(document) == []


def test_render_pending_and_error_are_distinct():
    """Verify pending and error pages carry different markers and are non-empty."""
    renderer = ReportRenderer()
    pending = renderer.render_pending(LOAD)
    error = renderer.render_error(LOAD, "MalformedInputError: bad file")

    assert 'data-report-state="pending"' in pending
    assert "Test data is being generated" in pending
    assert 'data-report-state="error"' in error
    assert "MalformedInputError: bad file" in error
    assert "Test data is being generated" not in error
    assert find_residue(pending) == []


def test_render_error_escapes_message():
    """Verify error messages are HTML-escaped."""
    document = ReportRenderer().render_error(LOAD, "<script>alert(1)</script>")

    assert "<script>alert(1)</script>" not in document
    assert "&lt;script&gt;" in document


def test_render_report_with_residue_raises(tmp_path):
    """Verify an override template that leaves placeholders raises RenderError."""
    (tmp_path / "report_load.html").write_text("<p>{% raw %}{{TOTAL_REQUESTS}}{% endraw %}</p>", encoding="utf-8")

    with pytest.raises(RenderError):
        ReportRenderer(tmp_path).render_report(_complete(), LOAD)


def test_render_report_source_path_with_braces_renders(tmp_path):
    """Verify braces in an interpolated source path are shown, not treated as residue."""
    outcome = CategoryOutcome(
        category="load",
        statistics=_complete().statistics,
        state=ReportState.COMPLETE,
        source=tmp_path / "{{run}}" / "load.json",
    )

    document = ReportRenderer().render_report(outcome, LOAD)

    assert "&#123;&#123;run&#125;&#125;" in document
    assert find_residue(document) == []


def test_neutralize_braces_leaves_markup_and_plain_text():
    """Verify only plain strings with braces are rewritten."""
    assert neutralize_braces("main") == "main"
    assert neutralize_braces(42) == 42
    assert neutralize_braces(Markup("[1, 2]")) == Markup("[1, 2]")
    assert neutralize_braces("{% x %} <b>") == "&#123;% x %&#125; &lt;b&gt;"


def test_render_report_undefined_variable_raises(tmp_path):
    """Verify undefined template variables fail instead of rendering empty."""
    (tmp_path / "report.html").write_text("<p>{{ missing_value }}</p>", encoding="utf-8")

    with pytest.raises(RenderError):
        ReportRenderer(tmp_path).render_report(_complete(), LOAD)


def test_category_override_template_is_preferred(tmp_path):
    """Verify report_<category>.html wins over the generic template."""
    (tmp_path / "report_load.html").write_text(
        '<div data-report-state="complete">custom {{ stats.total_requests }}</div>\n',
        encoding="utf-8",
    )

    renderer = ReportRenderer(tmp_path)

    assert "custom 1000" in renderer.render_report(_complete(), LOAD)
    assert "custom" not in renderer.render_report(
        CategoryOutcome(category="stress", statistics=_complete().statistics, state=ReportState.COMPLETE),
        category_for("stress"),
    )


def test_render_safely_falls_back_to_error_page(tmp_path):
    """Verify a failing template turns into the error page embedding the message."""
    (tmp_path / "report.html").write_text("{{ nope }}", encoding="utf-8")

    document = ReportRenderer(tmp_path).render_safely(_complete(), LOAD)

    assert 'data-report-state="error"' in document
    assert "RenderError" in document


def test_render_safely_uses_minimal_page_when_error_template_fails(tmp_path):
    """Verify the built-in minimal page is used when even the error template breaks."""
    (tmp_path / "report.html").write_text("{{ nope }}", encoding="utf-8")
    (tmp_path / "error.html").write_text("{% if %}", encoding="utf-8")

    document = ReportRenderer(tmp_path).render_safely(_complete(), LOAD)

    assert "<title>Load Test (error)</title>" in document
    assert 'data-report-state="error"' in document
    assert "RenderError" in document


def test_minimal_error_page_escapes_content():
    """Verify the template-free page escapes title and message."""
    document = minimal_error_page("A & B", "<b>boom</b>")

    assert "A &amp; B" in document
    assert "&lt;b&gt;boom&lt;/b&gt;" in document


def test_generate_report_writes_complete_report(tmp_path):
    """Verify a k6 summary export becomes a complete report file."""
    source = tmp_path / "load.json"
    source.write_text(
        json.dumps({"metrics": {"http_reqs": {"values": {"count": 1000}}, "http_req_failed": {"values": {"rate": 0.02}}}}),
        encoding="utf-8",
    )
    output = tmp_path / "site" / "k6" / "load" / "index.html"

    outcome = generate_report(source, output)

    assert outcome.state is ReportState.COMPLETE
    assert outcome.category == "load"
    content = output.read_text(encoding="utf-8")
    assert 'data-report-state="complete"' in content
    assert "98.00%" in content


def test_generate_report_missing_input_writes_pending(tmp_path):
    """Verify a missing input still writes a non-empty pending page."""
    output = tmp_path / "report.html"

    outcome = generate_report(tmp_path / "stress-summary.json", output)

    assert outcome.state is ReportState.PENDING
    assert outcome.category == "stress"
    content = output.read_text(encoding="utf-8")
    assert 'data-report-state="pending"' in content
    assert "Stress Test" in content


def test_generate_report_malformed_input_writes_error_page(tmp_path):
    """Verify a broken input writes the error page rather than fabricated numbers."""
    source = tmp_path / "security.json"
    source.write_text(json.dumps({"metrics": ["x"]}), encoding="utf-8")
    output = tmp_path / "report.html"

    outcome = generate_report(source, output)

    assert outcome.state is ReportState.ERROR
    content = output.read_text(encoding="utf-8")
    assert 'data-report-state="error"' in content
    assert "MalformedInputError" in content
    assert output.stat().st_size > 0


def test_generate_report_unwritable_output_raises(tmp_path):
    """Verify failing to write the output path is the one error that propagates."""
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(OutputWriteError):
        generate_report(tmp_path / "load.json", blocker / "report.html")


def test_generate_report_unknown_category_uses_general_thresholds(tmp_path):
    """Verify ad-hoc category names render with a generic title."""
    output = tmp_path / "out.html"

    with patch("k6dash.renderer.aggregate_file", return_value=_complete()) as aggregate_mock:
        generate_report(tmp_path / "soak.json", output, category="soak")

    aggregate_mock.assert_called_once()
    assert "Soak Test" in output.read_text(encoding="utf-8")
