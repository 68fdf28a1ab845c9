"""Built-in Jinja2 templates for category reports and the dashboard.

Templates are addressed by name through a ``DictLoader``. A template directory
configured at runtime is searched first, so any of these names can be
overridden with a file of the same name. ``report_<category>.html`` is looked
up before the generic ``report.html`` for category reports.
"""

BASE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{% block title %}k6 Report{% endblock %}</title>
  <link href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.2/dist/css/bootstrap.min.css" rel="stylesheet">
  <link href="https://cdn.jsdelivr.net/npm/bootstrap-icons@1.11.1/font/bootstrap-icons.css" rel="stylesheet">
  <style>
    .page-header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: #fff; padding: 2rem; border-radius: 0.5rem; margin-bottom: 2rem; }
    .metric-card .metric-value { font-size: 1.5rem; font-weight: 700; }
    .metric-card .metric-label { color: #64748b; font-size: 0.875rem; }
    .state-panel { padding: 2rem; border-radius: 0.5rem; margin-bottom: 2rem; }
    .chart-container { position: relative; height: 300px; }
  </style>
</head>
<body class="bg-light">
  <div class="container py-5">
{% block content %}{% endblock %}
    <footer class="text-center text-muted small mt-5">
      <p>Report generated from k6 results</p>
    </footer>
  </div>
{% block scripts %}{% endblock %}
</body>
</html>
"""

REPORT_TEMPLATE = """{% extends "base.html" %}
{% block title %}k6 {{ category.title }} Report{% endblock %}
{% block content %}
    <div class="page-header" data-report-state="complete" data-category="{{ category.key }}">
      <h1 class="display-5 fw-bold"><i class="bi bi-{{ category.icon }}"></i> {{ category.title }}</h1>
      <p class="lead mb-0">{{ category.description }}</p>
      <span class="badge {{ status | badge_class }} fs-6 mt-3" data-status="{{ status.value }}">{{ status.value | upper }}</span>
    </div>

    <div class="row g-4 mb-4">
      <div class="col-md-3">
        <div class="card metric-card h-100"><div class="card-body">
          <div class="metric-label">Total Requests</div>
          <div class="metric-value" id="total-requests">{{ stats.total_requests | thousands }}</div>
        </div></div>
      </div>
      <div class="col-md-3">
        <div class="card metric-card h-100"><div class="card-body">
          <div class="metric-label">Success Rate</div>
          <div class="metric-value" id="success-rate">{{ stats.success_rate | percent }}</div>
          <div class="metric-label">{{ stats.failed_requests | thousands }} failed</div>
        </div></div>
      </div>
      <div class="col-md-3">
        <div class="card metric-card h-100"><div class="card-body">
          <div class="metric-label">Average Response</div>
          <div class="metric-value" id="avg-response">{{ stats.avg_duration_ms | ms }}</div>
        </div></div>
      </div>
      <div class="col-md-3">
        <div class="card metric-card h-100"><div class="card-body">
          <div class="metric-label">P95 Response</div>
          <div class="metric-value" id="p95-response">{{ stats.p95 | ms }}</div>
        </div></div>
      </div>
    </div>

    <div class="row g-4 mb-4">
      <div class="col-lg-6">
        <div class="card h-100"><div class="card-body">
          <h5 class="card-title">Response Time Distribution</h5>
          <div class="chart-container"><canvas id="responseTimeChart"></canvas></div>
        </div></div>
      </div>
      <div class="col-lg-6">
        <div class="card h-100"><div class="card-body">
          <h5 class="card-title">Detailed Metrics</h5>
          <table class="table table-sm mb-0">
            <tbody>
              <tr><th scope="row">Minimum</th><td id="min-response">{{ stats.min_duration_ms | ms }}</td></tr>
              <tr><th scope="row">Average</th><td>{{ stats.avg_duration_ms | ms }}</td></tr>
              <tr><th scope="row">90th Percentile</th><td id="p90-response">{{ stats.p90 | ms }}</td></tr>
              <tr><th scope="row">95th Percentile</th><td>{{ stats.p95 | ms }}</td></tr>
              <tr><th scope="row">99th Percentile</th><td id="p99-response">{{ stats.p99 | ms }}</td></tr>
              <tr><th scope="row">Maximum</th><td id="max-response">{{ stats.max_duration_ms | ms }}</td></tr>
              <tr><th scope="row">Requests / Second</th><td id="rps">{{ "%.2f" | format(stats.requests_per_second) }}</td></tr>
              <tr><th scope="row">Peak Virtual Users</th><td id="max-vus">{{ stats.max_concurrency | thousands }}</td></tr>
              <tr><th scope="row">Iterations</th><td id="iterations">{{ stats.iteration_count | thousands }}</td></tr>
              <tr><th scope="row">Thresholds Breached</th><td id="thresholds-breached">{{ stats.thresholds_breached }}</td></tr>
            </tbody>
          </table>
        </div></div>
      </div>
    </div>

    <p class="text-muted small">
      Pass at {{ category.thresholds.pass_rate | percent }} success or better,
      warning at {{ category.thresholds.warning_rate | percent }}.
      {% if source %}Source: <code>{{ source }}</code>{% endif %}
    </p>
{% endblock %}
{% block scripts %}
  <script src="https://cdn.jsdelivr.net/npm/chart.js"></script>
  <script>
    const durations = {{ chart_data | tojson }};
    new Chart(document.getElementById("responseTimeChart").getContext("2d"), {
      type: "bar",
      data: {
        labels: ["Min", "Avg", "P90", "P95", "P99", "Max"],
        datasets: [{ label: "Response Time (ms)", data: durations, backgroundColor: "rgba(59, 130, 246, 0.8)" }]
      },
      options: { responsive: true, maintainAspectRatio: false, plugins: { legend: { display: false } } }
    });
  </script>
{% endblock %}
"""

PENDING_TEMPLATE = """{% extends "base.html" %}
{% block title %}k6 {{ category.title }} Report (pending){% endblock %}
{% block content %}
    <div class="page-header" data-category="{{ category.key }}">
      <h1 class="display-5 fw-bold"><i class="bi bi-{{ category.icon }}"></i> {{ category.title }}</h1>
      <p class="lead mb-0">{{ category.description }}</p>
    </div>
    <div class="state-panel alert alert-info" data-report-state="pending">
      <h2><i class="bi bi-hourglass-split"></i> Pending</h2>
      <p class="mb-0">Test data is being generated. This report will be populated once the {{ category.title | lower }} has produced results.</p>
    </div>
{% endblock %}
"""

ERROR_TEMPLATE = """{% extends "base.html" %}
{% block title %}k6 {{ category.title }} Report (error){% endblock %}
{% block content %}
    <div class="page-header" data-category="{{ category.key }}">
      <h1 class="display-5 fw-bold"><i class="bi bi-{{ category.icon }}"></i> {{ category.title }}</h1>
    </div>
    <div class="state-panel alert alert-danger" data-report-state="error">
      <h2><i class="bi bi-exclamation-triangle"></i> Report generation error</h2>
      <p>The report could not be generated from the available k6 results.</p>
      <pre class="mb-0" id="error-message">{{ message }}</pre>
    </div>
{% endblock %}
"""

DASHBOARD_TEMPLATE = """{% extends "base.html" %}
{% block title %}Test Reports Dashboard{% endblock %}
{% block content %}
    <div class="page-header text-center">
      <h1 class="display-4 fw-bold"><i class="bi bi-speedometer2"></i> Test Reports Dashboard</h1>
      <p class="lead mb-0">Automated API and performance test results</p>
    </div>

    <div class="card mb-4" id="pipeline-status">
      <div class="card-body d-flex justify-content-between align-items-center">
        <div>
          <h5 class="card-title mb-2">Pipeline: <span class="badge {{ metadata.pipeline_status | job_class }}">{{ metadata.pipeline_status }}</span></h5>
          <div class="small text-muted">
            {% for job, status in metadata.job_statuses | dictsort %}
            <strong>{{ job | capitalize }}:</strong> <span class="badge {{ status | job_class }}">{{ status }}</span>
            {% endfor %}
          </div>
        </div>
        <div class="text-end text-muted small">
          <div>Run: #{{ metadata.run_number }}</div>
          <div>Commit: {{ metadata.commit_short }}</div>
          <div>Last Run: <span id="last-run">{{ last_run }}</span></div>
        </div>
      </div>
    </div>

    <h2 class="mb-3"><i class="bi bi-info-circle"></i> Build Information</h2>
    <div class="row g-3 mb-5" id="build-info">
      <div class="col-md-3"><div class="card h-100"><div class="card-body"><h6 class="text-muted">Branch</h6><p class="mb-0">{{ metadata.branch }}</p></div></div></div>
      <div class="col-md-3"><div class="card h-100"><div class="card-body"><h6 class="text-muted">Commit</h6><p class="mb-0">{{ metadata.commit_short }}</p></div></div></div>
      <div class="col-md-3"><div class="card h-100"><div class="card-body"><h6 class="text-muted">Workflow</h6><p class="mb-0">{{ metadata.workflow_name }}</p></div></div></div>
      <div class="col-md-3"><div class="card h-100"><div class="card-body"><h6 class="text-muted">Event</h6><p class="mb-0">{{ metadata.event }}</p></div></div></div>
      <div class="col-md-6"><div class="card h-100"><div class="card-body"><h6 class="text-muted">Run ID</h6><p class="mb-0">{{ metadata.run_id }}</p></div></div></div>
      <div class="col-md-6"><div class="card h-100"><div class="card-body"><h6 class="text-muted">Environment</h6><p class="mb-0">{{ metadata.environment }}</p></div></div></div>
    </div>

    <h2 class="mb-3"><i class="bi bi-bug"></i> Functional API Tests</h2>
    <div class="card mb-5" id="functional-tests">
      <div class="card-body">
        {% if playwright %}
        <span class="badge bg-success">{{ playwright.passed }} passed</span>
        <span class="badge {{ 'bg-danger' if playwright.failed else 'bg-secondary' }}">{{ playwright.failed }} failed</span>
        <span class="text-muted ms-2">{{ playwright.total }} tests</span>
        {% else %}
        <span class="badge bg-secondary" data-report-state="pending">PENDING</span>
        <span class="text-muted ms-2">Functional test results are not available yet.</span>
        {% endif %}
      </div>
    </div>

    <h2 class="mb-3"><i class="bi bi-lightning"></i> k6 Performance Tests</h2>
    <div class="card mb-5">
      <div class="card-body table-responsive">
        <table class="table table-hover align-middle mb-0" id="test-results-table">
          <thead>
            <tr>
              <th>Test</th><th>Requests</th><th>Success</th><th>Failed</th>
              <th>Avg</th><th>P90</th><th>P95</th><th>P99</th><th>Min</th><th>Max</th>
              <th>Req/s</th><th>VUs</th><th>Iterations</th><th>Status</th><th>Report</th>
            </tr>
          </thead>
          <tbody>
            {% for row in rows %}
            <tr data-category="{{ row.category.key }}" data-report-state="{{ row.state.value }}">
              <td><i class="bi bi-{{ row.category.icon }} text-{{ row.category.color }} me-2"></i>{{ row.category.title }}</td>
              {% if row.state.value == "complete" %}
              <td>{{ row.stats.total_requests | thousands }}</td>
              <td>{{ row.stats.success_rate | percent }}</td>
              <td>{{ row.stats.failed_requests | thousands }}</td>
              <td>{{ row.stats.avg_duration_ms | ms }}</td>
              <td>{{ row.stats.p90 | ms }}</td>
              <td>{{ row.stats.p95 | ms }}</td>
              <td>{{ row.stats.p99 | ms }}</td>
              <td>{{ row.stats.min_duration_ms | ms }}</td>
              <td>{{ row.stats.max_duration_ms | ms }}</td>
              <td>{{ "%.2f" | format(row.stats.requests_per_second) }}</td>
              <td>{{ row.stats.max_concurrency | thousands }}</td>
              <td>{{ row.stats.iteration_count | thousands }}</td>
              {% else %}
              <td colspan="12" class="text-muted">{{ "Test data is being generated" if row.state.value == "pending" else row.error }}</td>
              {% endif %}
              <td><span class="badge {{ row.status | badge_class }}">{{ row.status.value | upper }}</span></td>
              <td><a href="{{ row.link }}" class="btn btn-outline-{{ row.category.color }} btn-sm">Report</a></td>
            </tr>
            {% endfor %}
          </tbody>
          <tfoot>
            <tr class="fw-bold" id="overall-row">
              <td>Overall</td>
              <td>{{ overall.total_requests | thousands }}</td>
              <td>{{ overall.avg_success_rate | percent }}</td>
              <td>{{ overall.total_failed | thousands }}</td>
              <td colspan="8"></td>
              <td>{{ overall.total_iterations | thousands }}</td>
              <td colspan="2"></td>
            </tr>
          </tfoot>
        </table>
      </div>
    </div>
{% endblock %}
"""

DASHBOARD_ERROR_TEMPLATE = """{% extends "base.html" %}
{% block title %}Test Reports Dashboard (error){% endblock %}
{% block content %}
    <div class="page-header text-center">
      <h1 class="display-4 fw-bold"><i class="bi bi-speedometer2"></i> Test Reports Dashboard</h1>
    </div>
    <div class="state-panel alert alert-danger" data-report-state="error">
      <h2><i class="bi bi-exclamation-triangle"></i> Dashboard generation error</h2>
      <pre id="error-message">{{ message }}</pre>
    </div>
    <ul id="report-links">
      {% for link in links %}
      <li><a href="{{ link.href }}">{{ link.title }}</a></li>
      {% endfor %}
    </ul>
{% endblock %}
"""

TEMPLATES = {
    "base.html": BASE_TEMPLATE,
    "report.html": REPORT_TEMPLATE,
    "pending.html": PENDING_TEMPLATE,
    "error.html": ERROR_TEMPLATE,
    "dashboard.html": DASHBOARD_TEMPLATE,
    "dashboard_error.html": DASHBOARD_ERROR_TEMPLATE,
}
