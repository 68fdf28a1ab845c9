"""GitHub Actions REST API client for pipeline status on the dashboard."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from .errors import ApiError
from .metadata import FAILED, PASSED, RUNNING, UNKNOWN, DashboardMetadata, merge_metadata
from .models import WorkflowJob, WorkflowRun

logger = logging.getLogger(__name__)

# Dashboard job key -> substring matched against lowercased job names.
_JOB_KEYS = {
    "playwright": "playwright",
    "k6": "k6",
}


def classify_job(job: WorkflowJob) -> str:
    """Map a job's GitHub status and conclusion to PASSED, FAILED or RUNNING."""
    if job.status != "completed":
        return RUNNING
    if job.conclusion == "success":
        return PASSED
    return FAILED


def _combine(statuses: List[str]) -> str:
    if FAILED in statuses:
        return FAILED
    if RUNNING in statuses:
        return RUNNING
    return PASSED


class GitHubClient:
    """Small, typed client for the GitHub Actions workflow run APIs."""

    _BASE_URL = "https://api.github.com"
    _JOBS_PAGE_SIZE = 100
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, repository: str, token: Optional[str] = None, timeout_seconds: int = 30) -> None:
        """Initialize a GitHub API client.

        Args:
            repository: ``owner/name`` of the repository whose runs are read.
            token: Optional token; unauthenticated requests are rate limited.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._repository = repository
        self._timeout_seconds = timeout_seconds

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "User-Agent": "k6-dashboard-generator",
            }
        )
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    def _build_url(self, path: str) -> str:
        """Build a fully qualified URL below ``/repos/<repository>``."""
        return f"{self._BASE_URL}/repos/{self._repository}/{path.lstrip('/')}"

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute a GET request with retry logic for 429/5xx responses.

        Raises:
            ApiError: If the request repeatedly fails, returns HTTP >= 400,
                or does not return a JSON object.
        """
        url = self._build_url(path)
        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.get(url, params=params, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise ApiError(f"GitHub request failed after retries: GET {url}") from exc
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                logger.debug(
                    "Retrying GitHub request",
                    extra={"url": url, "status_code": status_code, "attempt": attempt},
                )
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code >= 400:
                raise ApiError(
                    "GitHub API request failed: "
                    f"GET {url} returned {status_code} - {response.text}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise ApiError(f"GitHub API returned invalid JSON: GET {url}") from exc

            if not isinstance(payload, dict):
                raise ApiError(f"GitHub API returned unexpected payload shape: GET {url}")

            return payload

        raise ApiError(f"GitHub request failed after retries: GET {url}") from last_error

    def get_workflow_run(self, run_id: str) -> WorkflowRun:
        """Fetch one workflow run.

        Raises:
            ApiError: If the request fails or the payload lacks an id.
        """
        item = self._get_json(f"actions/runs/{run_id}")
        if item.get("id") is None:
            raise ApiError(f"GitHub workflow run payload is missing 'id': run_id={run_id}")

        return WorkflowRun(
            id=int(item["id"]),
            run_number=int(item.get("run_number") or 0),
            name=str(item.get("name") or ""),
            head_sha=str(item.get("head_sha") or ""),
            head_branch=str(item.get("head_branch") or ""),
            event=str(item.get("event") or ""),
            status=str(item.get("status") or ""),
            conclusion=item.get("conclusion"),
        )

    def list_jobs(self, run_id: str) -> List[WorkflowJob]:
        """List every job of a workflow run, following page-number pagination."""
        jobs: List[WorkflowJob] = []
        page = 1

        while True:
            payload = self._get_json(
                f"actions/runs/{run_id}/jobs",
                params={"per_page": self._JOBS_PAGE_SIZE, "page": page},
            )

            page_items = payload.get("jobs") or []
            for item in page_items:
                job_id = item.get("id")
                name = item.get("name")
                if job_id is None or not name:
                    continue
                jobs.append(
                    WorkflowJob(
                        id=int(job_id),
                        name=str(name),
                        status=str(item.get("status") or ""),
                        conclusion=item.get("conclusion"),
                    )
                )

            if len(page_items) < self._JOBS_PAGE_SIZE:
                break

            page += 1

        return jobs

    def job_statuses(self, run_id: str) -> Dict[str, str]:
        """Status per dashboard job key; jobs that never ran stay ``"unknown"``.

        Several jobs can match one key (a k6 matrix); any failure wins, then
        any job still running.
        """
        matched: Dict[str, List[str]] = {key: [] for key in _JOB_KEYS}
        for job in self.list_jobs(run_id):
            name = job.name.lower()
            for key, needle in _JOB_KEYS.items():
                if needle in name:
                    matched[key].append(classify_job(job))

        return {key: _combine(statuses) if statuses else UNKNOWN for key, statuses in matched.items()}


def enrich_metadata(
    metadata: DashboardMetadata,
    client: GitHubClient,
    run_id: Optional[str] = None,
) -> DashboardMetadata:
    """Fill unknown metadata from the GitHub API.

    API failures are logged and the environment metadata is returned unchanged.
    """
    target_run = run_id or metadata.run_id
    if not target_run or target_run == UNKNOWN:
        logger.warning("No workflow run id available; skipping GitHub metadata")
        return metadata

    try:
        run = client.get_workflow_run(target_run)
        statuses = client.job_statuses(target_run)
    except ApiError as exc:
        logger.warning(
            "GitHub metadata unavailable; using environment values",
            extra={"run_id": target_run, "error": str(exc)},
        )
        return metadata

    return merge_metadata(
        metadata,
        {
            "commit": run.head_sha,
            "branch": run.head_branch,
            "run_number": str(run.run_number) if run.run_number else "",
            "workflow_name": run.name,
            "event": run.event,
        },
        job_statuses={key: status for key, status in statuses.items() if status != UNKNOWN},
    )
