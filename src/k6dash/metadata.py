"""CI build metadata shown on the dashboard."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

UNKNOWN = "unknown"

PASSED = "PASSED"
FAILED = "FAILED"
RUNNING = "RUNNING"

# Job name -> environment variable carrying that job's status.
_JOB_STATUS_VARIABLES = {
    "playwright": "PLAYWRIGHT_STATUS",
    "k6": "K6_STATUS",
}


@dataclass(frozen=True)
class DashboardMetadata:
    """Build identifiers for the dashboard header; absent values are ``"unknown"``."""

    commit: str = UNKNOWN
    commit_short: str = UNKNOWN
    branch: str = UNKNOWN
    run_id: str = UNKNOWN
    run_number: str = UNKNOWN
    workflow_name: str = UNKNOWN
    event: str = UNKNOWN
    environment: str = UNKNOWN
    job_statuses: Dict[str, str] = field(default_factory=dict)

    @property
    def pipeline_status(self) -> str:
        return derive_pipeline_status(self.job_statuses)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for ``metadata.json`` next to the dashboard."""
        return {
            "commit": self.commit,
            "commitShort": self.commit_short,
            "branch": self.branch,
            "runId": self.run_id,
            "runNumber": self.run_number,
            "workflowName": self.workflow_name,
            "event": self.event,
            "environment": self.environment,
            "jobStatuses": dict(sorted(self.job_statuses.items())),
            "pipelineStatus": self.pipeline_status,
        }


def derive_pipeline_status(job_statuses: Mapping[str, str]) -> str:
    """Combine job statuses into one pipeline badge.

    FAILED if any job failed, PASSED if every job passed, RUNNING otherwise.
    ``"unknown"`` when no job status is known at all.
    """
    known = [
        status.upper()
        for status in job_statuses.values()
        if status and status.upper() != UNKNOWN.upper()
    ]
    if not known:
        return UNKNOWN
    if FAILED in known:
        return FAILED
    if len(known) == len(job_statuses) and all(status == PASSED for status in known):
        return PASSED
    return RUNNING


def _value(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name, "").strip()
    return value or None


def _branch(environ: Mapping[str, str]) -> str:
    ref_name = _value(environ, "GITHUB_REF_NAME")
    if ref_name:
        return ref_name

    ref = _value(environ, "GITHUB_REF")
    if ref is None:
        return UNKNOWN
    for prefix in ("refs/heads/", "refs/tags/"):
        if ref.startswith(prefix):
            return ref[len(prefix):]
    return ref


def load_metadata(environ: Optional[Mapping[str, str]] = None) -> DashboardMetadata:
    """Read build metadata from GitHub Actions environment variables.

    Args:
        environ: Environment mapping; defaults to ``os.environ``.
    """
    env = os.environ if environ is None else environ

    commit = _value(env, "GITHUB_SHA") or UNKNOWN
    job_statuses: Dict[str, str] = {}
    for job, variable in _JOB_STATUS_VARIABLES.items():
        status = _value(env, variable)
        job_statuses[job] = status.upper() if status else UNKNOWN

    return DashboardMetadata(
        commit=commit,
        commit_short=commit[:7] if commit != UNKNOWN else UNKNOWN,
        branch=_branch(env),
        run_id=_value(env, "GITHUB_RUN_ID") or UNKNOWN,
        run_number=_value(env, "GITHUB_RUN_NUMBER") or UNKNOWN,
        workflow_name=_value(env, "GITHUB_WORKFLOW") or UNKNOWN,
        event=_value(env, "GITHUB_EVENT_NAME") or UNKNOWN,
        environment=_value(env, "BASE_URL") or UNKNOWN,
        job_statuses=job_statuses,
    )


def merge_metadata(
    metadata: DashboardMetadata,
    fields: Mapping[str, str],
    job_statuses: Optional[Mapping[str, str]] = None,
) -> DashboardMetadata:
    """Fill ``"unknown"`` fields from another source, keeping known values.

    Job statuses from ``job_statuses`` replace unknown entries only.
    """
    updates: Dict[str, Any] = {}
    for name, value in fields.items():
        if value and getattr(metadata, name) == UNKNOWN:
            updates[name] = value

    if "commit" in updates and metadata.commit_short == UNKNOWN:
        updates["commit_short"] = updates["commit"][:7]

    if job_statuses:
        merged = dict(metadata.job_statuses)
        for job, status in job_statuses.items():
            if merged.get(job, UNKNOWN) == UNKNOWN:
                merged[job] = status
        updates["job_statuses"] = merged

    return replace(metadata, **updates) if updates else metadata
