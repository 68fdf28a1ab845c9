"""Configuration parsing and validation for the k6 dashboard generator."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from .categories import DEFAULT_CATEGORIES, TestCategory, with_thresholds
from .errors import ConfigurationError
from .models import StatusThresholds

DEFAULT_RESULTS_DIR = "k6-results"
DEFAULT_SITE_DIR = "site"
DEFAULT_STREAM_THRESHOLD_MB = 50.0
SUMMARY_ARTIFACT = Path("reports") / "k6-summary.json"
DASHBOARD_FILE = "index.html"

_THRESHOLD_ENV_PREFIX = "K6DASH_THRESHOLDS_"


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the dashboard pipeline."""

    results_dir: Path
    site_dir: Path
    categories: Tuple[TestCategory, ...]
    stream_threshold_bytes: int
    template_dir: Optional[Path] = None
    github_token: Optional[str] = None
    github_repository: Optional[str] = None

    @property
    def summary_path(self) -> Path:
        return self.site_dir / SUMMARY_ARTIFACT

    @property
    def dashboard_path(self) -> Path:
        return self.site_dir / DASHBOARD_FILE

    def report_path(self, category: TestCategory) -> Path:
        return self.site_dir / category.report_path


def parse_thresholds(value: str, name: str = "thresholds") -> StatusThresholds:
    """Parse a ``"pass,warning"`` percentage pair.

    Raises:
        ConfigurationError: If the pair is malformed, outside ``[0, 100]``, or
            the warning limit exceeds the pass limit.
    """
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 2:
        raise ConfigurationError(
            f"Invalid value for '{name}': expected 'pass,warning' percentages, got {value!r}."
        )

    try:
        pass_rate, warning_rate = (float(part) for part in parts)
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid value for '{name}': thresholds must be numeric, got {value!r}."
        ) from exc

    if not (0 <= warning_rate <= pass_rate <= 100):
        raise ConfigurationError(
            f"Invalid value for '{name}': expected 0 <= warning <= pass <= 100, got {value!r}."
        )

    return StatusThresholds(pass_rate=pass_rate, warning_rate=warning_rate)


def _threshold_overrides(environ: Mapping[str, str]) -> Dict[str, StatusThresholds]:
    overrides: Dict[str, StatusThresholds] = {}
    for variable, value in environ.items():
        if not variable.startswith(_THRESHOLD_ENV_PREFIX) or not value.strip():
            continue
        key = variable[len(_THRESHOLD_ENV_PREFIX):].lower()
        overrides[key] = parse_thresholds(value, name=variable)
    return overrides


def _optional_env(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name, "").strip()
    return value or None


def load_config(
    results_dir: Optional[str] = None,
    site_dir: Optional[str] = None,
    template_dir: Optional[str] = None,
    stream_threshold_mb: Optional[float] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Build and validate application configuration.

    Explicit arguments (from the CLI) win over ``K6DASH_*`` environment
    variables, which win over built-in defaults.

    Args:
        results_dir: Directory holding ``<category>.json`` result files.
        site_dir: Directory the reports and dashboard are written to.
        template_dir: Optional directory of template overrides.
        stream_threshold_mb: File size above which results are streamed.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If a threshold override or the stream threshold is invalid.
    """
    env = os.environ if environ is None else environ

    resolved_results = results_dir or _optional_env(env, "K6DASH_RESULTS_DIR") or DEFAULT_RESULTS_DIR
    resolved_site = site_dir or _optional_env(env, "K6DASH_SITE_DIR") or DEFAULT_SITE_DIR
    resolved_templates = template_dir or _optional_env(env, "K6DASH_TEMPLATE_DIR")

    if stream_threshold_mb is None:
        raw_threshold = _optional_env(env, "K6DASH_STREAM_THRESHOLD_MB")
        try:
            stream_threshold_mb = (
                float(raw_threshold) if raw_threshold else DEFAULT_STREAM_THRESHOLD_MB
            )
        except ValueError as exc:
            raise ConfigurationError(
                "Invalid value for 'K6DASH_STREAM_THRESHOLD_MB': expected a number."
            ) from exc

    if stream_threshold_mb <= 0:
        raise ConfigurationError(
            "Invalid value for 'stream threshold': expected a size greater than 0 MB."
        )

    categories = with_thresholds(DEFAULT_CATEGORIES, _threshold_overrides(env))

    return Config(
        results_dir=Path(resolved_results),
        site_dir=Path(resolved_site),
        categories=categories,
        stream_threshold_bytes=int(stream_threshold_mb * 1024 * 1024),
        template_dir=Path(resolved_templates) if resolved_templates else None,
        github_token=_optional_env(env, "GITHUB_TOKEN"),
        github_repository=_optional_env(env, "GITHUB_REPOSITORY"),
    )
