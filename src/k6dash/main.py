"""Application entry point for the k6 dashboard generator."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Callable, Dict, Mapping, Optional, Sequence

from .aggregator import Clock, aggregate, read_summary, utc_now, write_summary
from .cli import parse_args
from .config import Config, load_config
from .dashboard import DashboardComposer
from .errors import ApiError, ConfigurationError, DashboardError, MalformedInputError
from .github_client import GitHubClient, enrich_metadata
from .history import LOCAL_RUN, save_history
from .metadata import UNKNOWN, load_metadata
from .playwright import load_playwright_stats
from .renderer import generate_report
from .stats import format_count, format_percent
from .validate import validate_summary

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_API_ERROR = 4


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr; stdout carries the human-readable results."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _config_from_args(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> Config:
    return load_config(
        results_dir=getattr(args, "results_dir", None),
        site_dir=getattr(args, "site_dir", None),
        template_dir=args.template_dir,
        stream_threshold_mb=args.stream_threshold_mb,
        environ=environ,
    )


def orchestrate_generate_report(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> int:
    """Render one results file; pending and error pages still count as success."""
    config = _config_from_args(args, environ)
    outcome = generate_report(
        args.input,
        args.output,
        category=args.category,
        template_dir=config.template_dir,
        categories=config.categories,
        stream_threshold_bytes=config.stream_threshold_bytes,
    )
    print(f"{outcome.category}: wrote {outcome.state.value} report to {args.output}")
    return EXIT_SUCCESS


def orchestrate_aggregate(
    args: argparse.Namespace,
    environ: Optional[Mapping[str, str]] = None,
    clock: Clock = utc_now,
) -> int:
    """Write the combined summary artifact for every configured category."""
    config = _config_from_args(args, environ)
    result = aggregate(
        config.results_dir,
        [category.key for category in config.categories],
        clock=clock,
        stream_threshold_bytes=config.stream_threshold_bytes,
    )
    path = write_summary(result.summary, args.output or config.summary_path)

    for key, outcome in result.outcomes.items():
        stats = outcome.statistics
        print(
            f"{key:<12} {outcome.state.value:<9} {format_count(stats.total_requests):>10} requests"
            f"  {format_percent(stats.success_rate)} success"
        )
    print(f"Summary written to {path}")
    return EXIT_SUCCESS


def orchestrate_dashboard(
    args: argparse.Namespace,
    environ: Optional[Mapping[str, str]] = None,
    clock: Clock = utc_now,
) -> int:
    """Run the full pipeline and write the site.

    Returns ``1`` when no category had any results, ``0`` otherwise.
    """
    env = os.environ if environ is None else environ
    config = _config_from_args(args, env)
    metadata = load_metadata(env)

    if args.github:
        if config.github_repository:
            client = GitHubClient(config.github_repository, token=config.github_token)
            metadata = enrich_metadata(metadata, client)
        else:
            logger.warning("GITHUB_REPOSITORY is not set; skipping GitHub metadata")

    playwright = None
    if args.playwright_report:
        try:
            playwright = load_playwright_stats(args.playwright_report)
        except MalformedInputError as exc:
            logger.warning("Ignoring unreadable Playwright report", extra={"error": str(exc)})

    result = DashboardComposer(config).run(metadata, clock=clock, playwright=playwright)

    if args.history_dir:
        run_number = metadata.run_number if metadata.run_number != UNKNOWN else LOCAL_RUN
        save_history(config.site_dir, args.history_dir, run_number)

    for key, state in result.states.items():
        print(f"{key:<12} {state.value}")
    print(f"Dashboard written to {result.dashboard_path}")

    if result.all_pending:
        logger.error(
            "No k6 results found for any category",
            extra={"results_dir": str(config.results_dir)},
        )
        return EXIT_FAILURE
    return EXIT_SUCCESS


def orchestrate_validate(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> int:
    """Check a combined summary; violations are printed and exit 1."""
    summary = read_summary(args.summary)
    problems = validate_summary(summary, require_all=args.require_all)

    if problems:
        for problem in problems:
            print(f"FAIL {problem}")
        return EXIT_FAILURE

    print(f"OK {args.summary}: {len(summary.per_test)} categories consistent")
    return EXIT_SUCCESS


_COMMANDS: Dict[str, Callable[..., int]] = {
    "generate-report": orchestrate_generate_report,
    "aggregate": orchestrate_aggregate,
    "dashboard": orchestrate_dashboard,
    "validate": orchestrate_validate,
}


def run_command(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> int:
    """Dispatch a parsed command and map failures to exit codes."""
    try:
        return _COMMANDS[args.command](args, environ)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIGURATION_ERROR
    except ApiError as exc:
        logger.error("GitHub API error: %s", exc)
        return EXIT_API_ERROR
    except DashboardError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    except Exception:
        logger.exception("Unexpected error")
        return EXIT_FAILURE


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)
    return run_command(args)


if __name__ == "__main__":
    raise SystemExit(main())
