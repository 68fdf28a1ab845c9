"""Registry of the k6 test categories rendered on the dashboard."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Mapping, Tuple

from .models import StatusThresholds


@dataclass(frozen=True, slots=True)
class TestCategory:
    """Display and grading settings for one k6 test category."""

    __test__ = False

    key: str
    title: str
    description: str
    icon: str
    color: str
    thresholds: StatusThresholds

    @property
    def report_path(self) -> str:
        """Site-relative path of the category report."""
        return f"k6/{self.key}/index.html"


DEFAULT_CATEGORIES: Tuple[TestCategory, ...] = (
    TestCategory(
        key="load",
        title="Load Test",
        description="Performance under expected load",
        icon="arrow-up-right",
        color="danger",
        thresholds=StatusThresholds(pass_rate=90.0, warning_rate=70.0),
    ),
    TestCategory(
        key="performance",
        title="Performance Test",
        description="General performance benchmark",
        icon="speedometer",
        color="primary",
        thresholds=StatusThresholds(pass_rate=95.0, warning_rate=85.0),
    ),
    TestCategory(
        key="stress",
        title="Stress Test",
        description="Behaviour under extreme load",
        icon="battery-full",
        color="warning",
        thresholds=StatusThresholds(pass_rate=80.0, warning_rate=60.0),
    ),
    TestCategory(
        key="security",
        title="Security Test",
        description="Security-focused request checks",
        icon="shield-check",
        color="success",
        thresholds=StatusThresholds(pass_rate=90.0, warning_rate=70.0),
    ),
)

GENERAL_THRESHOLDS = StatusThresholds(pass_rate=90.0, warning_rate=70.0)


def with_thresholds(
    categories: Tuple[TestCategory, ...],
    overrides: Mapping[str, StatusThresholds],
) -> Tuple[TestCategory, ...]:
    """Return the categories with per-key threshold overrides applied."""
    return tuple(
        replace(category, thresholds=overrides[category.key])
        if category.key in overrides
        else category
        for category in categories
    )


def category_for(
    key: str,
    categories: Tuple[TestCategory, ...] = DEFAULT_CATEGORIES,
) -> TestCategory:
    """Look up a category by key.

    Unknown keys get a generic category with the general thresholds so ad-hoc
    reports (``generate-report`` on an arbitrary file) still render.
    """
    for category in categories:
        if category.key == key:
            return category

    title = key.replace("-", " ").replace("_", " ").title()
    if not title.endswith(" Test"):
        title = f"{title} Test"

    return TestCategory(
        key=key,
        title=title,
        description="k6 test results",
        icon="lightning",
        color="secondary",
        thresholds=GENERAL_THRESHOLDS,
    )
