"""Aggregate k6 results into per-category HTML reports and a test dashboard."""

__version__ = "0.1.0"
