"""Custom exception types for the k6 dashboard generator."""


class DashboardError(Exception):
    """Base exception for all recoverable dashboard generator errors."""


class ConfigurationError(DashboardError):
    """Raised when runtime configuration values are missing or invalid."""


class InputNotFoundError(DashboardError):
    """Raised when a k6 result file for a test category does not exist."""


class MalformedInputError(DashboardError):
    """Raised when a whole k6 result document is unusable.

    Individual malformed NDJSON lines never raise; they are skipped and counted.
    """


class RenderError(DashboardError):
    """Raised when a template fails to render or leaves placeholders behind."""


class OutputWriteError(DashboardError):
    """Raised when a generated artifact cannot be written to its output path."""


class ApiError(DashboardError):
    """Raised when a GitHub API request fails or returns an unexpected response."""
