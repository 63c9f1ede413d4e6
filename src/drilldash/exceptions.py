"""Custom exception hierarchy for drilldash."""

from __future__ import annotations


class DrillDashError(Exception):
    """Base exception for all drilldash errors."""


class ConfigurationError(DrillDashError):
    """Settings are missing or invalid."""


class DataSourceConfigError(DrillDashError):
    """A chart data-source configuration could not be parsed."""


class DashboardDefinitionError(DrillDashError):
    """Error in dashboard definition structure or content."""


class BackendAPIError(DrillDashError):
    """Error returned by the backend query endpoint."""

    def __init__(self, status_code: int, message: str, response_body: str | None = None):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(f"Backend error {status_code}: {message}")


class RateLimitError(BackendAPIError):
    """429 Too Many Requests from the backend."""

    def __init__(self, retry_after: float | None = None):
        self.retry_after = retry_after
        super().__init__(429, "Rate limit exceeded")


class AuthenticationError(BackendAPIError):
    """401/403 authentication or authorization failure."""

    def __init__(self, message: str = "Invalid or expired API key"):
        super().__init__(401, message)


class QueryExecutionError(BackendAPIError):
    """The backend answered but reported the query as failed."""

    def __init__(self, message: str, status_code: int = 200):
        super().__init__(status_code, f"Query failed: {message}")


class UnsafeQueryError(DrillDashError):
    """A custom query was rejected before being sent."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Custom query rejected: {reason}")


class ImportFileError(DrillDashError):
    """An import-mode data file could not be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Cannot import {path}: {reason}")
