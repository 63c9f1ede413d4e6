"""Tests for drilldash.exceptions: hierarchy and messages."""

from __future__ import annotations

import pytest

from drilldash.exceptions import (
    AuthenticationError,
    BackendAPIError,
    ConfigurationError,
    DashboardDefinitionError,
    DataSourceConfigError,
    DrillDashError,
    ImportFileError,
    QueryExecutionError,
    RateLimitError,
    UnsafeQueryError,
)


@pytest.mark.parametrize(
    "exc",
    [
        ConfigurationError("x"),
        DataSourceConfigError("x"),
        DashboardDefinitionError("x"),
        BackendAPIError(500, "x"),
        RateLimitError(),
        AuthenticationError(),
        QueryExecutionError("x"),
        UnsafeQueryError("x"),
        ImportFileError("f.csv", "x"),
    ],
)
def test_all_derive_from_base(exc):
    assert isinstance(exc, DrillDashError)


def test_backend_error_message_and_fields():
    e = BackendAPIError(502, "bad gateway", response_body="<html>")
    assert e.status_code == 502
    assert e.response_body == "<html>"
    assert str(e) == "Backend error 502: bad gateway"


def test_rate_limit_carries_retry_after():
    e = RateLimitError(retry_after=12.0)
    assert isinstance(e, BackendAPIError)
    assert e.status_code == 429
    assert e.retry_after == 12.0


def test_auth_error_default_message():
    e = AuthenticationError()
    assert e.status_code == 401
    assert "Invalid or expired API key" in str(e)


def test_query_execution_error():
    e = QueryExecutionError("column not found")
    assert e.status_code == 200
    assert "Query failed: column not found" in str(e)


def test_unsafe_query_reason():
    e = UnsafeQueryError("only SELECT queries are allowed")
    assert e.reason == "only SELECT queries are allowed"
    assert str(e) == "Custom query rejected: only SELECT queries are allowed"


def test_import_file_error_path():
    e = ImportFileError("rows.csv", "missing header row")
    assert e.path == "rows.csv"
    assert str(e) == "Cannot import rows.csv: missing header row"
