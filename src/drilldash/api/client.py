"""Async HTTP client for the backend chart-data endpoint.

Requests are issued once: there is no retry or backoff. A failed fetch
surfaces as a ``BackendAPIError`` and the next refresh tries again.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from drilldash import __version__
from drilldash.config import DrillDashSettings, get_settings
from drilldash.exceptions import (
    AuthenticationError,
    BackendAPIError,
    QueryExecutionError,
    RateLimitError,
)
from drilldash.query.models import BackendResponse

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Prefer the ``error`` field of a JSON body, else the raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text or response.reason_phrase


def _retry_after(response: httpx.Response) -> float | None:
    """Seconds from a numeric ``Retry-After`` header; dates are ignored."""
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class BackendClient:
    """Client for the query backend.

    Wraps ``httpx.AsyncClient`` so every widget fetch on a dashboard can be
    awaited independently.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        settings: DrillDashSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        s = settings or get_settings()
        self._base_url = (base_url or s.drilldash_backend_url).rstrip("/")
        self._chart_data_path = s.drilldash_chart_data_path

        if not self._base_url:
            s.require_backend()

        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"drilldash/{__version__}",
        }
        key = api_key or s.drilldash_api_key
        if key:
            headers["Authorization"] = f"Bearer {key}"

        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(s.drilldash_request_timeout, connect=10.0),
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def post(self, path: str, json: dict[str, Any]) -> Any:
        """POST a JSON body and return the parsed JSON response.

        Raises:
            AuthenticationError: On 401/403 responses.
            RateLimitError: On 429 responses.
            BackendAPIError: On other error statuses, timeouts and
                connection failures (status 0).
        """
        try:
            response = await self._http.post(path, json=json)
        except httpx.TimeoutException as e:
            raise BackendAPIError(0, f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            raise BackendAPIError(0, f"Connection error: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(_error_message(response))

        if response.status_code == 429:
            raise RateLimitError(retry_after=_retry_after(response))

        if response.status_code >= 400:
            raise BackendAPIError(
                response.status_code, _error_message(response), response.text
            )

        if not response.text:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise BackendAPIError(
                response.status_code, "Response is not valid JSON", response.text
            ) from e

    async def run_chart_query(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """Execute a simple- or custom-mode payload and return its rows."""
        body = await self.post(self._chart_data_path, json=payload)
        if body is None:
            raise BackendAPIError(0, "Empty response from chart data endpoint")

        try:
            envelope = BackendResponse.model_validate(body)
        except ValidationError as e:
            raise BackendAPIError(0, "Malformed chart data response") from e

        if not envelope.success:
            raise QueryExecutionError(envelope.error or "Unknown error")

        rows = envelope.data or []
        logger.debug("Chart query returned %d rows", len(rows))
        return rows

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
