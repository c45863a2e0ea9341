"""HTTP client for the remote patient prediction service.

The service exposes:

``GET /health``
    Liveness probe.
``GET /dashboard/data?limit=N[&patient_id=..&start_time=ISO]``
    ``{"status": "...", "count": N, "data": [record, ...]}``

The client is blocking (``requests``). Async callers run it in an executor.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0


class PredictorClient:
    """Thin wrapper over the prediction service REST API.

    Usage::

        client = PredictorClient("https://predictor.example.org", timeout_s=30)
        records = client.fetch_dashboard_data(limit=1000)
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        session: Any | None = None,
    ) -> None:
        """Initialise with the service base URL.

        Args:
            base_url: Root URL of the prediction service (no trailing path).
            timeout_s: Per-request timeout in seconds.
            session: Optional ``requests.Session`` (or compatible) to reuse.
        """
        if not base_url:
            raise ValueError("base_url is required")
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def check_health(self) -> bool:
        """Return True when the service answers its health probe with 2xx."""
        try:
            response = self._get("/health")
        except PredictorClientError:
            logger.debug("Prediction service health probe failed", exc_info=True)
            return False
        return bool(response.ok)

    def fetch_dashboard_data(
        self,
        *,
        limit: int = 1000,
        patient_id: str | None = None,
        start_time: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch raw snapshot records, most recent first as served.

        Raises:
            PredictorConnectionError: the service could not be reached.
            PredictorTimeoutError: the request exceeded the timeout.
            PredictorHTTPError: non-2xx response.
            PredictorResponseError: the body was not the expected envelope.
        """
        params: dict[str, Any] = {"limit": limit}
        if patient_id is not None:
            params["patient_id"] = patient_id
        if start_time is not None:
            params["start_time"] = start_time

        response = self._get("/dashboard/data", params=params)
        if not response.ok:
            raise PredictorHTTPError(
                f"Prediction service returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise PredictorResponseError(f"Invalid JSON from prediction service: {exc}") from exc

        return _extract_records(payload)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug("GET %s params=%s", url, params)
        try:
            return self._session.get(url, params=params, timeout=self._timeout_s)
        except requests.exceptions.Timeout as exc:
            raise PredictorTimeoutError(
                f"Prediction service timed out after {self._timeout_s:g}s ({url})"
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise PredictorConnectionError(
                f"Failed to reach prediction service at {url}: {exc}"
            ) from exc


# ------------------------------------------------------------------
# Exceptions
# ------------------------------------------------------------------

class PredictorClientError(Exception):
    """Base exception for PredictorClient errors."""


class PredictorConnectionError(PredictorClientError):
    """Could not reach the prediction service."""


class PredictorTimeoutError(PredictorClientError):
    """The prediction service did not answer in time."""


class PredictorHTTPError(PredictorClientError):
    """The prediction service answered with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PredictorResponseError(PredictorClientError):
    """Response body from the prediction service was unexpected."""


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _extract_records(payload: Any) -> list[dict[str, Any]]:
    """Pull the record list out of the ``{"data": [...]}`` envelope."""
    if not isinstance(payload, dict):
        raise PredictorResponseError(
            f"Expected JSON object from prediction service, got {type(payload).__name__}"
        )
    data = payload.get("data")
    if not isinstance(data, list):
        raise PredictorResponseError("Missing or invalid 'data' list in prediction service response")
    return data
