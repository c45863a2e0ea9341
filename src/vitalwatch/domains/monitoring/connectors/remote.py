"""Remote data source: the patient prediction service.

Client exceptions and malformed records never escape this module; they are
turned into FetchResult errors for the caller's fallback policy.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from vitalwatch.core.predictor.client import (
    PredictorClient,
    PredictorClientError,
    PredictorHTTPError,
    PredictorResponseError,
    PredictorTimeoutError,
)
from vitalwatch.domains.monitoring.connectors import FetchErrorKind, FetchResult
from vitalwatch.domains.monitoring.domain_logic.models import (
    PatientSnapshot,
    SnapshotValidationError,
    format_timestamp,
)

logger = logging.getLogger(__name__)


def _error_kind(exc: PredictorClientError) -> FetchErrorKind:
    if isinstance(exc, PredictorTimeoutError):
        return "timeout"
    if isinstance(exc, PredictorHTTPError):
        return "http_status"
    if isinstance(exc, PredictorResponseError):
        return "invalid_payload"
    return "connection"


def parse_records(records: list[dict[str, Any]]) -> list[PatientSnapshot]:
    """Validate every wire record. Any invalid record fails the whole batch."""
    snapshots = []
    for index, record in enumerate(records):
        try:
            snapshots.append(PatientSnapshot.from_dict(record))
        except SnapshotValidationError as exc:
            raise SnapshotValidationError(f"record {index}: {exc}") from exc
    return snapshots


class RemotePredictorSource:
    """PatientDataSource backed by the prediction service REST API.

    Usage::

        source = RemotePredictorSource(PredictorClient(url, timeout_s=30))
        result = await source.get_recent_snapshots(1000)
        if result.ok:
            ...
    """

    def __init__(self, client: PredictorClient) -> None:
        self._client = client

    async def check_health(self) -> bool:
        return await self._in_executor(self._client.check_health)

    async def get_recent_snapshots(self, limit: int = 1000) -> FetchResult:
        return await self._fetch(functools.partial(self._client.fetch_dashboard_data, limit=limit))

    async def get_patient_history(
        self, patient_id: str, *, window_hours: float = 24, limit: int = 100
    ) -> FetchResult:
        start_time = datetime.now(timezone.utc) - timedelta(hours=window_hours)
        result = await self._fetch(
            functools.partial(
                self._client.fetch_dashboard_data,
                limit=limit,
                patient_id=patient_id,
                start_time=format_timestamp(start_time),
            )
        )
        if not result.ok:
            return result
        history = sorted(result.snapshots, key=lambda s: s.timestamp)
        return FetchResult.success(history, source=self.data_source)

    @property
    def data_source(self) -> str:
        return "predictor"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fetch(self, call: Callable[[], list[dict[str, Any]]]) -> FetchResult:
        try:
            records = await self._in_executor(call)
        except PredictorClientError as exc:
            logger.debug("Prediction service fetch failed: %s", exc)
            return FetchResult.failure(_error_kind(exc), str(exc), source=self.data_source)

        try:
            snapshots = parse_records(records)
        except SnapshotValidationError as exc:
            logger.warning("Rejected prediction service payload: %s", exc)
            return FetchResult.failure("invalid_payload", str(exc), source=self.data_source)

        return FetchResult.success(snapshots, source=self.data_source)

    @staticmethod
    async def _in_executor(call: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, call)
