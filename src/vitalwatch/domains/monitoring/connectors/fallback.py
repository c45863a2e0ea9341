"""Fallback data source: prefer the primary source, substitute mock data on failure.

Fetch failures never cross this boundary. Any FetchResult error from the
primary source is replaced with data from the fallback source and the
source is flagged ``offline`` until the primary answers again.
"""

from __future__ import annotations

import logging

from vitalwatch.domains.monitoring.connectors import FetchError, FetchResult, PatientDataSource

logger = logging.getLogger(__name__)


class FallbackDataSource:
    """Wraps a primary PatientDataSource with a fallback for every error variant.

    Usage::

        source = FallbackDataSource(
            RemotePredictorSource(client),  # Real data
            MockDataSource(),               # Demo mode
        )
        result = await source.get_recent_snapshots(1000)  # always ok
    """

    def __init__(self, primary: PatientDataSource, fallback: PatientDataSource) -> None:
        self._primary = primary
        self._fallback = fallback
        self._offline = False
        self._last_poll_had_data = False
        self._demo_mode_logged = False
        self._last_error: FetchError | None = None

    @property
    def offline(self) -> bool:
        """True while the last primary fetch failed and fallback data is served."""
        return self._offline

    @property
    def last_error(self) -> FetchError | None:
        return self._last_error

    async def check_health(self) -> bool:
        """Primary health probe, or the last population poll returned data."""
        try:
            healthy = await self._primary.check_health()
        except Exception:
            logger.exception("Health probe on %s raised", self._primary.data_source)
            healthy = False
        return healthy or self._last_poll_had_data

    async def get_recent_snapshots(self, limit: int = 1000) -> FetchResult:
        result = await self._primary.get_recent_snapshots(limit)
        if result.ok:
            self._mark_online()
            self._last_poll_had_data = bool(result.snapshots)
            return result

        self._mark_offline(result)
        if not self._demo_mode_logged:
            logger.warning(
                "%s unavailable (%s: %s). Switching to demo mode with %s data.",
                self._primary.data_source,
                result.error.kind,
                result.error.message,
                self._fallback.data_source,
            )
            self._demo_mode_logged = True
        self._last_poll_had_data = False
        return await self._fallback.get_recent_snapshots(limit)

    async def get_patient_history(
        self, patient_id: str, *, window_hours: float = 24, limit: int = 100
    ) -> FetchResult:
        result = await self._primary.get_patient_history(
            patient_id, window_hours=window_hours, limit=limit
        )
        if result.ok:
            self._mark_online()
            return result

        # Quiet fallback: history is polled often for a single patient.
        self._mark_offline(result)
        logger.debug("History fetch for %s failed (%s); using fallback", patient_id, result.error.kind)
        return await self._fallback.get_patient_history(
            patient_id, window_hours=window_hours, limit=limit
        )

    @property
    def data_source(self) -> str:
        """Return the source currently serving data."""
        return self._fallback.data_source if self._offline else self._primary.data_source

    def _mark_online(self) -> None:
        if self._offline:
            logger.info("%s reachable again; leaving demo mode", self._primary.data_source)
            self._demo_mode_logged = False
        self._offline = False
        self._last_error = None

    def _mark_offline(self, result: FetchResult) -> None:
        self._offline = True
        self._last_error = result.error
