"""Population monitor: the latest scored state of every patient, kept fresh by polling."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable

from vitalwatch.core.polling.poller import PeriodicPoller
from vitalwatch.domains.monitoring.connectors import PatientDataSource
from vitalwatch.domains.monitoring.domain_logic.models import PatientSnapshot
from vitalwatch.domains.monitoring.domain_logic.population import latest_per_patient
from vitalwatch.domains.monitoring.domain_logic.scoring import ScoringStrategy, annotate

logger = logging.getLogger(__name__)


class PopulationMonitor:
    """Holds the last poll result for the population views.

    Every snapshot it hands out carries a composite score from the single
    configured strategy.

    Usage::

        monitor = PopulationMonitor(source, get_strategy("clinical"), limit=1000)
        patients = await monitor.current()
    """

    def __init__(
        self,
        source: PatientDataSource,
        strategy: ScoringStrategy,
        *,
        limit: int = 1000,
        max_age_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._strategy = strategy
        self._limit = limit
        self._max_age_s = max_age_s
        self._clock = clock
        self._lock = asyncio.Lock()
        self._poller: PeriodicPoller | None = None

        self._patients: list[PatientSnapshot] = []
        self._refreshed_at: float | None = None
        self.last_updated: datetime | None = None
        self.system_healthy = False

    @property
    def strategy(self) -> ScoringStrategy:
        return self._strategy

    @property
    def source(self) -> PatientDataSource:
        return self._source

    @property
    def offline(self) -> bool:
        return bool(getattr(self._source, "offline", False))

    @property
    def is_stale(self) -> bool:
        if self._refreshed_at is None:
            return True
        return self._clock() - self._refreshed_at >= self._max_age_s

    async def refresh(self) -> list[PatientSnapshot]:
        """Poll the data source once and replace the cached population."""
        async with self._lock:
            result = await self._source.get_recent_snapshots(self._limit)
            healthy = await self._source.check_health()

            if result.ok:
                self._patients = annotate(latest_per_patient(result.snapshots), self._strategy)
            else:
                # Only reachable with a source that has no fallback; keep the last state.
                logger.warning("Population poll failed (%s): %s", result.error.kind, result.error.message)

            # Mock data stands in for the service; it never counts as a live answer.
            live_data = result.ok and bool(result.snapshots) and not self.offline
            self.system_healthy = healthy or live_data
            self._refreshed_at = self._clock()
            self.last_updated = datetime.now(timezone.utc)
            logger.debug(
                "Population refreshed: %d patients from %s",
                len(self._patients),
                self._source.data_source,
            )
            return list(self._patients)

    async def current(self) -> list[PatientSnapshot]:
        """Cached population, refreshed first when older than ``max_age_s``."""
        if self.is_stale:
            return await self.refresh()
        return list(self._patients)

    async def patient_history(
        self, patient_id: str, *, window_hours: float = 24, limit: int = 100
    ) -> list[PatientSnapshot]:
        """Fetch and score one patient's history, oldest first."""
        result = await self._source.get_patient_history(
            patient_id, window_hours=window_hours, limit=limit
        )
        if not result.ok:
            logger.warning("History fetch for %s failed: %s", patient_id, result.error.message)
            return []
        history = sorted(result.snapshots, key=lambda s: s.timestamp)
        return annotate(history, self._strategy)

    # ------------------------------------------------------------------
    # Background polling
    # ------------------------------------------------------------------

    def start_polling(self, interval_s: float) -> PeriodicPoller:
        """Start refreshing in the background every ``interval_s`` seconds."""
        if self._poller is None or not self._poller.running:
            self._poller = PeriodicPoller(interval_s, self.refresh, name="population")
            self._poller.start()
        return self._poller

    async def stop_polling(self) -> None:
        if self._poller is not None:
            await self._poller.stop()
            self._poller = None

    def status(self) -> dict:
        """Status fields for the system status view."""
        return {
            "system_healthy": self.system_healthy,
            "offline": self.offline,
            "data_source": self._source.data_source,
            "scoring_strategy": self._strategy.name,
            "patients": len(self._patients),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "background_polling": self._poller is not None and self._poller.running,
        }
