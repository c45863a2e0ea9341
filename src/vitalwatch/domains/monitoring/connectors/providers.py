"""Concrete PatientDataSource implementations backed by local generators."""

from __future__ import annotations

import random

from vitalwatch.domains.monitoring.connectors import FetchResult
from vitalwatch.domains.monitoring.connectors.mock_data import (
    generate_mock_history,
    generate_mock_patients,
)


class MockDataSource:
    """Uses mock data generators. Always available, never 'healthy'."""

    def __init__(
        self,
        *,
        patient_count: int = 15,
        history_count: int = 20,
        seed: int | None = None,
    ) -> None:
        self._patient_count = patient_count
        self._history_count = history_count
        self._rng = random.Random(seed)

    async def check_health(self) -> bool:
        return False

    @property
    def offline(self) -> bool:
        """Mock data always stands in for a live service."""
        return True

    async def get_recent_snapshots(self, limit: int = 1000) -> FetchResult:
        patients = generate_mock_patients(min(self._patient_count, limit), rng=self._rng)
        return FetchResult.success(patients, source=self.data_source)

    async def get_patient_history(
        self, patient_id: str, *, window_hours: float = 24, limit: int = 100
    ) -> FetchResult:
        history = generate_mock_history(
            patient_id, min(self._history_count, limit), rng=self._rng
        )
        return FetchResult.success(history, source=self.data_source)

    @property
    def data_source(self) -> str:
        return "mock"
