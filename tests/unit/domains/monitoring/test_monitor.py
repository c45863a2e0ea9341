"""Tests for PopulationMonitor: cached, scored population state."""

from __future__ import annotations

import asyncio

from vitalwatch.domains.monitoring.connectors import FetchResult
from vitalwatch.domains.monitoring.connectors.fallback import FallbackDataSource
from vitalwatch.domains.monitoring.domain_logic.scoring import get_strategy
from vitalwatch.domains.monitoring.monitor import PopulationMonitor


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingSource:
    """Live source returning fixed snapshots and counting polls."""

    def __init__(self, snapshots, healthy=True) -> None:
        self.snapshots = snapshots
        self.healthy = healthy
        self.polls = 0

    async def check_health(self) -> bool:
        return self.healthy

    async def get_recent_snapshots(self, limit: int = 1000) -> FetchResult:
        self.polls += 1
        return FetchResult.success(self.snapshots[:limit], source="predictor")

    async def get_patient_history(self, patient_id, *, window_hours=24, limit=100) -> FetchResult:
        return FetchResult.success(
            [s for s in self.snapshots if s.patient_id == patient_id][:limit], source="predictor"
        )

    @property
    def data_source(self) -> str:
        return "predictor"


class DownSource(CountingSource):
    async def get_recent_snapshots(self, limit: int = 1000) -> FetchResult:
        self.polls += 1
        return FetchResult.failure("connection", "refused", source="predictor")

    async def get_patient_history(self, patient_id, *, window_hours=24, limit=100) -> FetchResult:
        return FetchResult.failure("timeout", "slow", source="predictor")


class TestPopulationMonitor:
    def test_refresh_scores_latest_per_patient(self, snapshot_factory, critical_snapshot):
        older = snapshot_factory("PATIENT_001", minutes_ago=30, glucose_mgdl=40)
        newer = snapshot_factory("PATIENT_001")
        source = CountingSource([older, newer, critical_snapshot])
        monitor = PopulationMonitor(source, get_strategy("clinical"))

        patients = _run(monitor.refresh())
        assert [p.patient_id for p in patients] == ["PATIENT_001", "PATIENT_002"]
        assert [p.composite_health_score for p in patients] == [100, 0]
        assert monitor.system_healthy
        assert monitor.last_updated is not None

    def test_current_uses_cache_until_stale(self, healthy_snapshot):
        clock = FakeClock()
        source = CountingSource([healthy_snapshot])
        monitor = PopulationMonitor(source, get_strategy(), max_age_s=60, clock=clock)

        async def _check():
            await monitor.current()
            clock.now += 30
            await monitor.current()
            assert source.polls == 1
            clock.now += 30
            await monitor.current()
            assert source.polls == 2

        _run(_check())

    def test_strategy_applies_to_every_snapshot(self, healthy_snapshot):
        monitor = PopulationMonitor(CountingSource([healthy_snapshot]), get_strategy("risk_only"))
        patients = _run(monitor.refresh())
        assert patients[0].composite_health_score == 95
        assert monitor.status()["scoring_strategy"] == "risk_only"

    def test_offline_with_fallback(self, mock_source):
        source = FallbackDataSource(DownSource([], healthy=False), mock_source)
        monitor = PopulationMonitor(source, get_strategy())
        patients = _run(monitor.refresh())
        assert len(patients) == 15
        assert all(p.composite_health_score is not None for p in patients)
        assert monitor.offline
        assert monitor.system_healthy is False
        status = monitor.status()
        assert status["offline"] is True
        assert status["data_source"] == "mock"
        assert status["patients"] == 15

    def test_failed_poll_without_fallback_keeps_last_state(self, healthy_snapshot):
        source = CountingSource([healthy_snapshot])
        monitor = PopulationMonitor(source, get_strategy())
        _run(monitor.refresh())
        monitor._source = DownSource([], healthy=False)
        patients = _run(monitor.refresh())
        assert [p.patient_id for p in patients] == ["PATIENT_001"]
        assert monitor.system_healthy is False

    def test_patient_history_scored_oldest_first(self, snapshot_factory):
        history = [snapshot_factory("PATIENT_001", minutes_ago=m) for m in (0, 30, 15)]
        monitor = PopulationMonitor(CountingSource(history), get_strategy())
        result = _run(monitor.patient_history("PATIENT_001"))
        assert [s.timestamp for s in result] == sorted(s.timestamp for s in history)
        assert all(s.composite_health_score == 100 for s in result)

    def test_patient_history_error_returns_empty(self):
        monitor = PopulationMonitor(DownSource([]), get_strategy())
        assert _run(monitor.patient_history("PATIENT_001")) == []

    def test_background_polling(self, healthy_snapshot):
        source = CountingSource([healthy_snapshot])
        monitor = PopulationMonitor(source, get_strategy())

        async def _check():
            poller = monitor.start_polling(0.01)
            assert monitor.start_polling(0.01) is poller
            await asyncio.sleep(0.035)
            assert monitor.status()["background_polling"] is True
            await monitor.stop_polling()
            assert monitor.status()["background_polling"] is False

        _run(_check())
        assert source.polls >= 2
