"""Shared test fixtures for VitalWatch tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PREDICTOR_URL", "")
    monkeypatch.setenv("BACKGROUND_POLLING", "false")
    monkeypatch.setenv("MOCK_SEED", "7")
    monkeypatch.setenv("DISPLAY_SETTINGS_PATH", "")
    monkeypatch.setenv("SCORING_STRATEGY", "clinical")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from vitalwatch.domains.monitoring.connectors.providers import MockDataSource  # noqa: E402
from vitalwatch.domains.monitoring.domain_logic.models import (  # noqa: E402
    RISK_CATEGORIES,
    PatientSnapshot,
    RiskPrediction,
    RiskPredictionSet,
    Vitals,
)

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

# Every sub-score at its maximum under the clinical policy.
HEALTHY_VITALS: dict[str, float] = {
    "glucose_mgdl": 130.0,
    "heart_rate_bpm": 75.0,
    "hrv_sdnn": 55.0,
    "qt_interval_ms": 400.0,
    "respiratory_rate_rpm": 16.0,
    "spo2_pct": 98.0,
    "steps_per_minute": 25.0,
    "vertical_acceleration_g": 0.2,
    "skin_temperature_c": 36.8,
    "eda_microsiemens": 1.0,
    "insulin_on_board": 0.0,
    "carbs_in_stomach": 0.0,
    "activity_intensity": 0.8,
}

CRITICAL_VITALS: dict[str, float] = {
    **HEALTHY_VITALS,
    "glucose_mgdl": 40.0,
    "heart_rate_bpm": 135.0,
    "hrv_sdnn": 10.0,
    "spo2_pct": 80.0,
    "steps_per_minute": 0.0,
    "activity_intensity": 0.0,
    "skin_temperature_c": 39.0,
    "respiratory_rate_rpm": 35.0,
}


def make_vitals(**overrides: float) -> Vitals:
    return Vitals(**{**HEALTHY_VITALS, **overrides})


def make_predictions(default: float = 0.05, **probabilities: float) -> RiskPredictionSet:
    """All categories at ``default`` unless overridden by name."""
    return RiskPredictionSet(**{
        category: RiskPrediction.from_probability(probabilities.get(category, default), 0.9)
        for category in RISK_CATEGORIES
    })


def make_snapshot(
    patient_id: str = "PATIENT_001",
    *,
    minutes_ago: float = 0,
    predictions: RiskPredictionSet | None | str = "default",
    score: int | None = None,
    prediction_id: str | None = None,
    **vitals: float,
) -> PatientSnapshot:
    """Build a snapshot with healthy vitals and 5% risks unless overridden."""
    at = BASE_TIME - timedelta(minutes=minutes_ago)
    return PatientSnapshot(
        patient_id=patient_id,
        prediction_id=prediction_id or f"{patient_id}_{int(at.timestamp() * 1000)}",
        timestamp=at,
        vitals=make_vitals(**vitals),
        predictions=make_predictions() if predictions == "default" else predictions,
        composite_health_score=score,
    )


def make_record(patient_id: str = "PATIENT_001", **overrides: Any) -> dict[str, Any]:
    """A prediction-service wire record for the given patient."""
    record: dict[str, Any] = {
        "prediction_id": f"{patient_id}_1740830400000",
        "patient_id": patient_id,
        "timestamp": "2025-03-01T12:00:00Z",
        "inserted_at": "2025-03-01T12:00:01Z",
        "vitals": dict(HEALTHY_VITALS),
        "predictions": {
            category: {"risk": 0, "probability": 0.05, "confidence": 0.9, "risk_level": "LOW"}
            for category in RISK_CATEGORIES
        },
        "metadata": {"models_used": 5, "num_features": 79},
    }
    record.update(overrides)
    return record


@pytest.fixture
def snapshot_factory():
    """Factory for PatientSnapshot objects."""
    return make_snapshot


@pytest.fixture
def predictions_factory():
    """Factory for RiskPredictionSet objects."""
    return make_predictions


@pytest.fixture
def record_factory():
    """Factory for prediction-service wire records."""
    return make_record


@pytest.fixture
def healthy_snapshot() -> PatientSnapshot:
    return make_snapshot()


@pytest.fixture
def critical_snapshot() -> PatientSnapshot:
    return make_snapshot(
        "PATIENT_002",
        predictions=make_predictions(0.9),
        **CRITICAL_VITALS,
    )


@pytest.fixture
def mock_source() -> MockDataSource:
    """Seeded mock data source."""
    return MockDataSource(patient_count=15, history_count=20, seed=7)


# ---------------------------------------------------------------------------
# Fake requests session for the prediction service client
# ---------------------------------------------------------------------------

class FakeResponse:
    """Mimics the parts of requests.Response the client uses."""

    def __init__(self, status_code: int = 200, payload: Any = None, *, bad_json: bool = False) -> None:
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self._bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Mimics requests.Session.get, recording calls.

    ``responses`` maps a URL path suffix to a FakeResponse or an exception
    instance to raise.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[str, dict[str, Any] | None, float]] = []

    def get(self, url: str, params: dict[str, Any] | None = None, timeout: float = 0) -> FakeResponse:
        self.calls.append((url, params, timeout))
        for suffix, outcome in self.responses.items():
            if url.endswith(suffix):
                if isinstance(outcome, BaseException):
                    raise outcome
                return outcome
        return FakeResponse(404, {"detail": "Not Found"})


@pytest.fixture
def fake_session() -> FakeSession:
    """Prediction service that is up and serves two patients."""
    return FakeSession({
        "/health": FakeResponse(200, {"status": "healthy"}),
        "/dashboard/data": FakeResponse(200, {
            "status": "success",
            "count": 2,
            "data": [make_record("PATIENT_001"), make_record("PATIENT_002")],
        }),
    })


@pytest.fixture
def session_factory():
    """Build a FakeSession from {path suffix: FakeResponse | exception}."""
    return FakeSession


@pytest.fixture
def response_factory():
    """Build a FakeResponse(status_code, payload, bad_json=...)."""
    return FakeResponse


@pytest.fixture
def vitals_factory():
    """Factory for Vitals objects: healthy values unless overridden."""
    return make_vitals
