"""Mock patient snapshot generators for demo mode, development and testing.

Mock patients are plausible but unremarkable: vitals sit mostly in normal
ranges and risk probabilities are uniform, so every view has something to
show when the prediction service is unreachable.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from vitalwatch.domains.monitoring.domain_logic.models import (
    RISK_CATEGORIES,
    PatientSnapshot,
    RiskPrediction,
    RiskPredictionSet,
    Vitals,
)

HISTORY_SPACING = timedelta(minutes=15)
MOCK_METADATA = {"models_used": 5, "num_features": 79}


def _patient_id(index: int) -> str:
    return f"PATIENT_{index:03d}"


def _prediction_id(patient_id: str, at: datetime) -> str:
    return f"{patient_id}_{int(at.timestamp() * 1000)}"


def _mock_vitals(rng: random.Random) -> Vitals:
    return Vitals(
        glucose_mgdl=80 + rng.random() * 60,
        heart_rate_bpm=60 + rng.random() * 40,
        hrv_sdnn=30 + rng.random() * 50,
        qt_interval_ms=380 + rng.random() * 60,
        respiratory_rate_rpm=12 + rng.random() * 8,
        spo2_pct=95 + rng.random() * 5,
        steps_per_minute=rng.random() * 50,
        vertical_acceleration_g=rng.random() * 1.5,
        skin_temperature_c=36.5 + rng.random(),
        eda_microsiemens=rng.random() * 5,
        insulin_on_board=rng.random(),
        carbs_in_stomach=rng.random() * 20,
        activity_intensity=rng.random(),
    )


def _mock_prediction(rng: random.Random) -> RiskPrediction:
    probability = rng.random()
    return RiskPrediction.from_probability(probability, confidence=0.7 + rng.random() * 0.3)


def _mock_predictions(rng: random.Random) -> RiskPredictionSet:
    return RiskPredictionSet(**{c: _mock_prediction(rng) for c in RISK_CATEGORIES})


def generate_mock_patients(
    count: int = 15,
    *,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[PatientSnapshot]:
    """Return one current snapshot for each of ``count`` mock patients."""
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    patients = []
    for i in range(1, count + 1):
        patient_id = _patient_id(i)
        patients.append(
            PatientSnapshot(
                patient_id=patient_id,
                prediction_id=_prediction_id(patient_id, now),
                timestamp=now,
                inserted_at=now,
                vitals=_mock_vitals(rng),
                predictions=_mock_predictions(rng),
                metadata=dict(MOCK_METADATA),
            )
        )
    return patients


def generate_mock_history(
    patient_id: str,
    count: int = 20,
    *,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[PatientSnapshot]:
    """Return ``count`` snapshots 15 minutes apart, oldest first.

    Every record is noise around one template so consecutive vitals stay
    close to each other.
    """
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    base_vitals = _mock_vitals(rng)
    base_predictions = _mock_predictions(rng)

    history = []
    for i in range(count):
        at = now - (count - 1 - i) * HISTORY_SPACING
        vitals = Vitals(**{
            **base_vitals.to_dict(),
            "heart_rate_bpm": base_vitals.heart_rate_bpm + (rng.random() - 0.5) * 15,
            "glucose_mgdl": base_vitals.glucose_mgdl + (rng.random() - 0.5) * 10,
            "spo2_pct": min(100.0, max(90.0, base_vitals.spo2_pct + (rng.random() - 0.5) * 2)),
        })
        predictions = RiskPredictionSet(**{
            category: RiskPrediction.from_probability(
                min(1.0, max(0.0, prediction.probability + (rng.random() - 0.5) * 0.2)),
                confidence=prediction.confidence,
            )
            for category, prediction in base_predictions.items()
        })
        history.append(
            PatientSnapshot(
                patient_id=patient_id,
                prediction_id=_prediction_id(patient_id, at),
                timestamp=at,
                inserted_at=at,
                vitals=vitals,
                predictions=predictions,
                metadata=dict(MOCK_METADATA),
            )
        )
    return history
