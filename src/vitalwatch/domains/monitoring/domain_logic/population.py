"""Population-level views over the latest snapshot of every patient.

Everything here is descriptive statistics over already-scored snapshots.
"""

from __future__ import annotations

import statistics
from typing import Any, Iterable

from vitalwatch.domains.monitoring.domain_logic.alerts import (
    ALERT_LEVELS,
    coarse_risk_level,
    relevant_highest_risk,
)
from vitalwatch.domains.monitoring.domain_logic.display_settings import DisplaySettings
from vitalwatch.domains.monitoring.domain_logic.models import (
    RISK_CATEGORIES,
    RISK_LEVELS,
    PatientSnapshot,
)
from vitalwatch.domains.monitoring.domain_logic.scoring import round_half_up

RISK_FILTERS = ("ALL", *RISK_LEVELS)

GLUCOSE_BANDS = [
    "very_low",   # < 70 mg/dL
    "low",        # 70 - <80
    "in_range",   # 80 - 180
    "high",       # >180 - 250
    "very_high",  # > 250
]

OVERVIEW_VITALS = {
    "heart_rate": "heart_rate_bpm",
    "glucose": "glucose_mgdl",
    "spo2": "spo2_pct",
    "skin_temperature": "skin_temperature_c",
}


def _score(snapshot: PatientSnapshot) -> int:
    return snapshot.composite_health_score or 0


def glucose_band(glucose: float) -> str:
    """Place a glucose reading (mg/dL) in one of the five display bands."""
    if glucose < 70:
        return "very_low"
    if glucose < 80:
        return "low"
    if glucose <= 180:
        return "in_range"
    if glucose <= 250:
        return "high"
    return "very_high"


def score_band(score: int) -> str:
    """Coarse label for a composite score (badge colour in the dashboard)."""
    if score >= 80:
        return "good"
    if score >= 60:
        return "fair"
    if score >= 40:
        return "poor"
    return "critical"


def latest_per_patient(snapshots: Iterable[PatientSnapshot]) -> list[PatientSnapshot]:
    """Keep the most recent snapshot per patient id, in first-seen order."""
    latest: dict[str, PatientSnapshot] = {}
    for snapshot in snapshots:
        current = latest.get(snapshot.patient_id)
        if current is None or snapshot.timestamp > current.timestamp:
            latest[snapshot.patient_id] = snapshot
    return list(latest.values())


def population_list(
    snapshots: Iterable[PatientSnapshot],
    settings: DisplaySettings,
    *,
    search: str = "",
    risk_filter: str = "ALL",
) -> list[PatientSnapshot]:
    """Filter by patient id and coarse risk level, worst score first."""
    risk_filter = (risk_filter or "ALL").upper()
    if risk_filter not in RISK_FILTERS:
        raise ValueError(f"risk_filter must be one of: {' | '.join(RISK_FILTERS)}")

    needle = (search or "").lower()
    matches = [
        s for s in snapshots
        if needle in s.patient_id.lower()
        and (risk_filter == "ALL" or coarse_risk_level(s, settings) == risk_filter)
    ]
    return sorted(matches, key=_score)


def population_stats(
    snapshots: list[PatientSnapshot], settings: DisplaySettings
) -> dict[str, Any]:
    """Header statistics for the population view."""
    if not snapshots:
        return {
            "total_patients": 0,
            "active_alerts": 0,
            "high_risk_patients": 0,
            "average_health_score": 0,
            "average_glucose": 0,
            "patients_with_activity": 0,
        }

    levels = [
        risk.level if risk is not None else None
        for risk in (relevant_highest_risk(s, settings) for s in snapshots)
    ]
    return {
        "total_patients": len(snapshots),
        "active_alerts": sum(1 for level in levels if level in ALERT_LEVELS),
        "high_risk_patients": sum(1 for level in levels if level == "HIGH"),
        "average_health_score": round_half_up(statistics.mean(_score(s) for s in snapshots)),
        "average_glucose": round_half_up(statistics.mean(s.vitals.glucose_mgdl for s in snapshots)),
        "patients_with_activity": sum(1 for s in snapshots if s.vitals.steps_per_minute > 0),
    }


def glucose_distribution(snapshots: list[PatientSnapshot]) -> dict[str, dict[str, float]]:
    """Count and percentage of patients in each glucose band."""
    counts = {band: 0 for band in GLUCOSE_BANDS}
    for snapshot in snapshots:
        counts[glucose_band(snapshot.vitals.glucose_mgdl)] += 1
    total = len(snapshots) or 1
    return {
        band: {"count": count, "pct": round(count / total * 100, 1)}
        for band, count in counts.items()
    }


def risk_matrix(snapshots: list[PatientSnapshot]) -> dict[str, dict[str, int]]:
    """Per category, how many patients sit at each model risk level."""
    matrix = {c: {level: 0 for level in reversed(RISK_LEVELS)} for c in RISK_CATEGORIES}
    for snapshot in snapshots:
        if snapshot.predictions is None:
            continue
        for category, prediction in snapshot.predictions.items():
            matrix[category][prediction.risk_level] += 1
    return matrix


def risk_averages(snapshots: list[PatientSnapshot]) -> dict[str, float]:
    """Mean probability (percent) per risk category across the population."""
    scored = [s for s in snapshots if s.predictions is not None]
    if not scored:
        return {}
    return {
        category: round(
            statistics.mean(s.predictions.get(category).probability for s in scored) * 100, 1
        )
        for category in RISK_CATEGORIES
    }


def vitals_overview(snapshots: list[PatientSnapshot]) -> dict[str, dict[str, float]]:
    """Average, minimum and maximum of the headline vitals."""
    if not snapshots:
        return {}
    overview = {}
    for label, attr in OVERVIEW_VITALS.items():
        values = [getattr(s.vitals, attr) for s in snapshots]
        overview[label] = {
            "avg": round(statistics.mean(values), 1),
            "min": round(min(values), 1),
            "max": round(max(values), 1),
        }
    return overview


def patient_row(snapshot: PatientSnapshot, settings: DisplaySettings) -> dict[str, Any]:
    """One row of the population list."""
    risk = relevant_highest_risk(snapshot, settings)
    score = _score(snapshot)
    return {
        "patient_id": snapshot.patient_id,
        "prediction_id": snapshot.prediction_id,
        "timestamp": snapshot.to_dict()["timestamp"],
        "composite_health_score": score,
        "score_band": score_band(score),
        "glucose_mgdl": round(snapshot.vitals.glucose_mgdl, 1),
        "heart_rate_bpm": round(snapshot.vitals.heart_rate_bpm, 1),
        "spo2_pct": round(snapshot.vitals.spo2_pct, 1),
        "highest_risk": risk.as_dict() if risk is not None else None,
    }
