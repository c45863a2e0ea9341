"""Descriptive statistics over one patient's snapshot history.

History is an oldest-first sequence of scored snapshots for a single patient.
"""

from __future__ import annotations

import logging
import statistics
from typing import Any, Sequence

from vitalwatch.domains.monitoring.domain_logic.models import PatientSnapshot
from vitalwatch.domains.monitoring.domain_logic.population import (
    GLUCOSE_BANDS,
    glucose_band,
    score_band,
)

logger = logging.getLogger(__name__)

# Score points either side of zero that still count as "stable".
TREND_DEAD_BAND = 3.0


def time_in_range(history: Sequence[PatientSnapshot]) -> dict[str, float]:
    """Percentage of readings in each of the five glucose bands."""
    counts = {band: 0 for band in GLUCOSE_BANDS}
    for snapshot in history:
        counts[glucose_band(snapshot.vitals.glucose_mgdl)] += 1
    total = len(history) or 1
    return {band: round(count / total * 100, 1) for band, count in counts.items()}


def glucose_variability(history: Sequence[PatientSnapshot]) -> dict[str, float | None]:
    """Mean, standard deviation and coefficient of variation (%) of glucose."""
    values = [s.vitals.glucose_mgdl for s in history]
    if not values:
        return {"mean": None, "std_dev": None, "cv_pct": None}
    mean_val = statistics.mean(values)
    std_val = statistics.stdev(values) if len(values) > 1 else 0.0
    cv = std_val / mean_val * 100 if mean_val > 0 else 0.0
    return {
        "mean": round(mean_val, 1),
        "std_dev": round(std_val, 2),
        "cv_pct": round(cv, 1),
    }


def activity_summary(history: Sequence[PatientSnapshot]) -> dict[str, float | None]:
    """Average steps-per-minute and activity intensity."""
    if not history:
        return {"avg_steps_per_minute": None, "avg_activity_intensity": None, "active_pct": None}
    steps = [s.vitals.steps_per_minute for s in history]
    intensity = [s.vitals.activity_intensity for s in history]
    return {
        "avg_steps_per_minute": round(statistics.mean(steps), 1),
        "avg_activity_intensity": round(statistics.mean(intensity), 3),
        "active_pct": round(sum(1 for v in steps if v > 0) / len(steps) * 100, 1),
    }


def score_trend(history: Sequence[PatientSnapshot]) -> str:
    """Direction of the composite score: compare newer half vs older half means."""
    scores = [s.composite_health_score or 0 for s in history]
    if len(scores) >= 4:
        mid = len(scores) // 2
        older_mean = statistics.mean(scores[:mid])
        recent_mean = statistics.mean(scores[mid:])
        diff = recent_mean - older_mean
    elif len(scores) >= 2:
        diff = scores[-1] - scores[0]
    else:
        return "insufficient_data"

    if diff > TREND_DEAD_BAND:
        return "improving"
    if diff < -TREND_DEAD_BAND:
        return "declining"
    return "stable"


def chart_series(history: Sequence[PatientSnapshot]) -> list[dict[str, Any]]:
    """Per-snapshot points for the vitals and risk trend charts."""
    points = []
    for s in history:
        point: dict[str, Any] = {
            "time": s.timestamp.strftime("%H:%M"),
            "timestamp": s.to_dict()["timestamp"],
            "score": s.composite_health_score,
            "glucose": round(s.vitals.glucose_mgdl, 1),
            "heart_rate": round(s.vitals.heart_rate_bpm, 1),
            "spo2": round(s.vitals.spo2_pct, 1),
            "temperature": round(s.vitals.skin_temperature_c, 2),
        }
        if s.predictions is not None:
            point["risk_hypoglycemia"] = round(s.predictions.hypoglycemia.probability * 100, 1)
            point["risk_cardiac"] = round(s.predictions.cardiac.probability * 100, 1)
            point["risk_fall"] = round(s.predictions.fall.probability * 100, 1)
        points.append(point)
    return points


def history_statistics(history: Sequence[PatientSnapshot]) -> dict[str, Any]:
    """Everything the patient detail view shows, computed from the history.

    Returns ``{"data_points": 0, "status": "no_data"}`` for an empty history.
    """
    if not history:
        return {"data_points": 0, "status": "no_data"}

    patient_ids = {s.patient_id for s in history}
    if len(patient_ids) > 1:
        logger.warning("History spans %d patient ids; statistics mix patients", len(patient_ids))

    current = history[-1]
    score = current.composite_health_score or 0
    return {
        "patient_id": current.patient_id,
        "data_points": len(history),
        "first_timestamp": history[0].to_dict()["timestamp"],
        "latest_timestamp": current.to_dict()["timestamp"],
        "current": {
            "composite_health_score": score,
            "score_band": score_band(score),
            "vitals": current.vitals.to_dict(),
            "predictions": current.predictions.to_dict() if current.predictions else None,
        },
        "time_in_range_pct": time_in_range(history),
        "glucose": glucose_variability(history),
        "activity": activity_summary(history),
        "score_trend": score_trend(history),
        "chart": chart_series(history),
    }
