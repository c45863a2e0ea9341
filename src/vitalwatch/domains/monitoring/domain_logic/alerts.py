"""Alert selection: the relevant highest risk per patient and the alert feed."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from vitalwatch.domains.monitoring.domain_logic.display_settings import DisplaySettings
from vitalwatch.domains.monitoring.domain_logic.models import (
    RISK_CATEGORIES,
    RISK_LEVEL_RANK,
    PatientSnapshot,
    RiskPrediction,
)

ALERT_LEVELS = ("MEDIUM", "HIGH")


@dataclass(frozen=True)
class RelevantRisk:
    """The highest-probability risk that survives the display settings."""

    category: str
    prediction: RiskPrediction

    @property
    def level(self) -> str:
        return self.prediction.risk_level

    @property
    def probability(self) -> float:
        return self.prediction.probability

    def as_dict(self) -> dict:
        return {
            "category": self.category,
            "risk_level": self.level,
            "probability": round(self.probability, 4),
            "probability_pct": round(self.probability * 100, 1),
            "confidence": round(self.prediction.confidence, 4),
        }


@dataclass(frozen=True)
class Alert:
    """One alert-feed entry."""

    snapshot: PatientSnapshot
    risk: RelevantRisk

    @property
    def score(self) -> int:
        return self.snapshot.composite_health_score or 0

    @property
    def is_critical(self) -> bool:
        return self.risk.level == "HIGH"

    def as_dict(self) -> dict:
        return {
            "prediction_id": self.snapshot.prediction_id,
            "patient_id": self.snapshot.patient_id,
            "timestamp": self.snapshot.to_dict()["timestamp"],
            "composite_health_score": self.snapshot.composite_health_score,
            "critical": self.is_critical,
            "risk": self.risk.as_dict(),
        }


def relevant_highest_risk(
    snapshot: PatientSnapshot, settings: DisplaySettings
) -> RelevantRisk | None:
    """Pick the max-probability risk among enabled categories above the threshold.

    Ties keep the first category in the fixed category order. Returns None
    when nothing survives filtering.
    """
    if snapshot.predictions is None:
        return None

    best: RelevantRisk | None = None
    for category, prediction in snapshot.predictions.items():
        if not settings.is_enabled(category):
            continue
        if prediction.probability * 100 < settings.min_probability_threshold:
            continue
        if best is None or prediction.probability > best.probability:
            best = RelevantRisk(category=category, prediction=prediction)
    return best


def coarse_risk_level(snapshot: PatientSnapshot, settings: DisplaySettings) -> str:
    """Relevant risk level for list filtering; no relevant risk counts as LOW."""
    risk = relevant_highest_risk(snapshot, settings)
    return risk.level if risk is not None else "LOW"


def _alert_sort_key(alert: Alert) -> tuple:
    return (
        alert.score,
        -RISK_LEVEL_RANK[alert.risk.level],
        -alert.risk.probability,
    )


def select_alerts(
    snapshots: Iterable[PatientSnapshot],
    settings: DisplaySettings,
    *,
    dismissed: Iterable[str] = (),
    score_ceiling: int = 100,
    category: str | None = None,
) -> list[Alert]:
    """Build the alert feed.

    A snapshot is included when its relevant risk is MEDIUM or HIGH, its
    prediction id is not dismissed, its score is at most ``score_ceiling`` and,
    when ``category`` is given, the relevant risk belongs to that category.
    Sorted by ascending score, then risk level (HIGH first), then probability.
    """
    if category is not None and category not in RISK_CATEGORIES:
        raise ValueError(f"Unknown risk category: {category!r}")

    dismissed_ids = set(dismissed)
    alerts = []
    for snapshot in snapshots:
        if snapshot.prediction_id in dismissed_ids:
            continue
        risk = relevant_highest_risk(snapshot, settings)
        if risk is None or risk.level not in ALERT_LEVELS:
            continue
        if category is not None and risk.category != category:
            continue
        alert = Alert(snapshot=snapshot, risk=risk)
        if alert.score > score_ceiling:
            continue
        alerts.append(alert)

    alerts.sort(key=_alert_sort_key)
    return alerts
