"""Composite health score engine: patient snapshot -> integer score in [0, 100].

Two scoring policies exist and must not be mixed within one deployment:

``clinical`` (default)
    Seven capped sub-scores from vitals and risk predictions, plus an
    excellent-health bonus and a multiple-concerns penalty.
``risk_only``
    Weighted deduction from 100 using only the five risk probabilities.

All functions are pure. Inputs are assumed finite; non-finite values are
rejected when records are parsed at the data-source boundary.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Protocol, runtime_checkable

from vitalwatch.domains.monitoring.domain_logic.models import (
    PatientSnapshot,
    RiskPredictionSet,
    Vitals,
)

# ---------------------------------------------------------------------------
# Sub-score caps (clinical policy)
# ---------------------------------------------------------------------------

GLUCOSE_MAX = 25
CARDIAC_MAX = 20
OXYGENATION_MAX = 15
ACTIVITY_MAX = 10
TEMPERATURE_MAX = 5
RESPIRATORY_MAX = 5
RISK_MAX = 20

# Risk deduction weights out of RISK_MAX. Cardiac is weighted heaviest.
CLINICAL_RISK_WEIGHTS = {
    "hypoglycemia": 5.0,
    "cardiac": 6.0,
    "fall": 3.0,
    "hypotension": 4.0,
    "autonomic": 2.0,
}

# Risk deduction weights out of 100 for the risk-only policy. Sum to 100.
RISK_ONLY_WEIGHTS = {
    "hypoglycemia": 20.0,
    "fall": 15.0,
    "cardiac": 25.0,
    "hypotension": 20.0,
    "autonomic": 20.0,
}

EXCELLENT_HEALTH_BONUS = 2
MULTIPLE_CONCERNS_PENALTY = 3
MULTIPLE_CONCERNS_MIN_COUNT = 3

DEFAULT_STRATEGY = "clinical"


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Clinical sub-scores
# ---------------------------------------------------------------------------

def glucose_score(vitals: Vitals) -> int:
    """Glucose control (max 25), with insulin and carbohydrate adjustments."""
    g = vitals.glucose_mgdl
    if 80 <= g <= 180:
        score = 25
    elif 70 <= g < 80:
        score = 20
    elif 180 < g <= 200:
        score = 18
    elif 60 <= g < 70:
        score = 12
    elif 200 < g <= 250:
        score = 12
    elif 54 <= g < 60:
        score = 5
    elif 250 < g <= 300:
        score = 5
    else:
        score = 0

    # Insulin still acting on a low-normal reading: may go lower.
    if vitals.insulin_on_board > 0 and g < 100:
        score = max(0, score - 3)
    # Undigested carbohydrate on a high reading: may go higher.
    if vitals.carbs_in_stomach > 10 and g > 150:
        score = max(0, score - 2)
    return score


def heart_rate_points(heart_rate: float) -> int:
    """Heart-rate part of the cardiac score (max 12)."""
    if 60 <= heart_rate <= 100:
        return 12
    if 50 <= heart_rate < 60 or 100 < heart_rate <= 110:
        return 9
    if 40 <= heart_rate < 50 or 110 < heart_rate <= 130:
        return 5
    return 0


def hrv_points(hrv_sdnn: float) -> int:
    """HRV part of the cardiac score (max 8). Higher variability is better."""
    if hrv_sdnn >= 50:
        return 8
    if hrv_sdnn >= 40:
        return 7
    if hrv_sdnn >= 30:
        return 5
    if hrv_sdnn >= 20:
        return 3
    return 1


def cardiac_score(vitals: Vitals) -> int:
    """Cardiac health (max 20)."""
    return heart_rate_points(vitals.heart_rate_bpm) + hrv_points(vitals.hrv_sdnn)


def oxygenation_score(vitals: Vitals) -> int:
    """Oxygenation from SpO2 (max 15)."""
    spo2 = vitals.spo2_pct
    if spo2 >= 97:
        return 15
    if spo2 >= 95:
        return 13
    if spo2 >= 92:
        return 9
    if spo2 >= 90:
        return 5
    if spo2 >= 85:
        return 2
    return 0


def activity_score(vitals: Vitals) -> int:
    """Activity level from steps and intensity (max 10)."""
    steps = vitals.steps_per_minute
    if steps >= 20:
        step_points = 6
    elif steps >= 10:
        step_points = 5
    elif steps >= 5:
        step_points = 4
    elif steps >= 2:
        step_points = 2
    elif steps > 0:
        step_points = 1
    else:
        step_points = 0

    intensity = vitals.activity_intensity
    if intensity >= 0.7:
        intensity_points = 4
    elif intensity >= 0.4:
        intensity_points = 3
    elif intensity >= 0.2:
        intensity_points = 2
    elif intensity > 0:
        intensity_points = 1
    else:
        intensity_points = 0

    return step_points + intensity_points


def temperature_score(vitals: Vitals) -> int:
    """Skin temperature normality (max 5)."""
    t = vitals.skin_temperature_c
    if 36.5 <= t <= 37.2:
        return 5
    if 36.0 <= t < 36.5:
        return 4
    if 37.2 < t <= 37.8:
        return 3
    if 35.5 <= t < 36.0 or 37.8 < t <= 38.5:
        return 2
    return 0


def respiratory_score(vitals: Vitals) -> int:
    """Respiratory rate normality (max 5)."""
    rr = vitals.respiratory_rate_rpm
    if 12 <= rr <= 20:
        return 5
    if 10 <= rr < 12:
        return 4
    if 20 < rr <= 24:
        return 3
    if 8 <= rr < 10 or 24 < rr <= 30:
        return 2
    return 0


def risk_prediction_score(predictions: RiskPredictionSet) -> float:
    """AI risk sub-score (max 20): weighted probabilities deducted from 20."""
    deduction = sum(
        predictions.get(category).probability * weight
        for category, weight in CLINICAL_RISK_WEIGHTS.items()
    )
    return max(0.0, RISK_MAX - deduction)


# ---------------------------------------------------------------------------
# Breakdown
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScoreBreakdown:
    """How a composite score was reached. Sub-scores are None for risk_only."""

    strategy: str
    score: int
    glucose: int | None = None
    cardiac: int | None = None
    oxygenation: int | None = None
    activity: int | None = None
    temperature: int | None = None
    respiratory: int | None = None
    risk: float | None = None
    raw_total: float | None = None
    bonus_applied: bool = False
    penalty_applied: bool = False
    concerning_metrics: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "score": self.score,
            "components": {
                "glucose": self.glucose,
                "cardiac": self.cardiac,
                "oxygenation": self.oxygenation,
                "activity": self.activity,
                "temperature": self.temperature,
                "respiratory": self.respiratory,
                "risk": round(self.risk, 4) if self.risk is not None else None,
            },
            "raw_total": round(self.raw_total, 4) if self.raw_total is not None else None,
            "bonus_applied": self.bonus_applied,
            "penalty_applied": self.penalty_applied,
            "concerning_metrics": list(self.concerning_metrics),
        }


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

@runtime_checkable
class ScoringStrategy(Protocol):
    """A named scoring policy."""

    @property
    def name(self) -> str:
        ...

    def score(self, snapshot: PatientSnapshot) -> int:
        ...

    def breakdown(self, snapshot: PatientSnapshot) -> ScoreBreakdown:
        ...


class ClinicalWeightingStrategy:
    """Multi-factor clinical weighting over vitals and risk predictions."""

    name = "clinical"

    def score(self, snapshot: PatientSnapshot) -> int:
        return self.breakdown(snapshot).score

    def breakdown(self, snapshot: PatientSnapshot) -> ScoreBreakdown:
        if snapshot.predictions is None or snapshot.vitals is None:
            return ScoreBreakdown(strategy=self.name, score=0)

        v = snapshot.vitals
        glucose = glucose_score(v)
        cardiac = cardiac_score(v)
        oxygen = oxygenation_score(v)
        activity = activity_score(v)
        temperature = temperature_score(v)
        respiratory = respiratory_score(v)
        risk = risk_prediction_score(snapshot.predictions)

        raw_total = glucose + cardiac + oxygen + activity + temperature + respiratory + risk
        total = raw_total

        bonus = glucose >= 23 and cardiac >= 18 and oxygen >= 14
        if bonus:
            total = min(100.0, total + EXCELLENT_HEALTH_BONUS)

        concerns = []
        if glucose <= 12:
            concerns.append("glucose")
        if cardiac <= 10:
            concerns.append("cardiac")
        if oxygen <= 9:
            concerns.append("oxygenation")
        if activity <= 2:
            concerns.append("activity")
        penalty = len(concerns) >= MULTIPLE_CONCERNS_MIN_COUNT
        if penalty:
            total = max(0.0, total - MULTIPLE_CONCERNS_PENALTY)

        return ScoreBreakdown(
            strategy=self.name,
            score=round_half_up(_clamp(total)),
            glucose=glucose,
            cardiac=cardiac,
            oxygenation=oxygen,
            activity=activity,
            temperature=temperature,
            respiratory=respiratory,
            risk=risk,
            raw_total=raw_total,
            bonus_applied=bonus,
            penalty_applied=penalty,
            concerning_metrics=concerns,
        )


class RiskOnlyStrategy:
    """Simplified weighting: 100 minus weighted risk probabilities."""

    name = "risk_only"

    def score(self, snapshot: PatientSnapshot) -> int:
        return self.breakdown(snapshot).score

    def breakdown(self, snapshot: PatientSnapshot) -> ScoreBreakdown:
        if snapshot.predictions is None:
            return ScoreBreakdown(strategy=self.name, score=0)
        deduction = sum(
            snapshot.predictions.get(category).probability * weight
            for category, weight in RISK_ONLY_WEIGHTS.items()
        )
        raw_total = max(0.0, 100.0 - deduction)
        return ScoreBreakdown(
            strategy=self.name,
            score=round_half_up(_clamp(raw_total)),
            raw_total=raw_total,
        )


_STRATEGIES: dict[str, type] = {
    ClinicalWeightingStrategy.name: ClinicalWeightingStrategy,
    RiskOnlyStrategy.name: RiskOnlyStrategy,
}

STRATEGY_NAMES = sorted(_STRATEGIES)


def get_strategy(name: str | None = None) -> ScoringStrategy:
    """Resolve a scoring policy by name (default: clinical)."""
    key = name or DEFAULT_STRATEGY
    try:
        return _STRATEGIES[key]()
    except KeyError:
        raise ValueError(
            f"Unknown scoring strategy {key!r}; expected one of: {', '.join(STRATEGY_NAMES)}"
        ) from None


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def compute_score(snapshot: PatientSnapshot, strategy: ScoringStrategy | None = None) -> int:
    """Compute the composite health score for one snapshot.

    Never mutates the snapshot. Returns 0 when predictions are missing.
    """
    return (strategy or get_strategy()).score(snapshot)


def annotate(
    snapshots: Iterable[PatientSnapshot],
    strategy: ScoringStrategy | None = None,
) -> list[PatientSnapshot]:
    """Return copies of ``snapshots`` carrying ``composite_health_score``."""
    policy = strategy or get_strategy()
    return [s.with_score(policy.score(s)) for s in snapshots]
