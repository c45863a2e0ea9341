"""Patient snapshot models and domain constants for the monitoring dashboard."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Iterator


# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# Fixed category order. Tie-breaking in alert selection depends on it.
RISK_CATEGORIES = [
    "hypoglycemia",
    "fall",
    "cardiac",
    "hypotension",
    "autonomic",
]

RISK_LEVELS = ["LOW", "MEDIUM", "HIGH"]

# HIGH > MEDIUM > LOW
RISK_LEVEL_RANK = {"LOW": 0, "MEDIUM": 1, "HIGH": 2}

MEDIUM_PROBABILITY = 0.7
HIGH_PROBABILITY = 0.9
RISK_FLAG_PROBABILITY = 0.5


class SnapshotValidationError(ValueError):
    """A wire record could not be turned into a PatientSnapshot."""


def risk_level_for_probability(probability: float) -> str:
    """Bucket a model probability into LOW / MEDIUM / HIGH."""
    if probability > HIGH_PROBABILITY:
        return "HIGH"
    if probability > MEDIUM_PROBABILITY:
        return "MEDIUM"
    return "LOW"


def _finite(value: Any, name: str) -> float:
    """Coerce a wire value to a finite float or raise SnapshotValidationError."""
    if isinstance(value, bool) or value is None:
        raise SnapshotValidationError(f"{name} must be numeric, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise SnapshotValidationError(f"{name} must be numeric, got {value!r}") from None
    if not math.isfinite(number):
        raise SnapshotValidationError(f"{name} must be finite, got {value!r}")
    return number


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise SnapshotValidationError(f"Invalid timestamp: {value!r}") from None
    else:
        raise SnapshotValidationError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Render a timestamp the way the prediction service does."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Vitals
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Vitals:
    """One instant of physiological measurements."""

    glucose_mgdl: float
    heart_rate_bpm: float
    hrv_sdnn: float                 # ms
    qt_interval_ms: float
    respiratory_rate_rpm: float
    spo2_pct: float
    steps_per_minute: float
    vertical_acceleration_g: float
    skin_temperature_c: float
    eda_microsiemens: float
    insulin_on_board: float         # units
    carbs_in_stomach: float         # grams
    activity_intensity: float       # 0-1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Vitals:
        if not isinstance(data, dict):
            raise SnapshotValidationError("vitals must be an object")
        values = {}
        for f in fields(cls):
            if f.name not in data:
                raise SnapshotValidationError(f"Missing vitals field: {f.name}")
            values[f.name] = _finite(data[f.name], f"vitals.{f.name}")
        return cls(**values)

    def to_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# ---------------------------------------------------------------------------
# Risk predictions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RiskPrediction:
    """Output of one risk model."""

    probability: float
    confidence: float
    risk_level: str
    risk: int

    @classmethod
    def from_probability(cls, probability: float, confidence: float = 1.0) -> RiskPrediction:
        """Build a prediction with level and flag derived from the probability."""
        return cls(
            probability=probability,
            confidence=confidence,
            risk_level=risk_level_for_probability(probability),
            risk=1 if probability > RISK_FLAG_PROBABILITY else 0,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], category: str = "prediction") -> RiskPrediction:
        if not isinstance(data, dict):
            raise SnapshotValidationError(f"{category} must be an object")
        probability = _finite(data.get("probability"), f"{category}.probability")
        confidence = _finite(data.get("confidence", 0.0), f"{category}.confidence")
        level = data.get("risk_level") or risk_level_for_probability(probability)
        if not isinstance(level, str) or level not in RISK_LEVEL_RANK:
            raise SnapshotValidationError(f"{category}.risk_level must be one of {RISK_LEVELS}")
        raw_flag = data.get("risk")
        flag = (1 if probability > RISK_FLAG_PROBABILITY else 0) if raw_flag is None else int(
            _finite(raw_flag, f"{category}.risk")
        )
        return cls(probability=probability, confidence=confidence, risk_level=level, risk=flag)

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk": self.risk,
            "probability": self.probability,
            "confidence": self.confidence,
            "risk_level": self.risk_level,
        }


@dataclass(frozen=True)
class RiskPredictionSet:
    """The five risk model outputs for one snapshot. Always complete."""

    hypoglycemia: RiskPrediction
    fall: RiskPrediction
    cardiac: RiskPrediction
    hypotension: RiskPrediction
    autonomic: RiskPrediction

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RiskPredictionSet:
        if not isinstance(data, dict):
            raise SnapshotValidationError("predictions must be an object")
        missing = [c for c in RISK_CATEGORIES if c not in data]
        if missing:
            raise SnapshotValidationError(f"Missing predictions: {', '.join(missing)}")
        return cls(**{c: RiskPrediction.from_dict(data[c], c) for c in RISK_CATEGORIES})

    def get(self, category: str) -> RiskPrediction:
        if category not in RISK_CATEGORIES:
            raise KeyError(category)
        return getattr(self, category)

    def items(self) -> Iterator[tuple[str, RiskPrediction]]:
        """Yield (category, prediction) in the fixed category order."""
        for category in RISK_CATEGORIES:
            yield category, getattr(self, category)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {category: pred.to_dict() for category, pred in self.items()}


# ---------------------------------------------------------------------------
# Patient snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PatientSnapshot:
    """One timestamped capture of a patient's vitals and risk predictions.

    ``composite_health_score`` is never computed in place; use
    :meth:`with_score` to derive an annotated copy.
    """

    patient_id: str
    prediction_id: str
    timestamp: datetime
    vitals: Vitals
    predictions: RiskPredictionSet | None
    inserted_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)
    composite_health_score: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PatientSnapshot:
        """Parse a prediction-service record, validating every numeric field."""
        if not isinstance(data, dict):
            raise SnapshotValidationError("record must be an object")
        patient_id = data.get("patient_id")
        if not isinstance(patient_id, str) or not patient_id:
            raise SnapshotValidationError("patient_id is required")
        timestamp = parse_timestamp(data.get("timestamp"))
        inserted_raw = data.get("inserted_at")
        raw_predictions = data.get("predictions")
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise SnapshotValidationError("metadata must be an object")
        score = data.get("composite_health_score")
        return cls(
            patient_id=patient_id,
            prediction_id=str(data.get("prediction_id") or f"{patient_id}_{int(timestamp.timestamp() * 1000)}"),
            timestamp=timestamp,
            inserted_at=parse_timestamp(inserted_raw) if inserted_raw else None,
            vitals=Vitals.from_dict(data.get("vitals")),
            predictions=RiskPredictionSet.from_dict(raw_predictions) if raw_predictions is not None else None,
            metadata=dict(metadata),
            composite_health_score=(
                int(_finite(score, "composite_health_score")) if score is not None else None
            ),
        )

    def with_score(self, score: int) -> PatientSnapshot:
        """Return a copy annotated with a composite health score."""
        return replace(self, composite_health_score=score)

    def to_dict(self) -> dict[str, Any]:
        return {
            "prediction_id": self.prediction_id,
            "patient_id": self.patient_id,
            "timestamp": format_timestamp(self.timestamp),
            "inserted_at": format_timestamp(self.inserted_at) if self.inserted_at else None,
            "vitals": self.vitals.to_dict(),
            "predictions": self.predictions.to_dict() if self.predictions else None,
            "metadata": dict(self.metadata),
            "composite_health_score": self.composite_health_score,
        }
