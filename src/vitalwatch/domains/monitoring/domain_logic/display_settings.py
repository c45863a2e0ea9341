"""Display settings: which risk categories are surfaced and from what probability.

Settings are an explicit value passed into every consumer call. They never
affect the composite score, only which already-computed results are shown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from vitalwatch.domains.monitoring.domain_logic.models import RISK_CATEGORIES

logger = logging.getLogger(__name__)


class DisplaySettingsError(ValueError):
    """Display settings are malformed."""


def _all_enabled() -> dict[str, bool]:
    return {category: True for category in RISK_CATEGORIES}


@dataclass(frozen=True)
class DisplaySettings:
    """Per-category visibility plus a minimum probability (percent, 0-100)."""

    enabled_risks: dict[str, bool] = field(default_factory=_all_enabled)
    min_probability_threshold: float = 0

    def __post_init__(self) -> None:
        unknown = set(self.enabled_risks) - set(RISK_CATEGORIES)
        if unknown:
            raise DisplaySettingsError(f"Unknown risk categories: {', '.join(sorted(unknown))}")
        if not 0 <= self.min_probability_threshold <= 100:
            raise DisplaySettingsError("min_probability_threshold must be between 0 and 100")

    def is_enabled(self, category: str) -> bool:
        # Categories missing from the mapping stay visible.
        return self.enabled_risks.get(category, True)

    def with_overrides(
        self,
        *,
        enabled_risks: dict[str, bool] | None = None,
        min_probability_threshold: float | None = None,
    ) -> DisplaySettings:
        """Return a copy with per-call overrides applied."""
        merged = dict(self.enabled_risks)
        if enabled_risks:
            merged.update(enabled_risks)
        return DisplaySettings(
            enabled_risks=merged,
            min_probability_threshold=(
                self.min_probability_threshold
                if min_probability_threshold is None
                else min_probability_threshold
            ),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "enabled_risks": {c: self.is_enabled(c) for c in RISK_CATEGORIES},
            "min_probability_threshold": self.min_probability_threshold,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DisplaySettings:
        if not isinstance(data, dict):
            raise DisplaySettingsError("Display settings must be a mapping")
        enabled = data.get("enabled_risks", {}) or {}
        if not isinstance(enabled, dict):
            raise DisplaySettingsError("enabled_risks must be a mapping of category -> bool")
        merged = _all_enabled()
        for category, value in enabled.items():
            if not isinstance(value, bool):
                raise DisplaySettingsError(f"enabled_risks.{category} must be true or false")
            merged[category] = value
        threshold = data.get("min_probability_threshold", 0)
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise DisplaySettingsError("min_probability_threshold must be a number")
        return cls(enabled_risks=merged, min_probability_threshold=threshold)


def load_display_settings(path: str | Path | None) -> DisplaySettings:
    """Load display settings from a YAML file, or defaults when no path is set."""
    if not path:
        return DisplaySettings()
    path = Path(path).expanduser()
    if not path.is_file():
        logger.warning("Display settings file does not exist: %s; using defaults", path)
        return DisplaySettings()

    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise DisplaySettingsError(f"Invalid YAML in {path}: {exc}") from exc

    settings = DisplaySettings.from_dict(data)
    logger.info(
        "Loaded display settings from %s (threshold %s%%, %d categories enabled)",
        path,
        settings.min_probability_threshold,
        sum(settings.is_enabled(c) for c in RISK_CATEGORIES),
    )
    return settings
