"""MCP Resources for display settings and scoring policy discovery."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from fastmcp import FastMCP

from vitalwatch.domains.monitoring.domain_logic.models import RISK_CATEGORIES
from vitalwatch.domains.monitoring.domain_logic.scoring import (
    CLINICAL_RISK_WEIGHTS,
    RISK_ONLY_WEIGHTS,
    STRATEGY_NAMES,
)

if TYPE_CHECKING:
    from vitalwatch.domains.monitoring.domain_logic.display_settings import DisplaySettings
    from vitalwatch.domains.monitoring.domain_logic.scoring import ScoringStrategy


def register_settings_resources(
    mcp: FastMCP,
    display_settings: DisplaySettings,
    strategy: ScoringStrategy,
) -> None:
    """Register display settings and scoring policy resources on the MCP server."""

    @mcp.resource("settings://vitalwatch/display")
    def display_settings_resource() -> str:
        """Active display settings and the deployment's scoring policy."""
        weights = CLINICAL_RISK_WEIGHTS if strategy.name == "clinical" else RISK_ONLY_WEIGHTS
        return json.dumps(
            {
                "display_settings": display_settings.as_dict(),
                "risk_categories": RISK_CATEGORIES,
                "scoring": {
                    "strategy": strategy.name,
                    "available_strategies": STRATEGY_NAMES,
                    "risk_weights": weights,
                    "note": (
                        "One scoring policy per deployment. Scores from different "
                        "policies are not comparable."
                    ),
                },
            },
            indent=2,
        )
