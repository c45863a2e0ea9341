"""MCP tools for a single patient: detail view and ad-hoc scoring."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from vitalwatch.domains.monitoring.domain_logic.alerts import relevant_highest_risk
from vitalwatch.domains.monitoring.domain_logic.models import (
    PatientSnapshot,
    SnapshotValidationError,
)
from vitalwatch.domains.monitoring.domain_logic.patient_detail import history_statistics
from vitalwatch.domains.monitoring.tools.dashboard_tools import effective_display_settings

if TYPE_CHECKING:
    from vitalwatch.core.config.settings import Settings
    from vitalwatch.domains.monitoring.domain_logic.display_settings import DisplaySettings
    from vitalwatch.domains.monitoring.monitor import PopulationMonitor

logger = logging.getLogger(__name__)


def register_patient_tools(
    mcp: FastMCP,
    monitor: PopulationMonitor,
    display_settings: DisplaySettings,
    settings: Settings,
) -> None:
    """Register per-patient tools on the MCP server."""

    @mcp.tool
    async def patient_detail(
        ctx: Context,
        patient_id: str,
        window_hours: float | None = None,
        limit: int | None = None,
        include_breakdown: bool = True,
    ) -> str:
        """Show one patient's current state, score breakdown and history trends.

        Covers time in range over five glucose bands, glucose variability,
        activity averages, score trend and chart series.

        Args:
            patient_id: Patient identifier (e.g. 'PATIENT_001').
            window_hours: History window (default from server settings, 24h).
            limit: Maximum history records (default from server settings).
            include_breakdown: Include the per-component score breakdown.
        """
        if not patient_id:
            raise ValueError("patient_id is required")
        window = settings.history_window_hours if window_hours is None else window_hours
        if window <= 0:
            raise ValueError("window_hours must be positive")

        history = await monitor.patient_history(
            patient_id,
            window_hours=window,
            limit=limit or settings.history_limit,
        )
        detail = history_statistics(history)
        if history:
            current = history[-1]
            risk = relevant_highest_risk(current, display_settings)
            detail["highest_risk"] = risk.as_dict() if risk is not None else None
            if include_breakdown:
                detail["score_breakdown"] = monitor.strategy.breakdown(current).as_dict()

        detail.update({
            "window_hours": window,
            "offline": monitor.offline,
            "poll_interval_s": settings.patient_poll_interval_s,
        })
        return json.dumps(detail, indent=2)

    @mcp.tool
    async def score_snapshot(
        ctx: Context,
        record_json: str,
        enabled_risks: dict[str, bool] | None = None,
        min_probability_threshold: float | None = None,
    ) -> str:
        """Score one raw snapshot record with the server's scoring policy.

        Args:
            record_json: JSON object in the prediction service record shape
                (patient_id, timestamp, vitals, predictions).
            enabled_risks: Optional per-category visibility overrides.
            min_probability_threshold: Optional minimum probability (0-100).
        """
        try:
            raw = json.loads(record_json)
        except (json.JSONDecodeError, TypeError) as exc:
            raise ValueError(f"record_json is not valid JSON: {exc}") from exc

        try:
            snapshot = PatientSnapshot.from_dict(raw)
        except SnapshotValidationError as exc:
            raise ValueError(f"Invalid snapshot record: {exc}") from exc

        view_settings = effective_display_settings(
            display_settings, enabled_risks, min_probability_threshold
        )
        breakdown = monitor.strategy.breakdown(snapshot)
        risk = relevant_highest_risk(snapshot, view_settings)
        return json.dumps({
            "patient_id": snapshot.patient_id,
            "prediction_id": snapshot.prediction_id,
            "composite_health_score": breakdown.score,
            "breakdown": breakdown.as_dict(),
            "highest_risk": risk.as_dict() if risk is not None else None,
        }, indent=2)
