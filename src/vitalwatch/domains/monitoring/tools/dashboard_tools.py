"""MCP tools for the population dashboard: patient list, alert feed, analytics."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from vitalwatch.domains.monitoring.domain_logic.alerts import select_alerts
from vitalwatch.domains.monitoring.domain_logic.population import (
    glucose_distribution,
    patient_row,
    population_list,
    population_stats,
    risk_averages,
    risk_matrix,
    vitals_overview,
)

if TYPE_CHECKING:
    from vitalwatch.core.config.settings import Settings
    from vitalwatch.domains.monitoring.domain_logic.display_settings import DisplaySettings
    from vitalwatch.domains.monitoring.monitor import PopulationMonitor

logger = logging.getLogger(__name__)


def effective_display_settings(
    base: DisplaySettings,
    enabled_risks: dict[str, bool] | None = None,
    min_probability_threshold: float | None = None,
) -> DisplaySettings:
    """Apply per-call overrides; raises ValueError for bad categories or thresholds."""
    if enabled_risks is None and min_probability_threshold is None:
        return base
    return base.with_overrides(
        enabled_risks=enabled_risks,
        min_probability_threshold=min_probability_threshold,
    )


def register_dashboard_tools(
    mcp: FastMCP,
    monitor: PopulationMonitor,
    display_settings: DisplaySettings,
    settings: Settings,
) -> None:
    """Register population-level dashboard tools on the MCP server."""

    @mcp.tool
    async def system_status(ctx: Context) -> str:
        """Report whether the prediction service is reachable and what is being served.

        ``offline`` is true while mock data stands in for the prediction
        service. The dashboard never errors for data problems; this flag is
        the only signal.
        """
        await monitor.current()
        status = monitor.status()
        status.update({
            "predictor_url": settings.predictor_url or None,
            "population_poll_interval_s": settings.population_poll_interval_s,
            "patient_poll_interval_s": settings.patient_poll_interval_s,
        })
        return json.dumps(status, indent=2)

    @mcp.tool
    async def population_overview(
        ctx: Context,
        search: str = "",
        risk_filter: str = "ALL",
        limit: int | None = None,
        enabled_risks: dict[str, bool] | None = None,
        min_probability_threshold: float | None = None,
    ) -> str:
        """List the latest state of every patient, worst health score first.

        Args:
            search: Case-insensitive substring of the patient id.
            risk_filter: ALL, LOW, MEDIUM or HIGH (relevant highest risk;
                patients with no relevant risk count as LOW).
            limit: Return at most this many rows (worst first).
            enabled_risks: Optional per-category visibility overrides.
            min_probability_threshold: Optional minimum probability (0-100).
        """
        if limit is not None and limit < 1:
            raise ValueError("limit must be at least 1")
        start_time = time.monotonic()
        view_settings = effective_display_settings(
            display_settings, enabled_risks, min_probability_threshold
        )
        patients = await monitor.current()
        rows = population_list(patients, view_settings, search=search, risk_filter=risk_filter)
        if limit is not None:
            rows = rows[:limit]

        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.debug("population_overview: %d/%d rows in %.1fms", len(rows), len(patients), elapsed_ms)

        return json.dumps({
            "status": "ok",
            "last_updated": monitor.last_updated.isoformat() if monitor.last_updated else None,
            "offline": monitor.offline,
            "scoring_strategy": monitor.strategy.name,
            "display_settings": view_settings.as_dict(),
            "stats": population_stats(patients, view_settings),
            "patients": [patient_row(p, view_settings) for p in rows],
        }, indent=2)

    @mcp.tool
    async def alert_feed(
        ctx: Context,
        dismissed_ids: list[str] | None = None,
        score_ceiling: int = 100,
        category: str | None = None,
        enabled_risks: dict[str, bool] | None = None,
        min_probability_threshold: float | None = None,
    ) -> str:
        """Active MEDIUM/HIGH risk alerts, lowest health score first.

        Args:
            dismissed_ids: Prediction ids the viewer has dismissed.
            score_ceiling: Only alert for scores at or below this value.
            category: Restrict to one risk category (e.g. 'cardiac').
            enabled_risks: Optional per-category visibility overrides.
            min_probability_threshold: Optional minimum probability (0-100).
        """
        if not 0 <= score_ceiling <= 100:
            raise ValueError("score_ceiling must be between 0 and 100")
        view_settings = effective_display_settings(
            display_settings, enabled_risks, min_probability_threshold
        )
        patients = await monitor.current()
        alerts = select_alerts(
            patients,
            view_settings,
            dismissed=dismissed_ids or (),
            score_ceiling=score_ceiling,
            category=category,
        )
        return json.dumps({
            "status": "ok",
            "alert_count": len(alerts),
            "critical_count": sum(1 for a in alerts if a.is_critical),
            "alerts": [a.as_dict() for a in alerts],
        }, indent=2)

    @mcp.tool
    async def population_analytics(ctx: Context) -> str:
        """Population-level distributions: glucose bands, risk levels, vitals ranges."""
        patients = await monitor.current()
        return json.dumps({
            "status": "ok",
            "patients": len(patients),
            "glucose_distribution": glucose_distribution(patients),
            "risk_matrix": risk_matrix(patients),
            "risk_averages_pct": risk_averages(patients),
            "vitals_overview": vitals_overview(patients),
        }, indent=2)
