"""VitalWatch MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from vitalwatch.core.config.settings import get_settings
from vitalwatch.core.predictor.client import PredictorClient
from vitalwatch.domains.monitoring.connectors import PatientDataSource
from vitalwatch.domains.monitoring.connectors.fallback import FallbackDataSource
from vitalwatch.domains.monitoring.connectors.providers import MockDataSource
from vitalwatch.domains.monitoring.connectors.remote import RemotePredictorSource
from vitalwatch.domains.monitoring.domain_logic.display_settings import (
    DisplaySettings,
    load_display_settings,
)
from vitalwatch.domains.monitoring.domain_logic.scoring import get_strategy
from vitalwatch.domains.monitoring.monitor import PopulationMonitor
from vitalwatch.domains.monitoring.prompts.monitoring_prompts import register_monitoring_prompts
from vitalwatch.domains.monitoring.resources.settings_resources import (
    register_settings_resources,
)
from vitalwatch.domains.monitoring.tools.dashboard_tools import register_dashboard_tools
from vitalwatch.domains.monitoring.tools.patient_tools import register_patient_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "VitalWatch"
SERVER_VERSION = "0.1.0"


def create_app(
    *,
    data_source_override: PatientDataSource | None = None,
    predictor_client_override: PredictorClient | None = None,
    display_settings_override: DisplaySettings | None = None,
) -> FastMCP:
    """Create and configure the VitalWatch MCP server.

    This is the main application factory. It:
    1. Resolves the scoring policy (one per deployment)
    2. Loads display settings (enabled risks, probability threshold)
    3. Builds the data source (prediction service with mock fallback)
    4. Creates the population monitor and its background polling lifespan
    5. Registers all tools, resources, and prompts
    """
    settings = get_settings()

    # --- Scoring policy ---
    strategy = get_strategy(settings.scoring_strategy)
    logger.info("Scoring policy: %s", strategy.name)

    # --- Display settings ---
    if display_settings_override is not None:
        display_settings = display_settings_override
    else:
        display_settings = load_display_settings(settings.display_settings_path)

    # --- Data source ---
    mock_source = MockDataSource(
        patient_count=settings.mock_patient_count,
        history_count=settings.mock_history_count,
        seed=settings.mock_seed,
    )
    if data_source_override is not None:
        data_source = data_source_override
    elif predictor_client_override is not None or settings.predictor_url:
        client = predictor_client_override or PredictorClient(
            settings.predictor_url, timeout_s=settings.predictor_timeout_s
        )
        data_source = FallbackDataSource(RemotePredictorSource(client), mock_source)
        logger.info("Prediction service configured at %s", client.base_url)
    else:
        data_source = mock_source
        logger.warning("No PREDICTOR_URL configured; serving mock data (demo mode)")

    # --- Population monitor ---
    monitor = PopulationMonitor(
        data_source,
        strategy,
        limit=settings.dashboard_limit,
        max_age_s=settings.population_poll_interval_s,
    )

    @asynccontextmanager
    async def lifespan(server: FastMCP):
        if settings.background_polling:
            monitor.start_polling(settings.population_poll_interval_s)
        try:
            yield {}
        finally:
            await monitor.stop_polling()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Patient monitoring dashboard server. Provides composite health "
            "scores, a population list ordered worst-first, a risk alert feed, "
            "population analytics and per-patient history views over vital-sign "
            "snapshots and AI risk predictions."
        ),
        lifespan=lifespan,
    )

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "scoring_strategy": strategy.name,
            "data_source": data_source.data_source,
            "background_polling": settings.background_polling,
        }

    register_dashboard_tools(server, monitor, display_settings, settings)
    logger.info("Dashboard tools registered")

    register_patient_tools(server, monitor, display_settings, settings)
    logger.info("Patient tools registered")

    # --- Register resources ---
    register_settings_resources(server, display_settings, strategy)

    # --- Register prompts ---
    register_monitoring_prompts(server)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
