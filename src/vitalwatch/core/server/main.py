"""VitalWatch server entry point: ``vitalwatch`` or ``python -m vitalwatch.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from vitalwatch.core.config.settings import Settings, get_settings
from vitalwatch.core.server.app import create_app

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def check_bind(settings: Settings) -> None:
    """Refuse to serve patient data beyond loopback unless explicitly allowed.

    stdio never binds a socket, so only the HTTP transport is checked.
    """
    if settings.vitalwatch_transport == "stdio":
        return
    if _is_loopback_host(settings.vitalwatch_host):
        return
    if settings.vitalwatch_allow_insecure_bind:
        logger.warning(
            "Serving patient data on non-loopback host %s without authentication",
            settings.vitalwatch_host,
        )
        return
    raise RuntimeError(
        f"Refusing to bind VitalWatch to {settings.vitalwatch_host}: there is no auth layer. "
        "Set VITALWATCH_ALLOW_INSECURE_BIND=true to override (unsafe)."
    )


def run() -> None:
    """Configure logging, check the bind address and serve the MCP app."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.vitalwatch_log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    check_bind(settings)

    mcp = create_app()
    if settings.vitalwatch_transport == "stdio":
        logger.info("Starting VitalWatch over stdio (%s scoring)", settings.scoring_strategy)
        mcp.run(transport="stdio")
        return

    logger.info(
        "Starting VitalWatch on %s:%d (%s scoring, predictor %s)",
        settings.vitalwatch_host,
        settings.vitalwatch_port,
        settings.scoring_strategy,
        settings.predictor_url or "disabled, demo mode",
    )
    mcp.run(
        transport="streamable-http",
        host=settings.vitalwatch_host,
        port=settings.vitalwatch_port,
    )


if __name__ == "__main__":
    run()
