"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """VitalWatch server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback: patient data must not be exposed to the LAN/WAN by accident.
    vitalwatch_host: str = "127.0.0.1"
    vitalwatch_port: int = 8001
    vitalwatch_transport: Literal["streamable-http", "stdio"] = "streamable-http"
    vitalwatch_log_level: str = "info"
    # There is no auth layer; binding to a non-loopback host needs an explicit opt-in.
    vitalwatch_allow_insecure_bind: bool = False

    # Prediction service. Empty URL = demo mode (mock data only).
    predictor_url: str = "http://127.0.0.1:8080"
    predictor_timeout_s: float = 30.0

    # Data volumes
    dashboard_limit: int = 1000
    history_window_hours: float = 24.0
    history_limit: int = 100
    mock_patient_count: int = 15
    mock_history_count: int = 20
    mock_seed: int | None = None

    # Scoring policy, one per deployment
    scoring_strategy: Literal["clinical", "risk_only"] = "clinical"

    # Display settings YAML (enabled risks, probability threshold)
    display_settings_path: str = ""

    # Polling
    population_poll_interval_s: float = 60.0
    patient_poll_interval_s: float = 30.0
    background_polling: bool = True


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
