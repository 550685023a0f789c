"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """GLP-1 Companion server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback: this server holds personal health logs and has no
    # auth layer. Opt into `0.0.0.0` explicitly when you intend remote access.
    companion_host: str = "127.0.0.1"
    companion_port: int = 8001
    companion_log_level: str = "info"
    companion_allow_insecure_bind: bool = False

    # Day boundaries for "today" and per-day queries (IANA zone name)
    companion_timezone: str = "UTC"

    # Storage (health log bank)
    db_path: str = "~/.glp1-companion/health.db"

    # Encryption of free-text fields at rest
    encryption_key: str = ""

    # Barcode nutrition lookup
    food_lookup_base_url: str = "https://world.openfoodfacts.org"
    food_alerts_url: str = "https://data.food.gov.uk/food-alerts/alerts"
    food_lookup_timeout_s: float = 10.0

    # Connectors
    apple_health_export_path: str = ""


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
