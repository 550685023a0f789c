"""GLP-1 Companion MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
from datetime import timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastmcp import FastMCP

from companion.core.audit.logger import AuditLogger
from companion.core.config.settings import Settings, get_settings
from companion.core.privacy.consent import ConsentManager
from companion.core.storage.database import DatabaseError, HealthDatabase
from companion.core.storage.encryption import EncryptionError, FieldEncryptor
from companion.core.storage.repository import HealthLogRepository
from companion.domains.glp1.connectors import FoodDataProvider
from companion.domains.glp1.connectors.food_lookup import CachedFoodLookup, FoodLookupService

logger = logging.getLogger(__name__)

SERVER_NAME = "GLP-1 Companion"
SERVER_VERSION = "0.1.0"


def _resolve_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; using UTC day boundaries", name)
        return timezone.utc


def _open_repository(settings: Settings) -> HealthLogRepository | None:
    if not settings.encryption_key:
        logger.info(
            "No ENCRYPTION_KEY configured; running without persistence. "
            "Set ENCRYPTION_KEY to enable the health log bank."
        )
        return None
    try:
        encryptor = FieldEncryptor(settings.encryption_key)
        health_db = HealthDatabase(settings.db_path)
        health_db.initialize()
    except (EncryptionError, DatabaseError) as exc:
        logger.error("Failed to initialize storage: %s", exc)
        logger.warning("Continuing without persistence; data will not be stored")
        return None
    logger.info(
        "Health log bank initialized: %s (schema v%d)",
        settings.db_path,
        health_db.get_schema_version(),
    )
    return HealthLogRepository(health_db, encryptor)


def create_app(
    *,
    repository_override: HealthLogRepository | None = None,
    food_lookup_override: FoodDataProvider | None = None,
) -> FastMCP:
    """Create and configure the GLP-1 Companion MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Initializes the encrypted storage layer (health log bank)
    3. Creates the audit logger and default consents
    4. Configures the barcode lookup behind the product cache
    5. Registers all tools
    """
    settings = get_settings()
    tz = _resolve_timezone(settings.companion_timezone)

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Personal companion for people on GLP-1 medication. Log meals, "
            "fluids, activity, weight, mood, and doses, then review a daily "
            "summary against phase-adjusted goals with plain-language insights."
        ),
    )

    # --- Initialize encrypted storage ---
    if repository_override is not None:
        repository = repository_override
    else:
        repository = _open_repository(settings)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "timezone": str(tz),
            "storage_enabled": repository is not None,
        }
        if repository is not None:
            status["records_stored"] = repository.count_records()
        return status

    if repository is None:
        return server

    from companion.domains.glp1.tools.audit_tools import register_audit_tools
    from companion.domains.glp1.tools.food_tools import register_food_tools
    from companion.domains.glp1.tools.goal_tools import register_goal_tools
    from companion.domains.glp1.tools.import_tools import register_import_tools
    from companion.domains.glp1.tools.logging_tools import register_logging_tools
    from companion.domains.glp1.tools.medication_tools import register_medication_tools
    from companion.domains.glp1.tools.privacy_tools import register_privacy_tools
    from companion.domains.glp1.tools.progress_tools import register_progress_tools
    from companion.domains.glp1.tools.summary_tools import register_summary_tools

    audit_logger = AuditLogger(repository.database)
    consent = ConsentManager(repository, audit_logger)
    consent.ensure_defaults()

    # --- Barcode lookup (cached in the health log bank) ---
    if food_lookup_override is not None:
        upstream = food_lookup_override
    else:
        upstream = FoodLookupService(
            base_url=settings.food_lookup_base_url,
            alerts_url=settings.food_alerts_url,
            timeout_s=settings.food_lookup_timeout_s,
        )
    food_lookup = CachedFoodLookup(upstream, repository)

    register_logging_tools(
        server, repository, audit_logger, consent, tz=tz, food_lookup=food_lookup
    )
    register_summary_tools(server, repository, tz=tz)
    register_progress_tools(server, repository, tz=tz)
    register_goal_tools(server, repository, audit_logger)
    register_medication_tools(server, repository, audit_logger, consent, tz=tz)
    register_privacy_tools(server, repository, audit_logger, consent)
    register_audit_tools(server, audit_logger)
    register_food_tools(server, food_lookup)
    register_import_tools(
        server,
        repository,
        audit_logger,
        consent,
        tz=tz,
        default_export_path=settings.apple_health_export_path,
    )
    logger.info("Health log tools registered")

    return server


# Module-level instance for FastMCP discovery ("...app.py:mcp").
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
