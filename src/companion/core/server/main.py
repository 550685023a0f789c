"""Companion server entry point: ``python -m companion.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from companion.core.config.settings import get_settings
from companion.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host in {"localhost"}:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the companion MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.companion_log_level.upper(), logging.INFO)
    )

    logger = logging.getLogger(__name__)
    if not settings.companion_allow_insecure_bind and not _is_loopback_host(settings.companion_host):
        raise RuntimeError(
            "Refusing to bind the companion server to a non-loopback host without an "
            "auth layer. Set COMPANION_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting GLP-1 Companion server on %s:%d",
        settings.companion_host,
        settings.companion_port,
    )

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.companion_host,
        port=settings.companion_port,
    )


if __name__ == "__main__":
    run()
