"""Integration tests for the GLP-1 Companion MCP server."""

from __future__ import annotations

import asyncio

import pytest
from fastmcp import Client

from companion.core.server.app import create_app
from companion.core.server.main import _is_loopback_host


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


STORAGE_TOOLS = [
    "log_meal",
    "log_scanned_meal",
    "log_fluid",
    "log_activity",
    "log_weight",
    "log_mood",
    "log_medication_dose",
    "log_glucose",
    "log_symptom",
    "update_record",
    "delete_record",
    "list_records",
    "daily_summary",
    "daily_insights",
    "progress_trends",
    "get_goals",
    "set_goals",
    "goal_history",
    "list_medications",
    "get_medication_schedule",
    "set_medication_schedule",
    "consent_status",
    "set_consent",
    "delete_all_data",
    "audit_summary",
    "lookup_barcode",
    "import_apple_health",
]


@pytest.fixture
def client(health_repository):
    """MCP client connected to a server backed by in-memory storage."""
    return Client(create_app(repository_override=health_repository))


def test_server_starts_and_lists_tools(client):
    """Server should start and expose every storage-backed tool."""
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ["health_check", *STORAGE_TOOLS]:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_health_check_reports_storage(client):
    async def _check():
        async with client:
            result = await client.call_tool("health_check", {})
            text = str(result)
            assert "ok" in text
            assert "records_stored" in text
    _run(_check())


def test_without_storage_only_health_check():
    """No ENCRYPTION_KEY (hermetic env) means no storage-backed tools."""
    async def _check():
        async with Client(create_app()) as client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            assert tool_names == ["health_check"]
            result = await client.call_tool("health_check", {})
            assert "storage_enabled" in str(result)
    _run(_check())


def test_encryption_key_enables_storage(monkeypatch, tmp_path):
    from companion.core.storage.encryption import FieldEncryptor

    monkeypatch.setenv("ENCRYPTION_KEY", FieldEncryptor.generate_key())
    monkeypatch.setenv("DB_PATH", str(tmp_path / "health.db"))

    async def _check():
        async with Client(create_app()) as client:
            tools = await client.list_tools()
            assert "daily_summary" in [t.name for t in tools]
    _run(_check())
    assert (tmp_path / "health.db").exists()


def test_default_consents_created(health_repository):
    create_app(repository_override=health_repository)
    consents = health_repository.get_consents()
    assert len(consents) == 6
    assert all(consents.values())


class TestLoopbackGuard:
    def test_loopback_hosts(self):
        assert _is_loopback_host("127.0.0.1")
        assert _is_loopback_host("::1")
        assert _is_loopback_host("localhost")

    def test_non_loopback_hosts(self):
        assert not _is_loopback_host("0.0.0.0")
        assert not _is_loopback_host("192.168.1.20")
        assert not _is_loopback_host("example.com")

    def test_run_refuses_public_bind(self, monkeypatch):
        from companion.core.server import main

        monkeypatch.setenv("COMPANION_HOST", "0.0.0.0")
        with pytest.raises(RuntimeError, match="non-loopback"):
            main.run()
