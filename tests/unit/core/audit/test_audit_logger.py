"""Tests for the AuditLogger and related utilities."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

from companion.core.audit.logger import AuditAction, AuditEvent, AuditLogger, _hash_input
from companion.core.storage.database import HealthDatabase


# ---------------------------------------------------------------------------
# _hash_input tests
# ---------------------------------------------------------------------------

class TestHashInput:
    def test_hashes_dict(self):
        h = _hash_input({"key": "value"})
        assert isinstance(h, str)
        assert len(h) == 64  # SHA-256 hex

    def test_deterministic(self):
        data = {"a": 1, "b": 2}
        assert _hash_input(data) == _hash_input(data)

    def test_order_independent(self):
        """Canonical JSON sorts keys, so order doesn't matter."""
        assert _hash_input({"z": 1, "a": 2}) == _hash_input({"a": 2, "z": 1})

    def test_different_inputs_differ(self):
        assert _hash_input({"a": 1}) != _hash_input({"a": 2})

    def test_non_serializable_returns_empty(self):
        assert _hash_input(object()) == ""


# ---------------------------------------------------------------------------
# AuditLogger writes
# ---------------------------------------------------------------------------

class TestLogEvent:
    def test_log_event_returns_uuid(self, audit_logger):
        eid = audit_logger.log_event(AuditEvent(action=AuditAction.CREATE, target_entity="Record"))
        assert isinstance(eid, str)
        assert len(eid) == 36

    def test_log_stores_hash_not_payload(self, audit_logger):
        audit_logger.log(
            AuditAction.CREATE,
            "Record",
            details="symptom:abc",
            payload={"note": "felt dizzy after injection"},
        )
        event = audit_logger.get_events()[0]
        assert event["action"] == "create"
        assert event["target_entity"] == "Record"
        assert event["details"] == "symptom:abc"
        assert len(event["input_hash"]) == 64
        assert "dizzy" not in json.dumps(event)

    def test_no_payload_means_no_hash(self, audit_logger):
        audit_logger.log(AuditAction.DELETE, "Record", details="abc")
        assert audit_logger.get_events()[0]["input_hash"] is None

    def test_metadata_serialized(self, audit_logger):
        audit_logger.log(AuditAction.DELETE, "AllData", metadata={"entries_deleted": 4})
        event = audit_logger.get_events()[0]
        assert json.loads(event["metadata_json"]) == {"entries_deleted": 4}

    def test_failed_write_is_swallowed(self):
        db = HealthDatabase(":memory:")
        logger = AuditLogger(db)  # never initialized
        assert logger.log(AuditAction.CREATE, "Record") == ""


# ---------------------------------------------------------------------------
# AuditLogger reads
# ---------------------------------------------------------------------------

class TestQueries:
    def test_filter_by_action_and_entity(self, audit_logger):
        audit_logger.log(AuditAction.CREATE, "Record")
        audit_logger.log(AuditAction.UPDATE, "Record")
        audit_logger.log(AuditAction.CONSENT_CHANGE, "Consent", details="meals:false")

        assert len(audit_logger.get_events(action=AuditAction.UPDATE)) == 1
        assert len(audit_logger.get_events(target_entity="Record")) == 2

    def test_newest_first_and_limit(self, audit_logger):
        for i in range(5):
            audit_logger.log(AuditAction.CREATE, "Record", details=str(i))
        events = audit_logger.get_events(limit=3)
        assert [e["details"] for e in events] == ["4", "3", "2"]

    def test_counts(self, audit_logger):
        audit_logger.log(AuditAction.CREATE, "Record")
        audit_logger.log(AuditAction.CREATE, "FluidIntakeLog")
        audit_logger.log(AuditAction.DELETE, "Record")

        assert audit_logger.count_events() == 3
        assert audit_logger.count_by_action() == {"create": 2, "delete": 1}

    def test_since_filter(self, audit_logger):
        audit_logger.log(AuditAction.CREATE, "Record")
        future = (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat()
        assert audit_logger.count_events(since=future) == 0
        assert audit_logger.count_by_action(since=future) == {}
        assert audit_logger.get_events(since=future) == []
