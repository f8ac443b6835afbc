"""
Test suite for audit module

Tests hash-chained audit trail, tamper detection and integrity verification.
"""

import pytest
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from token_ledger.audit import AuditTrail, AuditEvent, AuditEventType


class TestAuditEvent:
    """Test AuditEvent functionality"""

    def test_valid_audit_event(self):
        """Test creating valid audit event"""
        now = datetime.now(timezone.utc)

        event = AuditEvent(
            id="AUDIT001",
            created_at=now,
            event_type=AuditEventType.TRANSFER,
            entity_type="token",
            entity_id="DLT",
            previous_hash="abc123",
            current_hash="def456",
            metadata={"from": "alice", "to": "bob"},
            user_id="alice"
        )

        assert event.event_type == AuditEventType.TRANSFER
        assert event.entity_id == "DLT"
        assert event.previous_hash == "abc123"
        assert event.user_id == "alice"
        assert event.metadata["to"] == "bob"

    def test_metadata_serialization(self):
        """Test that amounts and other values are made JSON-safe"""
        now = datetime.now(timezone.utc)

        event = AuditEvent(
            id="AUDIT002",
            created_at=now,
            event_type=AuditEventType.APPROVAL,
            entity_type="token",
            entity_id="DLT",
            previous_hash="",
            current_hash="",
            metadata={
                "amount": 2 ** 200,
                "decimal_value": Decimal('1.5'),
                "flag": True,
                "when": now,
                "kind": AuditEventType.TRANSFER,
                "nested": {"values": [1, 2]}
            }
        )

        assert event.metadata["amount"] == str(2 ** 200)
        assert event.metadata["decimal_value"] == "1.5"
        assert event.metadata["flag"] is True
        assert event.metadata["when"] == now.isoformat()
        assert event.metadata["kind"] == "transfer"
        assert event.metadata["nested"] == {"values": ["1", "2"]}

    def test_hash_calculation(self):
        """Test hash is deterministic and detects changes"""
        now = datetime.now(timezone.utc)
        event = AuditEvent(
            id="AUDIT003",
            created_at=now,
            event_type=AuditEventType.TRANSFER,
            entity_type="token",
            entity_id="DLT",
            previous_hash="",
            current_hash="",
            metadata={"amount": 10}
        )
        event.current_hash = event.calculate_hash()

        assert len(event.current_hash) == 64
        assert event.verify_hash()

        event.metadata["amount"] = "11"
        assert not event.verify_hash()

    def test_dict_round_trip(self):
        """Test to_dict/from_dict"""
        now = datetime.now(timezone.utc)
        event = AuditEvent(
            id="AUDIT004",
            created_at=now,
            event_type=AuditEventType.TOKEN_CREATED,
            entity_type="token",
            entity_id="DLT",
            previous_hash="",
            current_hash="",
            metadata={}
        )
        event.current_hash = event.calculate_hash()

        data = event.to_dict()
        assert data['event_type'] == "token_created"
        restored = AuditEvent.from_dict(data)
        assert restored.verify_hash()
        assert restored.created_at == now


class TestAuditTrail:
    """Test AuditTrail functionality"""

    def setup_method(self):
        """Set up test fixtures"""
        self.audit_trail = AuditTrail()

    def test_log_event_chains_hashes(self):
        """Test that each event points at its predecessor"""
        first = self.audit_trail.log_event(AuditEventType.TOKEN_CREATED, "token", "DLT")
        second = self.audit_trail.log_event(AuditEventType.TRANSFER, "token", "DLT",
                                            metadata={"amount": 5}, user_id="alice")

        assert first.previous_hash == ""
        assert second.previous_hash == first.current_hash
        assert second.sequence == 1
        assert self.audit_trail.get_latest_hash() == second.current_hash
        assert self.audit_trail.count_events() == 2

    def test_queries(self):
        """Test filtering events"""
        self.audit_trail.log_event(AuditEventType.TOKEN_CREATED, "token", "DLT")
        self.audit_trail.log_event(AuditEventType.TRANSFER, "token", "DLT")
        self.audit_trail.log_event(AuditEventType.TRANSFER, "token", "OTHER")
        self.audit_trail.log_event(AuditEventType.APPROVAL, "token", "DLT")

        assert len(self.audit_trail.get_events_for_entity("token", "DLT")) == 3
        assert len(self.audit_trail.get_events_for_entity("token", "DLT", limit=1)) == 1
        assert len(self.audit_trail.get_events_by_type(AuditEventType.TRANSFER)) == 2
        assert len(self.audit_trail.get_all_events(limit=2)) == 2

        future = datetime.now(timezone.utc) + timedelta(hours=1)
        assert self.audit_trail.get_all_events(start_time=future) == []

    def test_get_event_by_id(self):
        """Test lookup by id"""
        event = self.audit_trail.log_event(AuditEventType.APPROVAL, "token", "DLT")

        assert self.audit_trail.get_event_by_id(event.id) is event
        assert self.audit_trail.get_event_by_id("missing") is None

    def test_verify_integrity(self):
        """Test integrity of an untouched chain"""
        assert self.audit_trail.verify_integrity(record_check=False)['total_events'] == 0
        assert self.audit_trail.count_events() == 0

        for _ in range(5):
            self.audit_trail.log_event(AuditEventType.TRANSFER, "token", "DLT",
                                       metadata={"amount": 1})

        result = self.audit_trail.verify_integrity(record_check=False)
        assert result['valid']
        assert result['total_events'] == 5
        assert result['details']['event_types'] == ["transfer"]

    def test_integrity_check_is_recorded(self):
        """Test that a verification run leaves its own chained record"""
        self.audit_trail.log_event(AuditEventType.TRANSFER, "token", "DLT")

        self.audit_trail.verify_integrity()

        checks = self.audit_trail.get_events_by_type(AuditEventType.AUDIT_INTEGRITY_CHECK)
        assert len(checks) == 1
        assert checks[0].entity_type == "audit_trail"
        assert checks[0].metadata["valid"] is True
        assert checks[0].metadata["total_events"] == "1"

        result = self.audit_trail.verify_integrity()
        assert result['valid']
        assert result['total_events'] == 2
        assert result['details']['event_types'] == ["audit_integrity_check", "transfer"]

    def test_retention_cap(self):
        """Test that the oldest records are dropped beyond max_events"""
        audit_trail = AuditTrail(max_events=3)
        logged = [
            audit_trail.log_event(AuditEventType.TRANSFER, "token", "DLT", metadata={"n": i})
            for i in range(5)
        ]

        retained = audit_trail.get_all_events()
        assert audit_trail.count_events() == 3
        assert retained == logged[2:]
        assert [e.sequence for e in retained] == [2, 3, 4]
        assert audit_trail.get_event_by_id(logged[0].id) is None

        # The retained chain still verifies from the last dropped hash
        result = audit_trail.verify_integrity(record_check=False)
        assert result['valid']
        assert result['chain_breaks'] == []

    def test_invalid_retention_cap(self):
        """Test that max_events must be positive"""
        with pytest.raises(ValueError, match="max_events"):
            AuditTrail(max_events=0)

    def test_tamper_detection(self):
        """Test that modified events and broken links are reported"""
        for _ in range(3):
            self.audit_trail.log_event(AuditEventType.TRANSFER, "token", "DLT",
                                       metadata={"amount": 1})

        events = self.audit_trail.get_all_events()
        events[1].metadata["amount"] = "1000"

        result = self.audit_trail.verify_integrity()
        assert not result['valid']
        assert result['hash_errors'][0]['position'] == 1

        # Re-hash the tampered event; the next link now breaks
        events[1].current_hash = events[1].calculate_hash()
        result = self.audit_trail.verify_integrity()
        assert not result['valid']
        assert result['hash_errors'] == []
        assert result['chain_breaks'][0]['position'] == 2
