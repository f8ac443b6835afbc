"""
Audit Trail Module

Hash-chained immutable audit log with SHA-256 for tamper detection.
Every accepted or rejected ledger operation is recorded here.
"""

import hashlib
import json
import threading
from datetime import datetime, timezone
from dataclasses import dataclass, asdict
from collections import deque
from typing import Deque, Dict, List, Optional, Any
from enum import Enum
from decimal import Decimal
import uuid


class AuditEventType(Enum):
    """Types of audit events"""
    TOKEN_CREATED = "token_created"
    TRANSFER = "transfer"
    APPROVAL = "approval"
    TRANSFER_FROM = "transfer_from"
    OPERATION_REJECTED = "operation_rejected"
    AUDIT_INTEGRITY_CHECK = "audit_integrity_check"


@dataclass
class AuditEvent:
    """
    Immutable audit event with hash chaining for tamper detection
    """
    id: str
    created_at: datetime
    event_type: AuditEventType
    entity_type: str  # "token", "account", ...
    entity_id: str    # Token symbol or account identifier
    previous_hash: str  # Hash of previous audit event for chaining
    current_hash: str   # SHA-256 hash of this event
    metadata: Dict[str, Any]
    user_id: Optional[str] = None  # Account that initiated the operation
    sequence: int = 0

    def __post_init__(self):
        if self.metadata:
            self._serialize_metadata()

    def _serialize_metadata(self) -> None:
        """Convert metadata values to JSON-serializable format"""
        def convert_value(value):
            # Amounts exceed JSON's safe integer range, keep them exact as strings
            if isinstance(value, bool):
                return value
            elif isinstance(value, (int, Decimal)):
                return str(value)
            elif isinstance(value, datetime):
                return value.isoformat()
            elif isinstance(value, Enum):
                return value.value
            elif isinstance(value, dict):
                return {k: convert_value(v) for k, v in value.items()}
            elif isinstance(value, (list, tuple)):
                return [convert_value(v) for v in value]
            else:
                return value

        self.metadata = {k: convert_value(v) for k, v in self.metadata.items()}

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this event
        Hash includes all fields except current_hash to prevent circular reference
        """
        hash_data = {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'previous_hash': self.previous_hash,
            'user_id': self.user_id,
            'sequence': self.sequence,
            'metadata': self.metadata
        }

        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        """Verify that the current hash is correct"""
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary"""
        result = asdict(self)
        result['created_at'] = self.created_at.isoformat()
        result['event_type'] = self.event_type.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEvent':
        """Create AuditEvent from dictionary"""
        data = dict(data)
        if isinstance(data['created_at'], str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        if isinstance(data['event_type'], str):
            data['event_type'] = AuditEventType(data['event_type'])
        return cls(**data)


class AuditTrail:
    """
    Hash-chained audit trail for tamper detection
    """

    def __init__(self, max_events: Optional[int] = None):
        if max_events is not None and max_events < 1:
            raise ValueError("max_events must be at least 1")
        self.max_events = max_events
        self._events: Deque[AuditEvent] = deque()
        self._last_hash: Optional[str] = None
        # Hash the oldest retained event chains from; "" until records are dropped
        self._anchor_hash = ""
        self._next_sequence = 0
        self._lock = threading.Lock()  # Thread safety for concurrent access

    def log_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ) -> AuditEvent:
        """
        Log an audit event with hash chaining

        Args:
            event_type: Type of audit event
            entity_type: Type of entity being audited
            entity_id: ID of the entity
            metadata: Additional event-specific data
            user_id: Account that initiated the action

        Returns:
            Created AuditEvent
        """
        with self._lock:
            event = AuditEvent(
                id=str(uuid.uuid4()),
                created_at=datetime.now(timezone.utc),
                event_type=event_type,
                entity_type=entity_type,
                entity_id=entity_id,
                previous_hash=self._last_hash or "",
                current_hash="",  # Calculated below
                metadata=metadata or {},
                user_id=user_id,
                sequence=self._next_sequence
            )

            event.current_hash = event.calculate_hash()
            self._events.append(event)
            self._next_sequence += 1
            if self.max_events is not None:
                while len(self._events) > self.max_events:
                    self._anchor_hash = self._events.popleft().current_hash
            self._last_hash = event.current_hash

            return event

    def get_events_for_entity(
        self,
        entity_type: str,
        entity_id: str,
        limit: Optional[int] = None
    ) -> List[AuditEvent]:
        """
        Get all audit events for a specific entity

        Args:
            entity_type: Type of entity
            entity_id: ID of entity
            limit: Maximum number of events to return (most recent)

        Returns:
            List of AuditEvent objects in chain order
        """
        with self._lock:
            events = [e for e in self._events
                      if e.entity_type == entity_type and e.entity_id == entity_id]

        if limit:
            events = events[-limit:]

        return events

    def get_events_by_type(
        self,
        event_type: AuditEventType,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[AuditEvent]:
        """Get audit events by type within an optional time range"""
        events = [e for e in self.get_all_events(start_time, end_time)
                  if e.event_type == event_type]

        if limit:
            events = events[-limit:]

        return events

    def get_all_events(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[AuditEvent]:
        """
        Get all audit events within time range

        Args:
            start_time: Start of time range (inclusive)
            end_time: End of time range (inclusive)
            limit: Maximum number of events to return

        Returns:
            List of AuditEvent objects in chain order
        """
        with self._lock:
            events = list(self._events)

        if start_time:
            events = [e for e in events if e.created_at >= start_time]
        if end_time:
            events = [e for e in events if e.created_at <= end_time]

        if limit:
            events = events[-limit:]

        return events

    def verify_integrity(self, record_check: bool = True) -> Dict[str, Any]:
        """
        Verify the integrity of the retained audit chain

        Args:
            record_check: Append an AUDIT_INTEGRITY_CHECK event with the
                outcome once verification is done

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_events': 0,
            'hash_errors': [],
            'chain_breaks': [],
            'details': {}
        }

        with self._lock:
            events = list(self._events)
            anchor_hash = self._anchor_hash

        if events:
            self._check_chain(events, anchor_hash, result)

        if record_check:
            self.log_event(
                event_type=AuditEventType.AUDIT_INTEGRITY_CHECK,
                entity_type="audit_trail",
                entity_id="audit_trail",
                metadata={
                    "valid": result['valid'],
                    "total_events": result['total_events'],
                    "hash_errors": len(result['hash_errors']),
                    "chain_breaks": len(result['chain_breaks'])
                }
            )

        return result

    def _check_chain(self, events: List[AuditEvent], anchor_hash: str, result: Dict[str, Any]) -> None:
        result['total_events'] = len(events)

        for i, event in enumerate(events):
            if not event.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'event_id': event.id,
                    'position': i,
                    'expected_hash': event.calculate_hash(),
                    'actual_hash': event.current_hash
                })

        previous_hash = anchor_hash
        for i, event in enumerate(events):
            if event.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'event_id': event.id,
                    'position': i,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': event.previous_hash
                })
            previous_hash = event.current_hash

        result['details'] = {
            'first_event_time': events[0].created_at.isoformat(),
            'last_event_time': events[-1].created_at.isoformat(),
            'event_types': sorted(set(e.event_type.value for e in events)),
            'entity_types': sorted(set(e.entity_type for e in events))
        }

    def get_event_by_id(self, event_id: str) -> Optional[AuditEvent]:
        """Get a specific audit event by ID"""
        with self._lock:
            for event in self._events:
                if event.id == event_id:
                    return event
        return None

    def count_events(self) -> int:
        """Get total number of audit events"""
        with self._lock:
            return len(self._events)

    def get_latest_hash(self) -> Optional[str]:
        """Get the hash of the most recent audit event"""
        return self._last_hash
