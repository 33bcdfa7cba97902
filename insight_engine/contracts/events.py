"""
Observability Event Contracts

Immutable records produced by the engine for the audit log and metrics
collectors. These never flow back into detector behavior.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from .base import format_timestamp


class AuditEventType(Enum):
    """Explicit audit event types."""
    BUILD = "build"
    DETECTOR = "detector"
    REJECTION = "rejection"
    TONE = "tone"
    ERROR = "error"
    SYSTEM = "system"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: datetime
    layer: str
    action: str
    entity_id: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def metadata_value(self, key: str) -> Optional[str]:
        for k, v in self.metadata:
            if k == key:
                return v
        return None

    def to_dict(self) -> dict:
        return {
            'entryId': self.entry_id,
            'eventType': self.event_type.value,
            'timestamp': format_timestamp(self.timestamp),
            'layer': self.layer,
            'action': self.action,
            'entityId': self.entity_id,
            'metadata': dict(self.metadata),
        }


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: datetime
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
