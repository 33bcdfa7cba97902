"""
Observability & Audit Layer

RESPONSIBILITY: Audit log and metrics for engine runs
ALLOWED INPUTS: Copies of engine events (builds, detector failures,
gate rejections, tone warnings)
OUTPUTS: AuditLogEntry lists, MetricPoint series, summary reports

WHAT THIS LAYER MUST NOT DO:
============================
- Modify engine behavior or output
- Filter or interpret events (only record them)
- Surface anything to the end user

BOUNDARY ENFORCEMENT:
=====================
- Receives immutable records
- Provides read-only access to logs and metrics
- The engine never reads these collectors back
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple
import hashlib

from ..contracts.base import Error, format_timestamp
from ..contracts.events import AuditEventType, AuditLogEntry, MetricPoint


# =============================================================================
# LOG COLLECTORS (One per layer)
# =============================================================================

class LogCollector:
    """
    Append-only audit entry collector for one layer.
    """

    def __init__(self, layer_name: str, max_entries: int = 10_000):
        self._layer_name = layer_name
        self._max_entries = max_entries
        self._entries: List[AuditLogEntry] = []

    def collect(self, entry: AuditLogEntry):
        self._entries.append(entry)
        if len(self._entries) > self._max_entries:
            # retention: drop oldest
            del self._entries[: len(self._entries) - self._max_entries]

    def get_entries(self, event_type: Optional[AuditEventType] = None) -> List[AuditLogEntry]:
        if event_type is None:
            return list(self._entries)
        return [e for e in self._entries if e.event_type == event_type]

    @property
    def layer_name(self) -> str:
        return self._layer_name

    @property
    def entry_count(self) -> int:
        return len(self._entries)


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

class MetricType(Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass
class MetricDefinition:
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


class MetricsCollector:
    """
    Append-only time series of metric points. Each series keeps at most
    `max_points` points; older points are dropped first.
    """

    def __init__(self, max_points: int = 10_000):
        self._max_points = max_points
        self._metrics: Dict[str, Deque[MetricPoint]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        self._register_default_metrics()

    def _register_default_metrics(self):
        defaults = [
            MetricDefinition(
                name="artifact_builds_total",
                metric_type=MetricType.COUNTER,
                description="Artifacts built",
                labels=("horizon",),
            ),
            MetricDefinition(
                name="detector_candidates",
                metric_type=MetricType.GAUGE,
                description="Candidate cards produced per detector run",
                labels=("detector",),
            ),
            MetricDefinition(
                name="detector_duration_ms",
                metric_type=MetricType.TIMING,
                description="Detector wall time in milliseconds",
                labels=("detector",),
            ),
            MetricDefinition(
                name="detector_failures_total",
                metric_type=MetricType.COUNTER,
                description="Detectors that raised and contributed zero cards",
                labels=("detector",),
            ),
            MetricDefinition(
                name="cards_rejected_total",
                metric_type=MetricType.COUNTER,
                description="Candidate cards dropped by the validation gate",
                labels=("kind",),
            ),
        ]
        for definition in defaults:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        self._definitions[definition.name] = definition
        self._series(definition.name)

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None,
        timestamp: Optional[datetime] = None,
    ):
        point = MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=timestamp or datetime.now(timezone.utc),
            labels=tuple(sorted(labels.items())) if labels else (),
        )
        self._series(metric_name).append(point)

    def _series(self, metric_name: str) -> Deque[MetricPoint]:
        if metric_name not in self._metrics:
            self._metrics[metric_name] = deque(maxlen=self._max_points)
        return self._metrics[metric_name]

    def get_metric(self, metric_name: str) -> List[MetricPoint]:
        return list(self._metrics.get(metric_name, []))

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        points = self._metrics.get(metric_name, [])
        return points[-1] if points else None

    def definitions(self) -> List[MetricDefinition]:
        return list(self._definitions.values())

    def compute_aggregates(self, metric_name: str) -> Dict[str, float]:
        values = [p.value for p in self._metrics.get(metric_name, [])]
        if not values:
            return {}
        return {
            'count': len(values),
            'sum': sum(values),
            'min': min(values),
            'max': max(values),
            'avg': sum(values) / len(values),
        }


# =============================================================================
# OBSERVABILITY ENGINE
# =============================================================================

@dataclass
class ObservabilityConfig:
    enable_metrics: bool = True
    max_entries_per_layer: int = 10_000
    max_points_per_metric: int = 10_000


class ObservabilityEngine:
    """
    Central audit and metrics sink for the insight engine.

    BOUNDARY ENFORCEMENT:
    - ONLY observes, never modifies
    - Provides read-only access to collected data
    """

    LAYERS = ('engine', 'detectors', 'validation')

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()
        self._collectors: Dict[str, LogCollector] = {
            name: LogCollector(name, self._config.max_entries_per_layer) for name in self.LAYERS
        }
        self._metrics = MetricsCollector(self._config.max_points_per_metric) if self._config.enable_metrics else None
        self._sequence = 0

    def collect_audit(self, entry: AuditLogEntry):
        collector = self._collectors.get(entry.layer)
        if collector:
            collector.collect(entry)

    def log_audit(
        self,
        action: str,
        event_type: AuditEventType = AuditEventType.SYSTEM,
        entity_id: Optional[str] = None,
        outcome: str = "success",
        details: str = "",
        layer: str = "engine",
        timestamp: Optional[datetime] = None,
    ) -> AuditLogEntry:
        """Record an audit entry built from the given fields."""
        self._sequence += 1
        stamp = timestamp or datetime.now(timezone.utc)
        digest = hashlib.sha256(
            f"{layer}_{action}|{entity_id}|{self._sequence}|{format_timestamp(stamp)}".encode()
        ).hexdigest()[:16]

        entry = AuditLogEntry(
            entry_id=f"audit_{digest}",
            event_type=event_type,
            timestamp=stamp,
            layer=layer,
            action=action,
            entity_id=entity_id,
            metadata=(("outcome", outcome), ("details", details)),
        )
        self.collect_audit(entry)
        return entry

    def log_error(self, error: Error, layer: str, event_type: AuditEventType = AuditEventType.ERROR,
                  entity_id: Optional[str] = None) -> AuditLogEntry:
        """Record an Error value with its context flattened into the details."""
        context = ", ".join(f"{k}={v}" for k, v in error.context)
        details = f"{error.message} ({context})" if context else error.message
        return self.log_audit(
            action=error.code.name.lower(),
            event_type=event_type,
            entity_id=entity_id,
            outcome="failure",
            details=details,
            layer=layer,
            timestamp=error.timestamp,
        )

    def collect_metric(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None,
        timestamp: Optional[datetime] = None,
    ):
        if self._metrics:
            self._metrics.record(metric_name, value, labels, timestamp)

    def get_unified_log(self, layers: Optional[List[str]] = None) -> List[AuditLogEntry]:
        target_layers = layers or list(self._collectors.keys())
        entries: List[AuditLogEntry] = []
        for name in target_layers:
            collector = self._collectors.get(name)
            if collector:
                entries.extend(collector.get_entries())
        entries.sort(key=lambda e: e.timestamp)
        return entries

    def get_layer_log(self, layer_name: str,
                      event_type: Optional[AuditEventType] = None) -> List[AuditLogEntry]:
        collector = self._collectors.get(layer_name)
        if not collector:
            return []
        return collector.get_entries(event_type)

    def get_metrics(self) -> Optional[MetricsCollector]:
        return self._metrics

    def _metric_aggregates(self) -> Dict[str, Dict[str, float]]:
        if not self._metrics:
            return {}
        aggregates = {}
        for definition in self._metrics.definitions():
            values = self._metrics.compute_aggregates(definition.name)
            if values:
                aggregates[definition.name] = values
        return aggregates

    def generate_audit_report(self) -> Dict:
        """Entry counts by layer and event type, plus aggregates per metric series."""
        entries = self.get_unified_log()
        by_layer: Dict[str, int] = {}
        by_type: Dict[str, int] = {}
        for entry in entries:
            by_layer[entry.layer] = by_layer.get(entry.layer, 0) + 1
            by_type[entry.event_type.value] = by_type.get(entry.event_type.value, 0) + 1

        return {
            'total_entries': len(entries),
            'by_layer': by_layer,
            'by_event_type': by_type,
            'time_range': {
                'start': format_timestamp(entries[0].timestamp) if entries else None,
                'end': format_timestamp(entries[-1].timestamp) if entries else None,
            },
            'metrics': self._metric_aggregates(),
        }
