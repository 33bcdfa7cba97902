"""
Observability Tests
===================

The audit and metrics layer only records; it never alters engine output.
"""

import pytest
from datetime import datetime, timedelta, timezone

from insight_engine.contracts.base import Error, ErrorCode
from insight_engine.contracts.events import AuditEventType
from insight_engine.observability import (
    LogCollector, MetricDefinition, MetricType, ObservabilityConfig, ObservabilityEngine,
)

NOW = datetime(2026, 1, 29, 12, 0, tzinfo=timezone.utc)


class TestAuditLog:

    def test_entries_land_in_their_layer(self):
        observability = ObservabilityEngine()

        observability.log_audit("build_artifact", AuditEventType.BUILD, entity_id="timeline", timestamp=NOW)
        observability.log_audit("tone_warning", AuditEventType.TONE, layer="validation", timestamp=NOW)

        assert len(observability.get_layer_log("engine")) == 1
        assert len(observability.get_layer_log("validation", AuditEventType.TONE)) == 1
        assert observability.get_layer_log("detectors") == []

    def test_unknown_layer_is_ignored(self):
        observability = ObservabilityEngine()
        observability.log_audit("noop", layer="elsewhere", timestamp=NOW)
        assert observability.get_unified_log() == []
        assert observability.get_layer_log("elsewhere") == []

    def test_entry_ids_are_unique_for_repeated_actions(self):
        observability = ObservabilityEngine()
        first = observability.log_audit("build_artifact", timestamp=NOW)
        second = observability.log_audit("build_artifact", timestamp=NOW)
        assert first.entry_id != second.entry_id
        assert first.entry_id.startswith("audit_")

    def test_log_error_flattens_context(self):
        observability = ObservabilityEngine()
        error = (
            Error(ErrorCode.UNKNOWN_EVIDENCE_ENTRY, "evidence[0] references an unknown entry", NOW)
            .with_context("entry_id", "ghost")
        )

        entry = observability.log_error(error, layer="validation", event_type=AuditEventType.REJECTION)

        assert entry.action == "unknown_evidence_entry"
        assert entry.metadata_value("outcome") == "failure"
        assert entry.metadata_value("details") == "evidence[0] references an unknown entry (entry_id=ghost)"
        assert entry.timestamp == NOW

    def test_unified_log_is_time_ordered(self):
        observability = ObservabilityEngine()
        observability.log_audit("later", timestamp=NOW + timedelta(minutes=5))
        observability.log_audit("earlier", layer="detectors", timestamp=NOW)

        assert [e.action for e in observability.get_unified_log()] == ["earlier", "later"]

    def test_retention_drops_oldest(self):
        collector = LogCollector("engine", max_entries=2)
        observability = ObservabilityEngine(ObservabilityConfig(max_entries_per_layer=2))
        for i in range(3):
            collector.collect(observability.log_audit(f"a{i}", timestamp=NOW))

        assert [e.action for e in collector.get_entries()] == ["a1", "a2"]
        assert collector.entry_count == 2
        assert [e.action for e in observability.get_layer_log("engine")] == ["a1", "a2"]

    def test_audit_report(self):
        observability = ObservabilityEngine()
        observability.log_audit("build_artifact", AuditEventType.BUILD, timestamp=NOW)
        observability.log_audit("tone_warning", AuditEventType.TONE, layer="validation",
                                timestamp=NOW + timedelta(seconds=1))
        observability.collect_metric("artifact_builds_total", 1, {"horizon": "summary"}, NOW)

        report = observability.generate_audit_report()

        assert report['total_entries'] == 2
        assert report['by_layer'] == {'engine': 1, 'validation': 1}
        assert report['by_event_type'] == {'build': 1, 'tone': 1}
        assert report['time_range']['start'] == "2026-01-29T12:00:00Z"
        assert report['metrics'] == {
            'artifact_builds_total': {'count': 1, 'sum': 1, 'min': 1, 'max': 1, 'avg': 1.0},
        }

    def test_entry_to_dict(self):
        entry = ObservabilityEngine().log_audit("build_artifact", entity_id="summary", timestamp=NOW)
        data = entry.to_dict()
        assert data['layer'] == "engine"
        assert data['entityId'] == "summary"
        assert data['metadata'] == {'outcome': 'success', 'details': ''}


class TestMetrics:

    def test_default_metrics_registered(self):
        metrics = ObservabilityEngine().get_metrics()
        names = {d.name for d in metrics.definitions()}
        assert {"artifact_builds_total", "detector_candidates", "detector_failures_total"} <= names

    def test_aggregates(self):
        observability = ObservabilityEngine()
        for value in (1, 2, 3):
            observability.collect_metric("detector_candidates", value, {"detector": "link_clusters"}, NOW)

        aggregates = observability.get_metrics().compute_aggregates("detector_candidates")

        assert aggregates == {'count': 3, 'sum': 6, 'min': 1, 'max': 3, 'avg': 2.0}

    def test_custom_metric(self):
        metrics = ObservabilityEngine().get_metrics()
        metrics.register_metric(MetricDefinition("api_requests_total", MetricType.COUNTER, "Requests"))
        metrics.record("api_requests_total", 1, timestamp=NOW)
        assert metrics.get_latest("api_requests_total").value == 1

    def test_series_retention_drops_oldest(self):
        observability = ObservabilityEngine(ObservabilityConfig(max_points_per_metric=3))
        for value in range(5):
            observability.collect_metric("detector_candidates", value, timestamp=NOW)

        metrics = observability.get_metrics()
        assert [p.value for p in metrics.get_metric("detector_candidates")] == [2, 3, 4]
        assert metrics.get_latest("detector_candidates").value == 4
        assert metrics.compute_aggregates("detector_candidates")["count"] == 3

    def test_metrics_can_be_disabled(self):
        observability = ObservabilityEngine(ObservabilityConfig(enable_metrics=False))
        observability.collect_metric("detector_candidates", 1)
        assert observability.get_metrics() is None

    def test_unknown_metric_has_no_aggregates(self):
        assert ObservabilityEngine().get_metrics().compute_aggregates("missing") == {}
