"""
Insight Artifact Builder Tests
==============================

Verifies the orchestration contract:
1. Cards arrive in fixed detector order per horizon
2. A failing detector contributes zero cards and is audited
3. Gate rejections are dropped and audited, never surfaced
4. Identical inputs produce identical artifacts
"""

import logging
import pytest
from datetime import datetime, timedelta, timezone

import insight_engine.engine as engine_module
from insight_engine.contracts.artifact import Horizon
from insight_engine.contracts.base import ErrorCode
from insight_engine.contracts.cards import (
    InsightCard, InsightEvidence, InsightKind, LinkClusterData,
)
from insight_engine.contracts.events import AuditEventType
from insight_engine.contracts.reflection import InsightWindow, Reflection
from insight_engine.engine import InsightArtifactBuilder, InsightEngine, build
from insight_engine.observability import ObservabilityConfig, ObservabilityEngine
from insight_engine.temporal.clock import LogicalClock

NOW = datetime(2026, 1, 29, 12, 0, tzinfo=timezone.utc)


def at(day: int, hour: int = 10) -> datetime:
    return datetime(2026, 1, day, hour, 0, tzinfo=timezone.utc)


def mixed_month():
    """
    Ten entries: fading friend mentions early in the month, a rising run of
    budget entries with a four-entry day on Jan 25, and one quiet walk.
    """
    reflections = [
        Reflection(id="f1", created_at=at(3), text="Dinner with a friend downtown"),
        Reflection(id="f2", created_at=at(5), text="Coffee with a friend nearby"),
        Reflection(id="f3", created_at=at(7), text="Long call with a friend"),
        Reflection(id="b1", created_at=at(20), text="Budget plan for monthly savings number one"),
        Reflection(id="b2", created_at=at(22), text="Budget plan for monthly savings number two"),
    ]
    for i in range(4):
        reflections.append(Reflection(
            id=f"s{i}", created_at=at(25, 9 + i), text="Budget plan for monthly savings number three",
        ))
    reflections.append(Reflection(id="w1", created_at=at(27), text="Quiet walk by the river"))
    return reflections


def fake_card(card_id: str, entry_id: str, title: str = "Related reflections") -> InsightCard:
    return InsightCard(
        id=card_id,
        kind=InsightKind.LINK_CLUSTER,
        title=title,
        explanation="2 reflections connected by budget.",
        evidence=(InsightEvidence(entry_id=entry_id, timestamp=NOW, preview="Budget"),),
        computed_at=NOW,
        data=LinkClusterData(cluster_size=2, top_tokens=("budget",), avg_similarity=0.5),
    )


class TestTimelineHorizon:

    def test_fixed_detector_order(self):
        window = InsightWindow.trailing(30, NOW)

        artifact = build(mixed_month(), window, NOW)

        assert [c.kind for c in artifact.cards] == [
            InsightKind.TIMELINE_EVENT,
            InsightKind.TIMELINE_SPIKE,
            InsightKind.LINK_CLUSTER,
            InsightKind.TOPIC_CLUSTER,
            InsightKind.TOPIC_CLUSTER,
            InsightKind.CONTRAST_PAIR,
        ]
        assert artifact.cards[3].title == "Money"
        assert artifact.cards[4].title == "Relationships"
        assert artifact.cards[5].title == "Money vs Relationships"

    def test_debug_counts(self):
        window = InsightWindow.trailing(30, NOW)

        debug = build(mixed_month(), window, NOW).debug

        assert debug.reflection_count == 10
        assert debug.window_reflection_count == 10
        assert dict(debug.candidate_counts) == {
            'timeline_events': 1,
            'timeline_spikes': 1,
            'link_clusters': 1,
            'topic_drift': 2,
            'contrast_pairs': 1,
        }
        assert debug.rejected_count == 0
        assert debug.failed_detectors == ()

    def test_window_filters_input(self):
        window = InsightWindow(start=at(19), end=NOW)

        artifact = build(mixed_month(), window, NOW)

        assert artifact.debug.reflection_count == 10
        assert artifact.debug.window_reflection_count == 7
        cited = {e.entry_id for c in artifact.cards for e in c.evidence}
        assert not cited & {"f1", "f2", "f3"}

    def test_deleted_reflections_never_cited(self):
        reflections = mixed_month()
        reflections[3] = Reflection(
            id="b1", created_at=at(20), text=reflections[3].text, deleted_at=at(21),
        )

        artifact = build(reflections, InsightWindow.trailing(30, NOW), NOW)

        cited = {e.entry_id for c in artifact.cards for e in c.evidence}
        assert "b1" not in cited
        assert artifact.debug.window_reflection_count == 9

    def test_build_is_deterministic(self):
        window = InsightWindow.trailing(30, NOW)
        first = build(mixed_month(), window, NOW).to_dict()
        second = build(list(reversed(mixed_month())), window, NOW).to_dict()
        assert first == second

    def test_empty_input_gives_empty_artifact(self):
        artifact = build([], InsightWindow.trailing(30, NOW), NOW)
        assert artifact.cards == ()
        assert artifact.debug.window_reflection_count == 0


class TestFailureBoundary:

    def test_failing_detector_contributes_zero_cards(self, monkeypatch, caplog):
        def boom(*args, **kwargs):
            raise RuntimeError("spike detector exploded")

        monkeypatch.setattr(engine_module, "compute_spikes", boom)
        observability = ObservabilityEngine()

        with caplog.at_level(logging.WARNING, logger="insight_engine.engine"):
            artifact = build(mixed_month(), InsightWindow.trailing(30, NOW), NOW, observability=observability)

        kinds = [c.kind for c in artifact.cards]
        assert InsightKind.TIMELINE_SPIKE not in kinds
        assert InsightKind.TIMELINE_EVENT in kinds
        assert InsightKind.CONTRAST_PAIR in kinds
        assert artifact.debug.failed_detectors == ("timeline_spikes",)
        assert "timeline_spikes" in caplog.text

        failures = observability.get_layer_log("detectors", AuditEventType.ERROR)
        assert len(failures) == 1
        assert failures[0].action == ErrorCode.UNEXPECTED_COMPUTATION_FAILURE.name.lower()
        assert "spike detector exploded" in failures[0].metadata_value("details")

    def test_contrast_pairs_empty_when_topic_drift_fails(self, monkeypatch):
        def boom(*args, **kwargs):
            raise ValueError("no topics")

        monkeypatch.setattr(engine_module, "drift_topics", boom)

        artifact = build(mixed_month(), InsightWindow.trailing(30, NOW), NOW)

        kinds = {c.kind for c in artifact.cards}
        assert InsightKind.TOPIC_CLUSTER not in kinds
        assert InsightKind.CONTRAST_PAIR not in kinds
        assert artifact.debug.failed_detectors == ("topic_drift",)


class TestGate:

    def test_rejected_cards_are_dropped_and_audited(self, monkeypatch):
        monkeypatch.setattr(
            engine_module, "cluster",
            lambda *args, **kwargs: [fake_card("ok", "b1"), fake_card("ghost", "not-in-window")],
        )
        observability = ObservabilityEngine()

        artifact = build(mixed_month(), InsightWindow.trailing(30, NOW), NOW, observability=observability)

        ids = [c.id for c in artifact.cards]
        assert "ok" in ids
        assert "ghost" not in ids
        assert artifact.debug.rejected_count == 1

        rejections = observability.get_layer_log("validation", AuditEventType.REJECTION)
        assert [r.entity_id for r in rejections] == ["ghost"]
        assert rejections[0].action == ErrorCode.UNKNOWN_EVIDENCE_ENTRY.name.lower()

    def test_tone_warning_never_blocks(self, monkeypatch, caplog):
        monkeypatch.setattr(
            engine_module, "cluster",
            lambda *args, **kwargs: [fake_card("loud", "b1", title="Your performance improved")],
        )
        observability = ObservabilityEngine()

        with caplog.at_level(logging.WARNING, logger="insight_engine.engine"):
            artifact = build(mixed_month(), InsightWindow.trailing(30, NOW), NOW, observability=observability)

        assert "loud" in [c.id for c in artifact.cards]
        assert "evaluative wording" in caplog.text
        tone = observability.get_layer_log("validation", AuditEventType.TONE)
        assert tone[0].metadata_value("details") == "improved, performance"


class TestOtherHorizons:

    def test_summary_horizon_order(self):
        reflections = [
            Reflection(id=f"m{d}", created_at=at(d, 9), text=f"Morning pages {d}") for d in range(16, 30)
        ]

        artifact = build(reflections, InsightWindow.trailing(30, NOW), NOW, Horizon.SUMMARY)

        kinds = [c.kind for c in artifact.cards]
        assert kinds[0] is InsightKind.ALWAYS_ON_SUMMARY
        assert kinds[-1] is InsightKind.STREAK_COACH
        assert set(kinds) == {InsightKind.ALWAYS_ON_SUMMARY, InsightKind.STREAK_COACH}
        assert [name for name, _ in artifact.debug.candidate_counts] == ['always_on_summary', 'streak_coach']

    def test_distributions_horizon(self):
        artifact = build(mixed_month(), InsightWindow.trailing(30, NOW), NOW, Horizon.DISTRIBUTIONS)

        assert len(artifact.cards) == 1
        card = artifact.cards[0]
        assert card.kind is InsightKind.DISTRIBUTION
        assert card.data.result.window_days == 30
        assert card.data.result.total_entries == 10
        assert card.evidence[0].entry_id == "s0"

    def test_distributions_horizon_with_no_entries(self):
        artifact = build([], InsightWindow.trailing(30, NOW), NOW, Horizon.DISTRIBUTIONS)
        assert artifact.cards == ()


class TestObservabilityWiring:

    def test_build_is_audited_and_metered(self):
        observability = ObservabilityEngine()
        builder = InsightArtifactBuilder(observability=observability)

        builder.build(mixed_month(), InsightWindow.trailing(30, NOW), NOW)

        builds = observability.get_layer_log("engine", AuditEventType.BUILD)
        assert len(builds) == 1
        assert builds[0].entity_id == "timeline"
        metrics = observability.get_metrics()
        assert len(metrics.get_metric("detector_candidates")) == 5
        assert metrics.get_latest("artifact_builds_total").labels == (("horizon", "timeline"),)

    def test_output_does_not_depend_on_observability(self):
        window = InsightWindow.trailing(30, NOW)
        plain = build(mixed_month(), window, NOW).to_dict()
        observed = build(mixed_month(), window, NOW, observability=ObservabilityEngine()).to_dict()
        assert plain == observed


class TestInsightEngine:

    def test_window_in_days_uses_clock(self):
        engine = InsightEngine(clock=LogicalClock.replay(NOW))

        artifact = engine.build_artifact(mixed_month(), 30)

        assert artifact.created_at == NOW
        assert artifact.window.start == NOW - timedelta(days=30)

    def test_topics(self):
        buckets, pairs = InsightEngine().topics(mixed_month(), NOW)
        assert [b.topic for b in buckets] == ["money", "relationships"]
        assert [(p.topic_a, p.topic_b) for p in pairs] == [("money", "relationships")]

    def test_distribution(self):
        result = InsightEngine().distribution(mixed_month(), 30, NOW)
        assert result.total_entries == 10
        assert result.top_days[0].count == 4

    def test_distributions_cover_every_window(self):
        results = InsightEngine().distributions(mixed_month(), NOW)
        assert [r.window_days for r in results] == [7, 30, 90, 365]

    def test_long_lived_engine_stays_bounded(self):
        observability = ObservabilityEngine(ObservabilityConfig(max_entries_per_layer=5, max_points_per_metric=5))
        clock = LogicalClock.live(max_recorded=5)
        engine = InsightEngine(observability=observability, clock=clock)

        for _ in range(50):
            engine.build_artifact(mixed_month(), 90)

        metrics = observability.get_metrics()
        assert all(len(metrics.get_metric(d.name)) <= 5 for d in metrics.definitions())
        assert len(observability.get_layer_log("engine")) == 5
        assert len(clock.recorded_ticks()) == 5
        assert clock.tick_count() == 50

    def test_stale_requests_are_detectable(self):
        engine = InsightEngine()
        first = engine.begin_request(mixed_month())
        assert engine.is_current(first)

        second = engine.begin_request(mixed_month()[:5])
        assert not engine.is_current(first)
        assert engine.is_current(second)
