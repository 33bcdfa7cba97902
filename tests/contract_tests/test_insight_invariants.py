"""
Property Tests for Insight Engine Contracts

Generated reflection snapshots exercise the rules every detector and the
builder must hold regardless of input: determinism, evidence provenance,
ordering, and a gate that never raises.
"""

import pytest
from datetime import datetime, timedelta, timezone
from hypothesis import given, settings, strategies as st
from hypothesis.strategies import composite

from insight_engine.contracts.artifact import Horizon
from insight_engine.contracts.reflection import InsightWindow, Reflection
from insight_engine.core.distribution import classify
from insight_engine.core.streak_coach import coach
from insight_engine.core.topic_drift import drift_topics
from insight_engine.core.topology import jaccard
from insight_engine.engine import build
from insight_engine.validation import validate_detailed

NOW = datetime(2026, 1, 29, 12, 0, tzinfo=timezone.utc)

VOCABULARY = [
    "budget", "savings", "friend", "family", "project", "deadline", "sleep",
    "workout", "focus", "garden", "river", "walk", "coffee", "morning", "quiet",
]

# =============================================================================
# STRATEGIES (Generators)
# =============================================================================

@composite
def reflections(draw, max_size=30):
    """Snapshots with unique ids inside the last 60 days, some soft-deleted."""
    size = draw(st.integers(min_value=0, max_value=max_size))
    items = []
    for i in range(size):
        minutes_ago = draw(st.integers(min_value=0, max_value=60 * 24 * 60))
        created_at = NOW - timedelta(minutes=minutes_ago)
        words = draw(st.lists(st.sampled_from(VOCABULARY), min_size=1, max_size=8))
        deleted = draw(st.booleans()) and draw(st.booleans())
        items.append(Reflection(
            id=f"r{i}",
            created_at=created_at,
            text=" ".join(words),
            deleted_at=created_at + timedelta(hours=1) if deleted else None,
        ))
    return items


token_sets = st.frozensets(st.sampled_from(VOCABULARY), max_size=8)


def live_ids(items, window):
    return {r.id for r in items if r.deleted_at is None and window.contains(r.created_at)}

# =============================================================================
# PROPERTIES
# =============================================================================

class TestSimilarityProperties:

    @given(token_sets, token_sets)
    def test_jaccard_is_symmetric_and_bounded(self, a, b):
        score = jaccard(a, b)
        assert score == jaccard(b, a)
        assert 0.0 <= score <= 1.0

    @given(token_sets)
    def test_jaccard_of_a_set_with_itself(self, a):
        assert jaccard(a, a) == (1.0 if a else 0.0)


class TestDetectorProperties:

    @settings(max_examples=50, deadline=None)
    @given(reflections())
    def test_topic_buckets_are_ordered_and_capped(self, items):
        buckets = drift_topics(items, NOW)
        ranks = {"rising": 0, "stable": 1, "fading": 2}

        assert len(buckets) <= 5
        assert [ranks[b.trend.value] for b in buckets] == sorted(ranks[b.trend.value] for b in buckets)
        assert all(b.count > 0 for b in buckets)

    @settings(max_examples=50, deadline=None)
    @given(reflections(max_size=4))
    def test_streak_coach_needs_five_entries(self, items):
        assert coach(items, NOW) == []

    @settings(max_examples=50, deadline=None)
    @given(reflections(), st.sampled_from([7, 30, 90]))
    def test_daily_counts_sum_to_total(self, items, window_days):
        result = classify(items, window_days, NOW)

        assert sum(d.count for d in result.daily_counts) == result.total_entries
        assert result.total_entries <= len([r for r in items if r.deleted_at is None])
        assert list(result.daily_counts) == sorted(result.daily_counts, key=lambda d: d.date)


class TestGateProperties:

    @given(st.one_of(
        st.none(), st.integers(), st.text(), st.lists(st.integers()),
        st.dictionaries(st.text(), st.text()),
    ))
    def test_gate_never_raises(self, candidate):
        assert not validate_detailed(candidate).ok


class TestBuildProperties:

    @settings(max_examples=30, deadline=None)
    @given(reflections(), st.sampled_from(list(Horizon)))
    def test_build_is_idempotent(self, items, horizon):
        window = InsightWindow.trailing(30, NOW)
        first = build(items, window, NOW, horizon)
        second = build(items, window, NOW, horizon)
        assert first.to_dict() == second.to_dict()

    @settings(max_examples=30, deadline=None)
    @given(reflections(), st.sampled_from(list(Horizon)))
    def test_evidence_only_cites_live_entries_in_window(self, items, horizon):
        window = InsightWindow.trailing(30, NOW)

        artifact = build(items, window, NOW, horizon)

        allowed = live_ids(items, window)
        cited = {e.entry_id for card in artifact.cards for e in card.evidence}
        assert cited <= allowed
        assert artifact.debug.failed_detectors == ()
