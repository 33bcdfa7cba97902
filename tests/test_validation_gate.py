"""
Validation Gate Tests
=====================

The gate is a total predicate: it never raises, and every rejection
carries an explicit Error reason for the audit log.
"""

import pytest
from dataclasses import replace
from datetime import date, datetime, timezone

from insight_engine.config import ValidationConfig
from insight_engine.contracts.base import ErrorCode
from insight_engine.adapters import event_to_card
from insight_engine.contracts.cards import (
    InsightCard, InsightEvidence, InsightKind, LinkClusterData, StrengthLabel,
    TimelineEvent, TimelineEventType, TimelineSpikeData, TopicDriftBucket, TopicDriftData, TopicTrend,
)
from insight_engine.validation import (
    check_insight_tone, filter_valid, validate, validate_detailed,
)

NOW = datetime(2026, 1, 29, 12, 0, tzinfo=timezone.utc)


def make_evidence(entry_id: str = "r1", preview: str = "Long day at the desk") -> InsightEvidence:
    return InsightEvidence(entry_id=entry_id, timestamp=NOW, preview=preview)


def make_spike_card(**overrides) -> InsightCard:
    card = InsightCard(
        id="timeline_spike_abc",
        kind=InsightKind.TIMELINE_SPIKE,
        title="Writing spike on January 29",
        explanation="You wrote 4 entries on this day.",
        evidence=(make_evidence(),),
        computed_at=NOW,
        data=TimelineSpikeData(date=date(2026, 1, 29), count=4, median_count=1.0, multiplier=4.0),
    )
    return replace(card, **overrides)


def make_topic_card() -> InsightCard:
    bucket = TopicDriftBucket(
        topic="work", count=3, sample_titles=("Deadline",),
        trend=TopicTrend.RISING, strength_label=StrengthLabel.HIGH,
    )
    return InsightCard(
        id="topic_drift_abc",
        kind=InsightKind.TOPIC_CLUSTER,
        title="Work",
        explanation="3 mentions in total.",
        evidence=(),
        computed_at=NOW,
        data=TopicDriftData(bucket=bucket),
    )


def make_event_card(confidence: str = "Pattern observed across 6 weeks.") -> InsightCard:
    event = TimelineEvent(
        id="pace_shift_abc",
        type=TimelineEventType.PACE_SHIFT,
        date=NOW,
        claim="After this week, your writing frequency doubled.",
        evidence=(make_evidence("r1"), make_evidence("r2", "I should sleep earlier")),
        contrast="A steady cadence was not maintained.",
        confidence=confidence,
    )
    return event_to_card(event, NOW)


def codes(result):
    return {reason.code for reason in result.reasons}


class TestValidate:

    def test_well_formed_card_passes(self):
        assert validate(make_spike_card())
        assert validate(make_spike_card(), {"r1"})

    @pytest.mark.parametrize("candidate", [None, 42, "card", {"id": "x"}, [make_spike_card()]])
    def test_non_cards_are_rejected_without_raising(self, candidate):
        result = validate_detailed(candidate)
        assert not result.ok
        assert codes(result) == {ErrorCode.MALFORMED_CANDIDATE}

    @pytest.mark.parametrize("field_name", ["id", "title", "explanation"])
    def test_blank_required_text(self, field_name):
        result = validate_detailed(make_spike_card(**{field_name: "   "}))
        assert not result.ok
        assert ErrorCode.MISSING_FIELD in codes(result)

    def test_evidence_required_for_spike(self):
        result = validate_detailed(make_spike_card(evidence=()))
        assert codes(result) == {ErrorCode.MISSING_EVIDENCE}

    def test_topic_cards_may_have_no_evidence(self):
        assert validate(make_topic_card())

    def test_unknown_evidence_entry(self):
        card = make_spike_card(evidence=(make_evidence("ghost"),))

        assert validate(card)
        result = validate_detailed(card, {"r1", "r2"})
        assert codes(result) == {ErrorCode.UNKNOWN_EVIDENCE_ENTRY}
        assert ("entry_id", "ghost") in result.reasons[0].context

    def test_payload_must_match_kind(self):
        card = make_spike_card(data=LinkClusterData(cluster_size=2, top_tokens=(), avg_similarity=0.5))
        assert codes(validate_detailed(card)) == {ErrorCode.PAYLOAD_MISMATCH}

    def test_unknown_kind(self):
        card = make_spike_card(kind="timeline_spike")
        assert ErrorCode.UNKNOWN_KIND in codes(validate_detailed(card))

    def test_preview_length_limit(self):
        card = make_spike_card(evidence=(make_evidence(preview="x" * 201),))
        assert codes(validate_detailed(card)) == {ErrorCode.PREVIEW_TOO_LONG}
        assert validate(card, config=ValidationConfig(max_preview_length=300))

    def test_evidence_items_must_be_evidence(self):
        card = make_spike_card(evidence=({"entryId": "r1"},))
        assert codes(validate_detailed(card)) == {ErrorCode.MALFORMED_CANDIDATE}

    def test_reasons_carry_card_id(self):
        result = validate_detailed(make_spike_card(evidence=()))
        assert ("card_id", "timeline_spike_abc") in result.reasons[0].context

    def test_filter_valid_keeps_order(self):
        good, other = make_spike_card(), make_topic_card()
        bad = make_spike_card(title="")
        assert filter_valid([good, bad, other]) == [good, other]


class TestTone:

    def test_flags_whole_words(self):
        assert check_insight_tone("Your performance improved this week") == ["improved", "performance"]

    def test_ignores_partial_words(self):
        assert check_insight_tone("Targeted reading, goalposts moved") == []

    def test_clean_copy(self):
        assert check_insight_tone("You wrote 4 entries on this day.") == []


class TestWording:

    @pytest.mark.parametrize("title", [
        "You wrote 5 entries this week",
        "you had 3 entries",
        "4 entries on Monday",
        "12 reflections so far",
        "Writing activity up",
        "You wrote on 3 of 7 days",
    ])
    def test_metric_titles_are_rejected(self, title):
        result = validate_detailed(make_spike_card(title=title))
        assert codes(result) == {ErrorCode.METRIC_TITLE}

    @pytest.mark.parametrize("explanation", [
        "You should write more on weekends.",
        "Try writing in the morning.",
        "You need to slow down.",
        "Keep it up!",
    ])
    def test_prescriptive_copy_is_rejected(self, explanation):
        result = validate_detailed(make_spike_card(explanation=explanation))
        assert codes(result) == {ErrorCode.PRESCRIPTIVE_LANGUAGE}

    def test_prescriptive_title_is_rejected(self):
        result = validate_detailed(make_spike_card(title="Build a habit of evening pages"))
        assert codes(result) == {ErrorCode.PRESCRIPTIVE_LANGUAGE}
        assert ("phrases", "build a habit") in result.reasons[0].context

    def test_quoted_entry_text_is_not_engine_copy(self):
        card = make_spike_card(
            kind=InsightKind.LINK_CLUSTER,
            title="Cluster about Budget and savings",
            explanation='2 reflections around budget. Key themes: "I should save more".',
            data=LinkClusterData(cluster_size=2, top_tokens=("budget",), avg_similarity=0.5),
        )
        assert validate(card)

    def test_event_card_passes(self):
        card = make_event_card()
        # the second evidence bullet quotes entry text containing "should"
        assert "• I should sleep earlier" in card.explanation
        assert validate(card, {"r1", "r2"})

    def test_missing_contrast(self):
        card = replace(
            make_event_card(),
            explanation="Claim.\n\nEvidence:\n• one\n• two\n\nConfidence: 12 entries over 6 weeks.",
        )
        assert codes(validate_detailed(card)) == {ErrorCode.MISSING_CONTRAST}

    def test_missing_confidence(self):
        card = replace(
            make_event_card(),
            explanation="Claim.\n\nEvidence:\n• one\n• two\n\nContrast: A steady cadence was not maintained.",
        )
        assert codes(validate_detailed(card)) == {ErrorCode.MISSING_CONFIDENCE}

    def test_confidence_must_state_scope(self):
        card = make_event_card(confidence="This looks likely.")
        assert codes(validate_detailed(card)) == {ErrorCode.UNSCOPED_CONFIDENCE}

    @pytest.mark.parametrize("confidence", [
        "First entry among 10 reflections.",
        "Gap of 11 days observed.",
        "Spike detected using a 14-day window.",
        "Pattern repeated across weeks.",
    ])
    def test_scoped_confidence_variants(self, confidence):
        assert validate(make_event_card(confidence=confidence))

    def test_shape_rules_skip_other_kinds(self):
        assert validate(make_topic_card())
        assert validate(make_spike_card())
