"""
Card Adapters

Convert detector-native shapes into InsightCards. Each adapter keeps the
original shape as the card's payload so nothing is lost in conversion.
"""

from __future__ import annotations
from datetime import datetime
from typing import Sequence

from .contracts.base import stable_id
from .contracts.cards import (
    ContrastPair, ContrastPairData, DistributionClass, DistributionData, DistributionResult,
    InsightCard, InsightEvidence, InsightKind, TimelineEvent, TimelineEventData,
    TopicDriftBucket, TopicDriftData,
)
from .contracts.reflection import Reflection
from .core.text import capitalize, make_preview
from .temporal.calendar import LocalCalendar


DISTRIBUTION_HEADLINES = {
    DistributionClass.NORMAL: "Your activity is evenly distributed over time",
    DistributionClass.LOGNORMAL: "Your activity clusters into focused periods",
    DistributionClass.POWERLAW: "Your activity concentrates in intense bursts",
    DistributionClass.MIXED: "Your activity does not follow a single shape",
}


def topic_drift_to_card(bucket: TopicDriftBucket, computed_at: datetime, lookback_days: int = 28) -> InsightCard:
    explanation = (
        f"{bucket.count} mentions in total, {bucket.older_count} then {bucket.newer_count} "
        f"across the last {lookback_days} days. "
        f"Trend: {capitalize(bucket.trend.value)}, Strength: {capitalize(bucket.strength_label.value)} Drift"
    )
    return InsightCard(
        id=stable_id("topic_drift", bucket.topic, bucket.count, bucket.older_count, bucket.newer_count),
        kind=InsightKind.TOPIC_CLUSTER,
        title=capitalize(bucket.topic),
        explanation=explanation,
        evidence=(),
        computed_at=computed_at,
        data=TopicDriftData(bucket=bucket),
    )


def contrast_pair_to_card(pair: ContrastPair, computed_at: datetime) -> InsightCard:
    return InsightCard(
        id=stable_id("contrast_pair", pair.topic_a, pair.topic_b, pair.score),
        kind=InsightKind.CONTRAST_PAIR,
        title=f"{capitalize(pair.topic_a)} vs {capitalize(pair.topic_b)}",
        explanation=pair.summary,
        evidence=(),
        computed_at=computed_at,
        data=ContrastPairData(pair=pair),
    )


def event_to_card(event: TimelineEvent, computed_at: datetime) -> InsightCard:
    bullets = "\n".join(f"• {e.preview}" for e in event.evidence)
    explanation = (
        f"{event.claim}\n\nEvidence:\n{bullets}\n\n"
        f"Contrast: {event.contrast}\n\nConfidence: {event.confidence}"
    )
    return InsightCard(
        id=event.id,
        kind=InsightKind.TIMELINE_EVENT,
        title=event.claim,
        explanation=explanation,
        evidence=event.evidence,
        computed_at=computed_at,
        data=TimelineEventData(event=event),
    )


def distribution_to_card(
    result: DistributionResult,
    reflections: Sequence[Reflection],
    computed_at: datetime,
    calendar: LocalCalendar,
) -> InsightCard:
    """Evidence is the first reflection of each top day."""
    by_day = calendar.group_by_day(reflections)
    evidence = []
    for top in result.top_days:
        items = by_day.get(top.date)
        if not items:
            continue
        first = min(items, key=lambda r: r.created_at)
        evidence.append(InsightEvidence(
            entry_id=first.id,
            timestamp=first.created_at,
            preview=make_preview(first.text, 50),
        ))

    return InsightCard(
        id=stable_id("distribution", result.window_days, result.classification.value, result.total_entries),
        kind=InsightKind.DISTRIBUTION,
        title=DISTRIBUTION_HEADLINES[result.classification],
        explanation=result.explanation,
        evidence=tuple(evidence),
        computed_at=computed_at,
        data=DistributionData(result=result),
    )
