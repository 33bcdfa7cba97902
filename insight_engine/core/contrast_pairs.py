"""
Contrast Pair Generator

Pairs a rising topic with a fading topic from Topic Drift output. The only
detector that consumes another detector's result.
"""

from __future__ import annotations
from typing import List, Optional, Sequence

from ..config import ContrastPairConfig
from ..contracts.cards import ContrastPair, TopicDriftBucket, TopicTrend
from .text import capitalize


def contrast_summary(rising_topic: str, fading_topic: str) -> str:
    return (
        f"{capitalize(rising_topic)} is rising while "
        f"{capitalize(fading_topic)} is fading over the last month."
    )


def contrast_pairs(
    buckets: Sequence[TopicDriftBucket],
    config: Optional[ContrastPairConfig] = None,
) -> List[ContrastPair]:
    config = config or ContrastPairConfig()

    eligible = [b for b in buckets if b.count >= config.min_count]
    rising = [b for b in eligible if b.trend is TopicTrend.RISING]
    fading = [b for b in eligible if b.trend is TopicTrend.FADING]

    if not rising or not fading:
        return []

    pairs = [
        ContrastPair(
            topic_a=up.topic,
            topic_b=down.topic,
            trend_a=TopicTrend.RISING,
            trend_b=TopicTrend.FADING,
            score=up.count + down.count,
            summary=contrast_summary(up.topic, down.topic),
        )
        for up in rising
        for down in fading
    ]

    pairs.sort(key=lambda p: p.score, reverse=True)
    return pairs[:config.max_pairs]
