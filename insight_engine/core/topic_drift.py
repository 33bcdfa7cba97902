"""
Topic Drift Detector

RESPONSIBILITY: Report how keyword-defined topics rise and fade across a
fixed lookback window split into two halves.
ALLOWED INPUTS: Reflection snapshot, explicit `now`
OUTPUTS: TopicDriftBucket list (closed vocabulary, at most five)

WHAT THIS MODULE MUST NOT DO:
=============================
- Infer topics from data (the vocabulary is closed)
- Use embeddings or learned models (matching is substring-only)
- Read the system clock
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import TopicDriftConfig
from ..contracts.base import ensure_utc
from ..contracts.cards import StrengthLabel, TopicDriftBucket, TopicTrend
from ..contracts.reflection import Reflection, active_reflections
from .text import title_preview


_TREND_ORDER = {TopicTrend.RISING: 0, TopicTrend.STABLE: 1, TopicTrend.FADING: 2}


@dataclass
class _TopicTally:
    older: int = 0
    newer: int = 0
    total: int = 0
    titles: List[str] = field(default_factory=list)


def matches_topic(text: str, keywords: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def determine_trend(older: int, newer: int, config: TopicDriftConfig) -> TopicTrend:
    # A topic absent from the older half is rising as soon as it appears
    if older == 0:
        return TopicTrend.RISING if newer > 0 else TopicTrend.STABLE

    ratio = newer / older
    if ratio >= config.rising_ratio:
        return TopicTrend.RISING
    if ratio <= config.fading_ratio:
        return TopicTrend.FADING
    return TopicTrend.STABLE


def determine_strength(older: int, newer: int, config: TopicDriftConfig) -> StrengthLabel:
    delta = abs(newer - older)
    if delta >= config.high_delta:
        return StrengthLabel.HIGH
    if delta == config.medium_delta:
        return StrengthLabel.MEDIUM
    return StrengthLabel.LOW


def _sort_key(bucket: TopicDriftBucket) -> Tuple[int, int]:
    delta = bucket.newer_count - bucket.older_count
    if bucket.trend is TopicTrend.STABLE:
        return (_TREND_ORDER[bucket.trend], -bucket.count)
    # Rising: largest gain first. Fading: softest fade first.
    return (_TREND_ORDER[bucket.trend], -delta)


def drift_topics(
    reflections: Sequence[Reflection],
    now: datetime,
    config: Optional[TopicDriftConfig] = None,
) -> List[TopicDriftBucket]:
    """
    Compute topic drift buckets.

    Total counts and sample titles cover every matching reflection; the
    older/newer counters only cover the lookback window:
    older = [now - lookback, now - half), newer = [now - half, now].
    """
    config = config or TopicDriftConfig()
    now = ensure_utc(now)
    entries = active_reflections(reflections)
    if not entries:
        return []

    start = now - timedelta(days=config.lookback_days)
    midpoint = now - timedelta(days=config.half_days)

    tallies: Dict[str, _TopicTally] = {topic: _TopicTally() for topic, _ in config.keywords}

    for entry in entries:
        created = entry.created_at
        is_newer = midpoint <= created <= now
        is_older = start <= created < midpoint

        for topic, keywords in config.keywords:
            if not matches_topic(entry.text, keywords):
                continue
            tally = tallies[topic]
            tally.total += 1
            if is_newer:
                tally.newer += 1
            elif is_older:
                tally.older += 1
            if len(tally.titles) < config.max_sample_titles:
                tally.titles.append(title_preview(entry.text, config.title_preview_length))

    buckets = [
        TopicDriftBucket(
            topic=topic,
            count=tally.total,
            sample_titles=tuple(tally.titles),
            trend=determine_trend(tally.older, tally.newer, config),
            strength_label=determine_strength(tally.older, tally.newer, config),
            older_count=tally.older,
            newer_count=tally.newer,
        )
        for topic, tally in tallies.items()
        if tally.total > 0
    ]

    # sorted() is stable: ties keep vocabulary order
    buckets = sorted(buckets, key=_sort_key)
    return buckets[:config.max_topics]
