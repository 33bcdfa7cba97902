"""
Insight Card Contracts

Every detector output is either an InsightCard or a detector-native shape
(TopicDriftBucket, ContrastPair, TimelineEvent, DistributionResult) that
adapters wrap into an InsightCard.

TAGGED DISPATCH:
================
`InsightCard.kind` is a closed enum and each kind has exactly one payload
type (see PAYLOAD_TYPES). The validation gate checks the pairing; nothing
downstream inspects payload fields to guess the kind.

EVIDENCE RULE:
==============
Evidence carries entry ids, timestamps and short previews only. Cards never
carry full entry bodies.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .base import format_timestamp


# =============================================================================
# ENUMS
# =============================================================================

class InsightKind(Enum):
    """Closed set of insight card kinds."""
    TIMELINE_SPIKE = "timeline_spike"
    TIMELINE_EVENT = "timeline_event"
    LINK_CLUSTER = "link_cluster"
    STREAK_COACH = "streak_coach"
    TOPIC_CLUSTER = "topic_cluster"
    CONTRAST_PAIR = "contrast_pair"
    DISTRIBUTION = "distribution"
    ALWAYS_ON_SUMMARY = "always_on_summary"


class TopicTrend(Enum):
    RISING = "rising"
    STABLE = "stable"
    FADING = "fading"


class StrengthLabel(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DistributionClass(Enum):
    """Shape classification of a daily-count series."""
    NORMAL = "normal"
    LOGNORMAL = "lognormal"
    POWERLAW = "powerlaw"
    MIXED = "mixed"


class TimelineEventType(Enum):
    FIRST_OCCURRENCE = "first_occurrence"
    LAST_OCCURRENCE = "last_occurrence"
    PACE_SHIFT = "pace_shift"
    SILENCE_AS_SIGNAL = "silence_as_signal"


class SummaryType(Enum):
    WRITING_CHANGE = "writing_change"
    CONSISTENCY = "consistency"
    WEEKLY_PATTERN = "weekly_pattern"
    ACTIVITY_SPIKE = "activity_spike"


# =============================================================================
# EVIDENCE
# =============================================================================

@dataclass(frozen=True)
class InsightEvidence:
    """Pointer from a card back to one concrete reflection."""
    entry_id: str
    timestamp: datetime
    preview: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entryId': self.entry_id,
            'timestamp': format_timestamp(self.timestamp),
            'preview': self.preview,
        }


def _evidence_dicts(evidence: Tuple[InsightEvidence, ...]) -> list:
    return [e.to_dict() for e in evidence]


# =============================================================================
# DETECTOR-NATIVE SHAPES
# =============================================================================

@dataclass(frozen=True)
class TopicDriftBucket:
    """Keyword topic with its trend across the lookback halves."""
    topic: str
    count: int
    sample_titles: Tuple[str, ...]
    trend: TopicTrend
    strength_label: StrengthLabel
    older_count: int = 0
    newer_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'topic': self.topic,
            'count': self.count,
            'sampleTitles': list(self.sample_titles),
            'trend': self.trend.value,
            'strengthLabel': self.strength_label.value,
            'olderCount': self.older_count,
            'newerCount': self.newer_count,
        }


@dataclass(frozen=True)
class ContrastPair:
    """A rising topic paired with a fading topic."""
    topic_a: str
    topic_b: str
    trend_a: TopicTrend
    trend_b: TopicTrend
    score: int
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'topicA': self.topic_a,
            'topicB': self.topic_b,
            'trendA': self.trend_a.value,
            'trendB': self.trend_b.value,
            'score': self.score,
            'summary': self.summary,
        }


@dataclass(frozen=True)
class EventContext:
    """Rendering context on either side of a timeline event."""
    date: datetime
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {'date': format_timestamp(self.date), 'description': self.description}


@dataclass(frozen=True)
class TimelineEvent:
    """
    One falsifiable claim about a moment in the timeline.

    `contrast` states what did not happen; `confidence` quantifies the
    support with counts or ratios.
    """
    id: str
    type: TimelineEventType
    date: datetime
    claim: str
    evidence: Tuple[InsightEvidence, ...]
    contrast: str
    confidence: str
    before_context: Optional[EventContext] = None
    after_context: Optional[EventContext] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'id': self.id,
            'type': self.type.value,
            'date': format_timestamp(self.date),
            'claim': self.claim,
            'evidence': _evidence_dicts(self.evidence),
            'contrast': self.contrast,
            'confidence': self.confidence,
        }
        if self.before_context:
            result['beforeContext'] = self.before_context.to_dict()
        if self.after_context:
            result['afterContext'] = self.after_context.to_dict()
        return result


@dataclass(frozen=True)
class DayCount:
    """Entry count for one local calendar day."""
    date: date
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'date': self.date.isoformat(), 'count': self.count}


@dataclass(frozen=True)
class DistributionResult:
    """Daily counts over a trailing window plus shape statistics."""
    window_days: int
    daily_counts: Tuple[DayCount, ...]
    classification: DistributionClass
    skew: float = 0.0
    concentration: float = 0.0
    variance: float = 0.0
    spike_ratio: float = 0.0
    top10_share: float = 0.0
    most_common_day_count: int = 0
    top_days: Tuple[DayCount, ...] = field(default_factory=tuple)
    total_entries: int = 0
    active_days: int = 0
    frequency_per_day: float = 0.0
    magnitude: float = 0.0
    explanation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'windowDays': self.window_days,
            'dailyCounts': [d.to_dict() for d in self.daily_counts],
            'classification': self.classification.value,
            'skew': self.skew,
            'concentration': self.concentration,
            'variance': self.variance,
            'spikeRatio': self.spike_ratio,
            'top10Share': self.top10_share,
            'mostCommonDayCount': self.most_common_day_count,
            'topDays': [d.to_dict() for d in self.top_days],
            'totalEntries': self.total_entries,
            'activeDays': self.active_days,
            'frequencyPerDay': self.frequency_per_day,
            'magnitude': self.magnitude,
            'explanation': self.explanation,
        }


# =============================================================================
# PER-KIND PAYLOADS
# =============================================================================

@dataclass(frozen=True)
class TimelineSpikeData:
    date: date
    count: int
    median_count: float
    multiplier: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date.isoformat(),
            'count': self.count,
            'medianCount': self.median_count,
            'multiplier': self.multiplier,
        }


@dataclass(frozen=True)
class TimelineEventData:
    event: TimelineEvent

    def to_dict(self) -> Dict[str, Any]:
        return {'event': self.event.to_dict()}


@dataclass(frozen=True)
class LinkClusterData:
    cluster_size: int
    top_tokens: Tuple[str, ...]
    avg_similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'clusterSize': self.cluster_size,
            'topTokens': list(self.top_tokens),
            'avgSimilarity': self.avg_similarity,
        }


@dataclass(frozen=True)
class StreakCoachData:
    best_hour: int
    best_hour_label: str
    period_label: str
    entries_at_best_hour: int
    total_entries: int
    percentage_at_best_hour: int
    current_streak: int
    longest_streak: int
    hours_until_peak: int
    framing: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bestHour': self.best_hour,
            'bestHourLabel': self.best_hour_label,
            'periodLabel': self.period_label,
            'entriesAtBestHour': self.entries_at_best_hour,
            'totalEntries': self.total_entries,
            'percentageAtBestHour': self.percentage_at_best_hour,
            'currentStreak': self.current_streak,
            'longestStreak': self.longest_streak,
            'hoursUntilPeak': self.hours_until_peak,
            'framing': self.framing,
        }


@dataclass(frozen=True)
class TopicDriftData:
    bucket: TopicDriftBucket

    def to_dict(self) -> Dict[str, Any]:
        return {'bucket': self.bucket.to_dict()}


@dataclass(frozen=True)
class ContrastPairData:
    pair: ContrastPair

    def to_dict(self) -> Dict[str, Any]:
        return {'pair': self.pair.to_dict()}


@dataclass(frozen=True)
class DistributionData:
    result: DistributionResult

    def to_dict(self) -> Dict[str, Any]:
        return {'result': self.result.to_dict()}


@dataclass(frozen=True)
class AlwaysOnSummaryData:
    summary_type: SummaryType
    current_week_entries: int
    previous_week_entries: int
    current_week_active_days: int
    percent_change: Optional[int] = None
    active_day_names: Tuple[str, ...] = field(default_factory=tuple)
    pattern_days: Tuple[str, ...] = field(default_factory=tuple)
    spike_date: Optional[date] = None
    spike_day_name: Optional[str] = None
    spike_count: Optional[int] = None
    baseline_count: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'summaryType': self.summary_type.value,
            'currentWeekEntries': self.current_week_entries,
            'previousWeekEntries': self.previous_week_entries,
            'currentWeekActiveDays': self.current_week_active_days,
        }
        if self.percent_change is not None:
            result['percentChange'] = self.percent_change
        if self.active_day_names:
            result['activeDayNames'] = list(self.active_day_names)
        if self.pattern_days:
            result['patternDays'] = list(self.pattern_days)
        if self.spike_date is not None:
            result['spikeDate'] = self.spike_date.isoformat()
            result['spikeDayName'] = self.spike_day_name
            result['spikeCount'] = self.spike_count
            result['baselineCount'] = self.baseline_count
        return result


InsightPayload = Union[
    TimelineSpikeData, TimelineEventData, LinkClusterData, StreakCoachData,
    TopicDriftData, ContrastPairData, DistributionData, AlwaysOnSummaryData,
]

PAYLOAD_TYPES: Dict[InsightKind, type] = {
    InsightKind.TIMELINE_SPIKE: TimelineSpikeData,
    InsightKind.TIMELINE_EVENT: TimelineEventData,
    InsightKind.LINK_CLUSTER: LinkClusterData,
    InsightKind.STREAK_COACH: StreakCoachData,
    InsightKind.TOPIC_CLUSTER: TopicDriftData,
    InsightKind.CONTRAST_PAIR: ContrastPairData,
    InsightKind.DISTRIBUTION: DistributionData,
    InsightKind.ALWAYS_ON_SUMMARY: AlwaysOnSummaryData,
}

# Kinds whose explanation follows the claim / Evidence / Contrast / Confidence layout
CONTRACT_SHAPED_KINDS = frozenset({
    InsightKind.TIMELINE_EVENT,
    InsightKind.ALWAYS_ON_SUMMARY,
})

# Kinds whose explanation makes a claim about specific entries
EVIDENCE_REQUIRED_KINDS = frozenset({
    InsightKind.TIMELINE_SPIKE,
    InsightKind.TIMELINE_EVENT,
    InsightKind.LINK_CLUSTER,
    InsightKind.STREAK_COACH,
    InsightKind.ALWAYS_ON_SUMMARY,
})


# =============================================================================
# INSIGHT CARD
# =============================================================================

@dataclass(frozen=True)
class InsightCard:
    """The common output unit of every detector."""
    id: str
    kind: InsightKind
    title: str
    explanation: str
    evidence: Tuple[InsightEvidence, ...]
    computed_at: datetime
    data: InsightPayload

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'kind': self.kind.value,
            'title': self.title,
            'explanation': self.explanation,
            'evidence': _evidence_dicts(self.evidence),
            'computedAt': format_timestamp(self.computed_at),
            'data': self.data.to_dict(),
        }
