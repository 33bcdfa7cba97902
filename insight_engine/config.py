"""
Engine Configuration

Policy constants for every detector, grouped per detector. The values are
fixed product policy; they are not derived from data and are not tuned.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Tuple
import os


TOPIC_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('focus', ('focus', 'concentrate', 'attention', 'distracted', 'productive', 'flow')),
    ('work', ('work', 'job', 'career', 'office', 'meeting', 'project', 'deadline', 'colleague')),
    ('money', ('money', 'finance', 'budget', 'savings', 'investment', 'expense', 'income', 'salary')),
    ('health', ('health', 'exercise', 'sleep', 'tired', 'energy', 'workout', 'meditation', 'stress')),
    ('relationships', ('relationship', 'friend', 'family', 'partner', 'love', 'connection', 'social')),
)


@dataclass(frozen=True)
class DistributionConfig:
    powerlaw_concentration: float = 0.6
    powerlaw_skew: float = 2.0
    lognormal_skew: float = 0.8
    lognormal_concentration: float = 0.4
    normal_abs_skew: float = 0.4
    normal_concentration: float = 0.3
    top_share_fraction: float = 0.1
    top_days: int = 3
    windows: Tuple[int, ...] = (7, 30, 90, 365)


@dataclass(frozen=True)
class TopicDriftConfig:
    keywords: Tuple[Tuple[str, Tuple[str, ...]], ...] = TOPIC_KEYWORDS
    lookback_days: int = 28
    half_days: int = 14
    rising_ratio: float = 1.5
    fading_ratio: float = 2 / 3
    high_delta: int = 3
    medium_delta: int = 2
    max_topics: int = 5
    max_sample_titles: int = 3
    title_preview_length: int = 40


@dataclass(frozen=True)
class ContrastPairConfig:
    min_count: int = 2
    max_pairs: int = 3


@dataclass(frozen=True)
class LinkClusterConfig:
    min_similarity: float = 0.25
    min_cluster_size: int = 2
    max_clusters: int = 5
    max_evidence: int = 6
    min_token_length: int = 3
    min_tokens_per_entry: int = 3
    max_top_tokens: int = 5
    max_summary_snippets: int = 3
    preview_length: int = 60


@dataclass(frozen=True)
class StreakCoachConfig:
    min_entries: int = 5
    min_entries_at_hour: int = 3
    max_evidence: int = 5
    imminent_hours: int = 2
    just_passed_hours: int = 20
    streak_mention_minimum: int = 2
    preview_length: int = 50


@dataclass(frozen=True)
class TimelineEventConfig:
    min_entries: int = 10
    pace_shift_min_entries: int = 20
    silence_min_entries: int = 15
    doubled_ratio: float = 2.0
    halved_ratio: float = 0.5
    max_pace_shifts: int = 2
    silence_min_gap_days: int = 7
    silence_window_days: int = 30
    intensity_ratio: float = 1.5
    last_occurrence_min_days: int = 7
    max_events: int = 5
    preview_length: int = 50


@dataclass(frozen=True)
class SpikeConfig:
    min_days: int = 3
    min_multiplier: float = 2.0
    min_count: int = 3
    preview_length: int = 50


@dataclass(frozen=True)
class SummaryConfig:
    clustering_ratio: float = 2.0
    clustering_shift: float = 0.5
    sporadic_max_days: int = 3
    cadence_shift_days: int = 3
    pattern_min_entries: int = 10
    pattern_weeks: int = 6
    pattern_min_avg_per_week: float = 2.0
    spike_min_entries: int = 7
    spike_min_count: int = 2
    spike_baseline_days: int = 14
    spike_multiplier: float = 2.0
    max_pattern_evidence: int = 6
    max_spike_evidence: int = 5


@dataclass(frozen=True)
class ValidationConfig:
    max_preview_length: int = 200


@dataclass
class EngineConfig:
    """Unified configuration for the entire engine."""
    timezone: str = "UTC"
    distribution: DistributionConfig = None
    topic_drift: TopicDriftConfig = None
    contrast_pairs: ContrastPairConfig = None
    link_clusters: LinkClusterConfig = None
    streak_coach: StreakCoachConfig = None
    timeline_events: TimelineEventConfig = None
    spikes: SpikeConfig = None
    summary: SummaryConfig = None
    validation: ValidationConfig = None

    def __post_init__(self):
        self.distribution = self.distribution or DistributionConfig()
        self.topic_drift = self.topic_drift or TopicDriftConfig()
        self.contrast_pairs = self.contrast_pairs or ContrastPairConfig()
        self.link_clusters = self.link_clusters or LinkClusterConfig()
        self.streak_coach = self.streak_coach or StreakCoachConfig()
        self.timeline_events = self.timeline_events or TimelineEventConfig()
        self.spikes = self.spikes or SpikeConfig()
        self.summary = self.summary or SummaryConfig()
        self.validation = self.validation or ValidationConfig()

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> EngineConfig:
        """Read overrides from the environment (INSIGHT_TIMEZONE)."""
        env = os.environ if environ is None else environ
        return cls(timezone=env.get("INSIGHT_TIMEZONE", "UTC") or "UTC")
