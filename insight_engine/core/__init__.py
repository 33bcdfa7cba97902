"""
Insight Detectors

RESPONSIBILITY: Pure analysis functions over a reflection snapshot
ALLOWED INPUTS: Reflection tuples, explicit `now`, per-detector config
OUTPUTS: InsightCard lists or detector-native shapes

WHAT THIS LAYER MUST NOT DO:
============================
- Read the system clock (every detector takes `now`)
- Perform I/O or keep state between calls
- Depend on another detector's output (except contrast pairs on topic drift)
- Rank content for behavioral influence

Modules:
- distribution: daily-count shape classification
- topic_drift: keyword topic trends
- contrast_pairs: rising vs fading topic pairs
- link_clusters / topology: lexical-overlap clustering
- streak_coach: best writing hour and day streaks
- timeline_events: discrete falsifiable moments
- timeline_spikes: unusually busy days
- summary: always-on weekly summary cards
"""

from .distribution import classify, classify_windows
from .topic_drift import drift_topics
from .contrast_pairs import contrast_pairs
from .link_clusters import cluster
from .streak_coach import coach
from .timeline_events import detect_events
from .timeline_spikes import compute_spikes
from .summary import compute_summary

__all__ = [
    'classify',
    'classify_windows',
    'drift_topics',
    'contrast_pairs',
    'cluster',
    'coach',
    'detect_events',
    'compute_spikes',
    'compute_summary',
]
