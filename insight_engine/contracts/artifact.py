"""
Artifact Contracts

An Artifact is the packaged, validated output of one engine invocation
over a time window. The debug block is a read-only diagnostic channel:
nothing in the engine reads it back.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Tuple

from .base import format_timestamp
from .cards import InsightCard
from .reflection import InsightWindow


class Horizon(Enum):
    """Which family of detectors an artifact is built from."""
    TIMELINE = "timeline"
    SUMMARY = "summary"
    DISTRIBUTIONS = "distributions"


@dataclass(frozen=True)
class ArtifactDebug:
    """Counts only. Never feeds back into ordering or selection."""
    reflection_count: int
    window_reflection_count: int
    candidate_counts: Tuple[Tuple[str, int], ...] = field(default_factory=tuple)
    rejected_count: int = 0
    failed_detectors: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'reflectionCount': self.reflection_count,
            'windowReflectionCount': self.window_reflection_count,
            'candidateCounts': dict(self.candidate_counts),
            'rejectedCount': self.rejected_count,
            'failedDetectors': list(self.failed_detectors),
        }


@dataclass(frozen=True)
class Artifact:
    horizon: Horizon
    window: InsightWindow
    created_at: datetime
    cards: Tuple[InsightCard, ...]
    debug: ArtifactDebug

    def to_dict(self) -> Dict[str, Any]:
        return {
            'horizon': self.horizon.value,
            'window': self.window.to_dict(),
            'createdAt': format_timestamp(self.created_at),
            'cards': [c.to_dict() for c in self.cards],
            'debug': self.debug.to_dict(),
        }
