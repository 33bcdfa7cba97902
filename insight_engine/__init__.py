"""
Reflection Insight Engine

Deterministic, descriptive insights over a user's journal reflections.
Every layer communicates through immutable contracts and every detector
is a pure function of (reflections, now, config).

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Reflection, InsightWindow, InsightCard and its per-kind payloads,
     Artifact, Error/ErrorCode/Result, audit records

2. TEMPORAL (temporal/)
   - Local-day and ISO-week bucketing, injectable clock, request sequencing

3. DETECTORS (core/)
   - Responsibility: distribution shape, topic drift, contrast pairs, link
     clusters, streak coach, timeline events, timeline spikes, summary
   - MUST NOT: read the system clock, perform I/O, rank for engagement

4. VALIDATION GATE (validation.py)
   - Total predicate over candidate cards; evidence must point at real entries

5. ORCHESTRATION (engine.py)
   - Runs detectors inside failure boundaries and packages an Artifact

6. OBSERVABILITY (observability/)
   - Audit log and metrics; never modifies engine output

7. API (api/)
   - Stateless FastAPI surface; each request posts its own snapshot

CONSTRAINTS ENFORCED:
=====================
- Deterministic: identical inputs always produce identical outputs
- Descriptive only: no scoring, goals or judgments of the writer
- Evidence-backed: every referenced entry id exists in the input
"""

from .config import EngineConfig
from .contracts.artifact import Artifact, Horizon
from .contracts.cards import InsightCard, InsightKind
from .contracts.reflection import InsightWindow, Reflection
from .engine import InsightArtifactBuilder, InsightEngine, build
from .validation import validate

__all__ = [
    'EngineConfig',
    'Artifact',
    'Horizon',
    'InsightCard',
    'InsightKind',
    'InsightWindow',
    'Reflection',
    'InsightArtifactBuilder',
    'InsightEngine',
    'build',
    'validate',
]
