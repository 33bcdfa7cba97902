"""
Engine Orchestration Module

Coordinates the detectors for one analysis window and packages the
validated result as an Artifact.

LAYER FLOW:
===========
1. Window filter: reflections inside [start, end], oldest first
2. Detectors: each runs independently inside a failure boundary
3. Adapters: bucket / pair / event shapes -> InsightCard
4. Gate: structural contract, evidence ids checked against the window
5. Artifact: cards in fixed priority order plus read-only debug counts

DESIGN PRINCIPLES:
==================
1. A failing detector contributes zero cards; it never aborts the build
2. Rejections and failures go to the audit log, never to the end user
3. Observability never feeds back into ordering or selection
4. Identical (reflections, window, now) produce identical artifacts
"""

from __future__ import annotations
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union
import hashlib
import logging
import math
import time

from .adapters import contrast_pair_to_card, distribution_to_card, event_to_card, topic_drift_to_card
from .config import EngineConfig
from .contracts.artifact import Artifact, ArtifactDebug, Horizon
from .contracts.base import Error, ErrorCode, Result, ensure_utc, format_timestamp
from .contracts.cards import ContrastPair, DistributionResult, InsightCard, TopicDriftBucket
from .contracts.events import AuditEventType
from .contracts.reflection import InsightWindow, Reflection, active_reflections, entry_ids
from .core.contrast_pairs import contrast_pairs
from .core.distribution import classify, classify_windows
from .core.link_clusters import cluster
from .core.streak_coach import coach
from .core.summary import compute_summary
from .core.timeline_events import detect_events
from .core.timeline_spikes import compute_spikes
from .core.topic_drift import drift_topics
from .observability import ObservabilityEngine
from .temporal.calendar import LocalCalendar
from .temporal.clock import LogicalClock
from .temporal.sequencer import RequestSequencer, RequestTicket
from .validation import check_insight_tone, validate_detailed


logger = logging.getLogger(__name__)

Detector = Tuple[str, Callable[[], List[InsightCard]]]


class InsightArtifactBuilder:
    """
    Builds one Artifact per call. Holds configuration and an observability
    sink; no state carries over between builds.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        observability: Optional[ObservabilityEngine] = None,
    ):
        self._config = config or EngineConfig()
        self._observability = observability or ObservabilityEngine()
        self._calendar = LocalCalendar(self._config.timezone)

    @property
    def calendar(self) -> LocalCalendar:
        return self._calendar

    # =========================================================================
    # DETECTOR PLANS
    # =========================================================================

    def _timeline_detectors(self, entries: List[Reflection], now: datetime) -> List[Detector]:
        config = self._config
        buckets: List[TopicDriftBucket] = []

        def events() -> List[InsightCard]:
            found = detect_events(entries, now, config.timeline_events, self._calendar)
            return [event_to_card(e, now) for e in found]

        def spikes() -> List[InsightCard]:
            return compute_spikes(entries, now, config.spikes, self._calendar)

        def clusters() -> List[InsightCard]:
            return cluster(entries, now, config.link_clusters)

        def topic_drift() -> List[InsightCard]:
            buckets.extend(drift_topics(entries, now, config.topic_drift))
            return [topic_drift_to_card(b, now, config.topic_drift.lookback_days) for b in buckets]

        def pairs() -> List[InsightCard]:
            return [contrast_pair_to_card(p, now) for p in contrast_pairs(buckets, config.contrast_pairs)]

        return [
            ('timeline_events', events),
            ('timeline_spikes', spikes),
            ('link_clusters', clusters),
            ('topic_drift', topic_drift),
            ('contrast_pairs', pairs),
        ]

    def _summary_detectors(self, entries: List[Reflection], now: datetime) -> List[Detector]:
        config = self._config
        return [
            ('always_on_summary', lambda: compute_summary(entries, now, config.summary, self._calendar)),
            ('streak_coach', lambda: coach(entries, now, config.streak_coach, self._calendar)),
        ]

    def _distribution_detectors(
        self, entries: List[Reflection], window: InsightWindow,
    ) -> List[Detector]:
        days = max(1, math.ceil((window.end - window.start).total_seconds() / 86400))

        def distribution() -> List[InsightCard]:
            result = classify(entries, days, window.end, self._config.distribution, self._calendar)
            if not result.daily_counts:
                return []
            return [distribution_to_card(result, entries, window.end, self._calendar)]

        return [('distribution', distribution)]

    # =========================================================================
    # FAILURE BOUNDARY
    # =========================================================================

    def _run_detector(self, name: str, detector: Callable[[], List[InsightCard]], now: datetime) -> Result:
        started = time.perf_counter()
        try:
            cards = list(detector())
        except Exception as exc:
            logger.warning("Detector %s failed; contributing zero cards", name, exc_info=True)
            error = (
                Error(ErrorCode.UNEXPECTED_COMPUTATION_FAILURE, f"{type(exc).__name__}: {exc}", now)
                .with_context("detector", name)
            )
            self._observability.log_error(error, layer="detectors", entity_id=name)
            self._observability.collect_metric("detector_failures_total", 1, {"detector": name}, now)
            return Result.failure(error)

        elapsed_ms = (time.perf_counter() - started) * 1000
        self._observability.collect_metric("detector_duration_ms", elapsed_ms, {"detector": name}, now)
        self._observability.collect_metric("detector_candidates", len(cards), {"detector": name}, now)
        return Result.success(cards)

    # =========================================================================
    # BUILD
    # =========================================================================

    def build(
        self,
        reflections: Sequence[Reflection],
        window: InsightWindow,
        now: datetime,
        horizon: Horizon = Horizon.TIMELINE,
    ) -> Artifact:
        now = ensure_utc(now)
        # canonical order: detectors that keep first-seen order see the same sequence
        entries = sorted(
            window.filter(active_reflections(reflections)),
            key=lambda r: (r.created_at, r.id),
        )
        known = entry_ids(entries)

        if horizon is Horizon.TIMELINE:
            plan = self._timeline_detectors(entries, now)
        elif horizon is Horizon.SUMMARY:
            plan = self._summary_detectors(entries, now)
        else:
            plan = self._distribution_detectors(entries, window)

        candidates: List[InsightCard] = []
        candidate_counts: List[Tuple[str, int]] = []
        failed: List[str] = []
        for name, detector in plan:
            result = self._run_detector(name, detector, now)
            if result.is_failure:
                failed.append(name)
                candidate_counts.append((name, 0))
                continue
            candidate_counts.append((name, len(result.value)))
            candidates.extend(result.value)

        accepted = self._gate(candidates, known, now)

        debug = ArtifactDebug(
            reflection_count=len(reflections),
            window_reflection_count=len(entries),
            candidate_counts=tuple(candidate_counts),
            rejected_count=len(candidates) - len(accepted),
            failed_detectors=tuple(failed),
        )
        artifact = Artifact(
            horizon=horizon,
            window=window,
            created_at=now,
            cards=tuple(accepted),
            debug=debug,
        )

        self._observability.log_audit(
            action="build_artifact",
            event_type=AuditEventType.BUILD,
            entity_id=horizon.value,
            details=f"{len(accepted)} cards from {len(entries)} reflections",
            timestamp=now,
        )
        self._observability.collect_metric("artifact_builds_total", 1, {"horizon": horizon.value}, now)
        return artifact

    def _gate(self, candidates: Iterable[InsightCard], known: frozenset, now: datetime) -> List[InsightCard]:
        accepted: List[InsightCard] = []
        for card in candidates:
            verdict = validate_detailed(card, known, self._config.validation)
            if not verdict.ok:
                kind = getattr(getattr(card, 'kind', None), 'value', 'unknown')
                for reason in verdict.reasons:
                    self._observability.log_error(
                        reason, layer="validation", event_type=AuditEventType.REJECTION,
                        entity_id=getattr(card, 'id', None),
                    )
                self._observability.collect_metric("cards_rejected_total", 1, {"kind": kind}, now)
                continue

            flagged = check_insight_tone(f"{card.title} {card.explanation}")
            if flagged:
                logger.warning("Card %s uses evaluative wording: %s", card.id, ", ".join(flagged))
                self._observability.log_audit(
                    action="tone_warning",
                    event_type=AuditEventType.TONE,
                    entity_id=card.id,
                    outcome="warning",
                    details=", ".join(flagged),
                    layer="validation",
                    timestamp=now,
                )
            accepted.append(card)
        return accepted


def build(
    reflections: Sequence[Reflection],
    window: InsightWindow,
    now: datetime,
    horizon: Horizon = Horizon.TIMELINE,
    config: Optional[EngineConfig] = None,
    observability: Optional[ObservabilityEngine] = None,
) -> Artifact:
    """Build a single artifact with a throwaway builder."""
    return InsightArtifactBuilder(config, observability).build(reflections, window, now, horizon)


def snapshot_key(reflections: Iterable[Reflection]) -> str:
    """Content key of an input snapshot (ids, timestamps, deletions)."""
    digest = hashlib.sha256()
    for r in sorted(reflections, key=lambda r: r.id):
        deleted = format_timestamp(r.deleted_at) if r.deleted_at else "-"
        digest.update(f"{r.id}|{format_timestamp(r.created_at)}|{deleted}|{len(r.text)}\n".encode('utf-8'))
    return digest.hexdigest()[:16]


class InsightEngine:
    """
    Facade over the builder and the single-detector entry points.

    Callers that recompute as new reflections arrive take a ticket with
    `begin_request` and drop results whose ticket is no longer current.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        observability: Optional[ObservabilityEngine] = None,
        clock: Optional[LogicalClock] = None,
    ):
        self._config = config or EngineConfig()
        self._observability = observability or ObservabilityEngine()
        self._clock = clock or LogicalClock.live()
        self._builder = InsightArtifactBuilder(self._config, self._observability)
        self._sequencer = RequestSequencer()

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability

    def resolve_now(self, now: Optional[datetime] = None) -> datetime:
        return ensure_utc(now) if now is not None else self._clock.now()

    # -- staleness -------------------------------------------------------------

    def begin_request(self, reflections: Iterable[Reflection]) -> RequestTicket:
        return self._sequencer.begin(snapshot_key(reflections))

    def is_current(self, ticket: RequestTicket) -> bool:
        return self._sequencer.is_current(ticket)

    # -- artifacts -------------------------------------------------------------

    def build_artifact(
        self,
        reflections: Sequence[Reflection],
        window: Union[InsightWindow, int],
        now: Optional[datetime] = None,
        horizon: Horizon = Horizon.TIMELINE,
    ) -> Artifact:
        now = self.resolve_now(now)
        if not isinstance(window, InsightWindow):
            window = InsightWindow.trailing(int(window), now)
        return self._builder.build(reflections, window, now, horizon)

    # -- single detectors ------------------------------------------------------

    def distribution(
        self, reflections: Sequence[Reflection], window_days: int, now: Optional[datetime] = None,
    ) -> DistributionResult:
        return classify(reflections, window_days, self.resolve_now(now),
                        self._config.distribution, self._builder.calendar)

    def distributions(
        self, reflections: Sequence[Reflection], now: Optional[datetime] = None,
    ) -> List[DistributionResult]:
        return classify_windows(reflections, self.resolve_now(now),
                                self._config.distribution, self._builder.calendar)

    def topics(
        self, reflections: Sequence[Reflection], now: Optional[datetime] = None,
    ) -> Tuple[List[TopicDriftBucket], List[ContrastPair]]:
        buckets = drift_topics(reflections, self.resolve_now(now), self._config.topic_drift)
        return buckets, contrast_pairs(buckets, self._config.contrast_pairs)
