"""
Timeline Event Detector

RESPONSIBILITY: Extract a handful of discrete, falsifiable moments from
the timeline: first and last entries, pace shifts, meaningful silences.
ALLOWED INPUTS: Reflection snapshot, explicit `now`
OUTPUTS: TimelineEvent list (at most five, newest first)

EVENT RULES:
============
- first_occurrence: always, the earliest reflection
- last_occurrence: newest reflection is more than 7 whole days old
- pace_shift (>= 20 entries): consecutive non-empty ISO weeks whose counts
  doubled or halved; first two kept
- silence_as_signal (>= 15 entries): the longest gap >= 7 days, emitted
  only when entry density in the 30 days on one side is >= 1.5x the other

Evidence only ever points at real reflections. Week and gap figures go
into the claim, confidence and context fields.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence

from ..config import TimelineEventConfig
from ..contracts.base import ensure_utc, stable_id
from ..contracts.cards import EventContext, InsightEvidence, TimelineEvent, TimelineEventType
from ..contracts.reflection import Reflection, active_reflections, sorted_by_time
from ..temporal.calendar import LocalCalendar, whole_days_between
from .text import make_preview


@dataclass(frozen=True)
class _Week:
    start: date
    entries: List[Reflection]

    @property
    def count(self) -> int:
        return len(self.entries)


def _evidence(reflection: Reflection, config: TimelineEventConfig, label: str = "") -> InsightEvidence:
    preview = make_preview(reflection.text, config.preview_length)
    return InsightEvidence(
        entry_id=reflection.id,
        timestamp=reflection.created_at,
        preview=f"{label}{preview}" if label else preview,
    )


# =============================================================================
# FIRST / LAST
# =============================================================================

def first_occurrence(ordered: List[Reflection], config: TimelineEventConfig) -> TimelineEvent:
    first = ordered[0]
    evidence = [_evidence(first, config)]
    if len(ordered) > 1:
        evidence.append(_evidence(ordered[1], config, "Next entry: "))
    return TimelineEvent(
        id=stable_id("first_occurrence", first.id),
        type=TimelineEventType.FIRST_OCCURRENCE,
        date=first.created_at,
        claim="This was your first reflection.",
        evidence=tuple(evidence),
        contrast="No reflections existed before this moment.",
        confidence=f"First entry among {len(ordered)} reflections.",
    )


def last_occurrence(
    ordered: List[Reflection],
    now: datetime,
    config: TimelineEventConfig,
) -> Optional[TimelineEvent]:
    last = ordered[-1]
    days_since = whole_days_between(last.created_at, now)
    if days_since <= config.last_occurrence_min_days:
        return None

    evidence = [_evidence(last, config)]
    if len(ordered) > 1:
        evidence.append(_evidence(ordered[-2], config, "Previous entry: "))
    return TimelineEvent(
        id=stable_id("last_occurrence", last.id),
        type=TimelineEventType.LAST_OCCURRENCE,
        date=last.created_at,
        claim=f"This was your last reflection, {days_since} days ago.",
        evidence=tuple(evidence),
        contrast=f"No reflections have occurred in the {days_since} days since.",
        confidence=f"Most recent entry among {len(ordered)} reflections.",
    )


# =============================================================================
# PACE SHIFTS
# =============================================================================

def group_weeks(ordered: List[Reflection], calendar: LocalCalendar) -> List[_Week]:
    by_week: Dict[date, List[Reflection]] = {}
    for reflection in ordered:
        by_week.setdefault(calendar.week_start(reflection.created_at), []).append(reflection)
    return [_Week(start=start, entries=items) for start, items in sorted(by_week.items())]


def pace_shifts(
    ordered: List[Reflection],
    config: TimelineEventConfig,
    calendar: LocalCalendar,
) -> List[TimelineEvent]:
    if len(ordered) < config.pace_shift_min_entries:
        return []

    weeks = group_weeks(ordered, calendar)
    events: List[TimelineEvent] = []

    for previous, current in zip(weeks, weeks[1:]):
        ratio = current.count / previous.count
        if ratio >= config.doubled_ratio:
            shift = "doubled"
        elif ratio <= config.halved_ratio:
            shift = "halved"
        else:
            continue

        anchor = current.entries[0]
        evidence = [
            _evidence(anchor, config),
            _evidence(previous.entries[-1], config, "Week before: "),
        ]
        if current.count > 1:
            evidence.append(_evidence(current.entries[1], config))

        events.append(TimelineEvent(
            id=stable_id("pace_shift", current.start.isoformat(), anchor.id),
            type=TimelineEventType.PACE_SHIFT,
            date=anchor.created_at,
            claim=f"After this week, your writing frequency {shift}.",
            evidence=tuple(evidence),
            contrast=f"A steady cadence was not maintained. Frequency {shift} instead.",
            confidence=(
                f"Pattern observed across {len(weeks)} weeks with measurable ratio of {ratio:.1f}x "
                f"({previous.count} entries, then {current.count})."
            ),
            before_context=EventContext(
                date=calendar.start_of_day(previous.start),
                description=f"{previous.count} entries/week",
            ),
            after_context=EventContext(
                date=calendar.start_of_day(current.start),
                description=f"{current.count} entries/week",
            ),
        ))

    return events[:config.max_pace_shifts]


# =============================================================================
# SILENCE AS SIGNAL
# =============================================================================

def silence_event(ordered: List[Reflection], config: TimelineEventConfig) -> Optional[TimelineEvent]:
    if len(ordered) < config.silence_min_entries:
        return None

    longest = None
    for before, after in zip(ordered, ordered[1:]):
        days = whole_days_between(before.created_at, after.created_at)
        # strict > keeps the earliest of equally long gaps
        if days >= config.silence_min_gap_days and (longest is None or days > longest[0]):
            longest = (days, before, after)
    if longest is None:
        return None

    days, before, after = longest
    window = timedelta(days=config.silence_window_days)
    before_count = sum(
        1 for r in ordered
        if before.created_at - window <= r.created_at < before.created_at
    )
    after_count = sum(
        1 for r in ordered
        if after.created_at < r.created_at <= after.created_at + window
    )
    before_density = before_count / config.silence_window_days
    after_density = after_count / config.silence_window_days

    if after_density > before_density * config.intensity_ratio:
        claim = f"This {days}-day silence precedes your most intense cluster."
    elif before_density > after_density * config.intensity_ratio:
        claim = f"This {days}-day silence follows a period of high intensity."
    else:
        return None

    return TimelineEvent(
        id=stable_id("silence", before.id, after.id),
        type=TimelineEventType.SILENCE_AS_SIGNAL,
        date=before.created_at,
        claim=claim,
        evidence=(
            _evidence(before, config, "Last entry before gap: "),
            _evidence(after, config, "First entry after gap: "),
        ),
        contrast="A steady cadence was not maintained during this period.",
        confidence=(
            f"Gap of {days} days observed between {before_count} entries (before) and "
            f"{after_count} entries (after) in {config.silence_window_days}-day windows."
        ),
        before_context=EventContext(
            date=before.created_at,
            description=f"{before_count} entries in {config.silence_window_days} days before",
        ),
        after_context=EventContext(
            date=after.created_at,
            description=f"{after_count} entries in {config.silence_window_days} days after",
        ),
    )


# =============================================================================
# DETECTOR
# =============================================================================

def detect_events(
    reflections: Sequence[Reflection],
    now: datetime,
    config: Optional[TimelineEventConfig] = None,
    calendar: Optional[LocalCalendar] = None,
) -> List[TimelineEvent]:
    config = config or TimelineEventConfig()
    calendar = calendar or LocalCalendar()
    now = ensure_utc(now)

    ordered = sorted_by_time(active_reflections(reflections))
    if len(ordered) < config.min_entries:
        return []

    events: List[TimelineEvent] = [first_occurrence(ordered, config)]
    events.extend(pace_shifts(ordered, config, calendar))

    silence = silence_event(ordered, config)
    if silence is not None:
        events.append(silence)

    last = last_occurrence(ordered, now, config)
    if last is not None:
        events.append(last)

    events.sort(key=lambda e: e.date, reverse=True)
    return events[:config.max_events]
