"""
Always-on Summary

Short claim/evidence/contrast/confidence cards about the last week
compared with the week before:

- writing_change: entries cluster onto few days, or the clustering shifted
- consistency: daily cadence, sporadic writing, or a shift in active days
- weekly_pattern: weekdays with steady activity across six weeks
- activity_spike: a recent day at least twice the 14-day baseline

"Current week" is the 7 local days ending today; "previous week" is the 7
before that.
"""

from __future__ import annotations
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import SummaryConfig
from ..contracts.base import ensure_utc, stable_id
from ..contracts.cards import (
    AlwaysOnSummaryData, InsightCard, InsightEvidence, InsightKind, SummaryType,
)
from ..contracts.reflection import Reflection, active_reflections
from ..temporal.calendar import LocalCalendar
from .text import make_preview


DAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')


def contract_explanation(claim: str, evidence: Sequence[str], contrast: str, confidence: str) -> str:
    bullets = "\n".join(f"• {item}" for item in evidence)
    return f"{claim}\n\nEvidence:\n{bullets}\n\nContrast: {contrast}\n\nConfidence: {confidence}"


def _plural_days(n: int) -> str:
    return f"{n} day{'' if n == 1 else 's'}"


def _join_names(names: Sequence[str]) -> str:
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} and {names[1]}"
    return ", ".join(names[:-1]) + ", and " + names[-1]


class _Period:
    """Reflections whose local day falls in [first_day, last_day]."""

    def __init__(self, entries: Sequence[Reflection], first_day: date, last_day: date, calendar: LocalCalendar):
        self.entries = [
            r for r in entries
            if first_day <= calendar.day_of(r.created_at) <= last_day
        ]
        self.calendar = calendar

    @property
    def count(self) -> int:
        return len(self.entries)

    def by_day(self) -> Dict[date, List[Reflection]]:
        return self.calendar.group_by_day(self.entries)

    @property
    def active_days(self) -> int:
        return len(self.by_day())

    def active_day_names(self) -> Tuple[str, ...]:
        return tuple(DAY_NAMES[day.weekday()] for day in sorted(self.by_day()))

    def evidence_per_day(self, max_days: int) -> List[InsightEvidence]:
        """First entry of each active day, most recent day first."""
        grouped = self.by_day()
        firsts = [min(items, key=lambda r: r.created_at) for _, items in sorted(grouped.items(), reverse=True)]
        return [_evidence(r) for r in firsts[:max_days]]


def _evidence(reflection: Reflection) -> InsightEvidence:
    return InsightEvidence(
        entry_id=reflection.id,
        timestamp=reflection.created_at,
        preview=make_preview(reflection.text, 50),
    )


def _card(
    summary_type: SummaryType,
    today: date,
    computed_at: datetime,
    title: str,
    explanation: str,
    evidence: Sequence[InsightEvidence],
    data: AlwaysOnSummaryData,
) -> InsightCard:
    return InsightCard(
        id=stable_id("always_on_summary", summary_type.value, today.isoformat()),
        kind=InsightKind.ALWAYS_ON_SUMMARY,
        title=title,
        explanation=explanation,
        evidence=tuple(evidence),
        computed_at=computed_at,
        data=data,
    )


# =============================================================================
# CARDS
# =============================================================================

def writing_change(current: _Period, previous: _Period, today: date, computed_at: datetime,
                   config: SummaryConfig) -> Optional[InsightCard]:
    if current.count == 0 or previous.count == 0:
        return None

    current_ratio = current.count / current.active_days
    previous_ratio = previous.count / previous.active_days
    clustered = current_ratio >= config.clustering_ratio
    shifted = abs(current_ratio - previous_ratio) >= config.clustering_shift
    if not (clustered or shifted):
        return None

    claim = (
        "You don't process things gradually. You wait, then commit fully."
        if clustered else "Your writing pattern shifted this week."
    )
    items = [
        f"{current.count} entries across {current.active_days} active days ({current_ratio:.1f} entries/day)",
        f"Previous week: {previous.count} entries across {previous.active_days} active days "
        f"({previous_ratio:.1f} entries/day)",
    ]
    if current.active_days < 7:
        items.append(f"{_plural_days(7 - current.active_days)} with no entries")
    contrast = (
        "A steady daily cadence was not observed."
        if current.active_days < 4 else "No sustained low-level activity pattern detected."
    )
    confidence = "Pattern observed across two consecutive weeks with measurable clustering ratio."

    return _card(
        SummaryType.WRITING_CHANGE, today, computed_at, claim,
        contract_explanation(claim, items, contrast, confidence),
        current.evidence_per_day(3) + previous.evidence_per_day(2),
        AlwaysOnSummaryData(
            summary_type=SummaryType.WRITING_CHANGE,
            current_week_entries=current.count,
            previous_week_entries=previous.count,
            current_week_active_days=current.active_days,
            percent_change=round((current.count - previous.count) / previous.count * 100),
        ),
    )


def consistency(current: _Period, previous: _Period, today: date, computed_at: datetime,
                config: SummaryConfig) -> Optional[InsightCard]:
    if current.count == 0:
        return None

    active = current.active_days
    previous_active = previous.active_days if previous.count > 0 else None
    daily = active == 7
    sporadic = active <= config.sporadic_max_days
    shifted = previous_active is not None and abs(active - previous_active) >= config.cadence_shift_days
    if not (daily or sporadic or shifted):
        return None

    if daily:
        claim = "You maintain a daily writing cadence. Every day this week had at least one entry."
        contrast = "No days were skipped. A sporadic pattern was not observed."
    elif sporadic:
        claim = "Your writing is concentrated on specific days, not spread evenly."
        contrast = "A steady daily cadence was not observed. Most days had zero entries."
    else:
        claim = f"Your writing cadence shifted from {previous_active} active days to {active} active days."
        contrast = "A consistent cadence pattern was not maintained across consecutive weeks."

    items = [f"{active} active days out of 7 this week", f"{current.count} total entries this week"]
    if previous_active is not None:
        items.append(f"Previous week: {previous_active} active days with {previous.count} entries")
    if sporadic:
        items.append(f"{_plural_days(7 - active)} with no entries")

    confidence = (
        f"Pattern observed across two consecutive weeks with measurable active day counts "
        f"({previous_active} → {active})."
        if previous_active is not None
        else f"Pattern observed across 7 consecutive days with {active} active days."
    )

    return _card(
        SummaryType.CONSISTENCY, today, computed_at, claim,
        contract_explanation(claim, items, contrast, confidence),
        current.evidence_per_day(7),
        AlwaysOnSummaryData(
            summary_type=SummaryType.CONSISTENCY,
            current_week_entries=current.count,
            previous_week_entries=previous.count,
            current_week_active_days=active,
            active_day_names=current.active_day_names(),
        ),
    )


def weekly_pattern(history: _Period, current: _Period, previous: _Period, today: date,
                   computed_at: datetime, config: SummaryConfig) -> Optional[InsightCard]:
    if history.count < config.pattern_min_entries:
        return None

    by_weekday: Dict[int, List[Reflection]] = defaultdict(list)
    for reflection in history.entries:
        by_weekday[history.calendar.day_of(reflection.created_at).weekday()].append(reflection)

    weeks = config.pattern_weeks
    min_weeks = -(-weeks // 2)
    pattern = [
        weekday for weekday in range(7)
        if len(by_weekday[weekday]) / weeks >= config.pattern_min_avg_per_week
        and len(by_weekday[weekday]) >= min_weeks
    ]
    if not pattern or len(pattern) == 7:
        return None

    names = tuple(DAY_NAMES[w] for w in pattern)
    title = f"You tend to write most on {_join_names(names)}."

    evidence: List[InsightEvidence] = []
    for weekday in pattern:
        newest = sorted(by_weekday[weekday], key=lambda r: r.created_at, reverse=True)[:2]
        evidence.extend(_evidence(r) for r in newest)

    items = [
        f"Pattern observed across {weeks} weeks",
        f"{_plural_days(len(names))} of the week show consistent activity",
        f"Average {history.count / weeks / 7:.1f} entries per day on pattern days",
    ]
    contrast = (
        "A uniform distribution across all 7 days was not observed. "
        "Activity is concentrated on specific days."
    )
    confidence = (
        f"Pattern detected across {weeks} consecutive weeks with activity on {_plural_days(len(names))}, "
        f"meeting threshold of {config.pattern_min_avg_per_week:g} entries per week average."
    )

    return _card(
        SummaryType.WEEKLY_PATTERN, today, computed_at, title,
        contract_explanation(title, items, contrast, confidence),
        evidence[:config.max_pattern_evidence],
        AlwaysOnSummaryData(
            summary_type=SummaryType.WEEKLY_PATTERN,
            current_week_entries=current.count,
            previous_week_entries=previous.count,
            current_week_active_days=current.active_days,
            pattern_days=names,
        ),
    )


def activity_spike(entries: Sequence[Reflection], baseline: _Period, current: _Period, previous: _Period,
                   today: date, computed_at: datetime, config: SummaryConfig) -> Optional[InsightCard]:
    if current.count == 0 or len(entries) < config.spike_min_entries:
        return None

    per_day = baseline.count / config.spike_baseline_days
    if per_day <= 0:
        return None

    grouped = current.by_day()
    for offset in range(7):
        day = today - timedelta(days=offset)
        items = grouped.get(day, [])
        if len(items) >= config.spike_min_count and len(items) >= per_day * config.spike_multiplier:
            break
    else:
        return None

    day_name = DAY_NAMES[day.weekday()]
    count = len(items)
    claim = f"You had a spike in writing activity on {day_name}."
    items_text = [
        f"{count} entries on {day_name}",
        f"Baseline average: {per_day:.1f} entries per day over last {config.spike_baseline_days} days",
        f"Spike is {count / per_day:.1f}× above baseline",
    ]
    contrast = (
        "A steady, uniform writing pattern was not observed. "
        "This day exceeded the baseline by at least 2×."
    )
    confidence = (
        f"Spike detected using {config.spike_baseline_days}-day baseline ({baseline.count} entries) "
        f"with threshold of 2× baseline average ({per_day:.1f} entries/day). Spike day had {count} entries."
    )
    newest = sorted(items, key=lambda r: r.created_at, reverse=True)[:config.max_spike_evidence]

    return _card(
        SummaryType.ACTIVITY_SPIKE, today, computed_at, claim,
        contract_explanation(claim, items_text, contrast, confidence),
        [_evidence(r) for r in newest],
        AlwaysOnSummaryData(
            summary_type=SummaryType.ACTIVITY_SPIKE,
            current_week_entries=current.count,
            previous_week_entries=previous.count,
            current_week_active_days=current.active_days,
            spike_date=day,
            spike_day_name=day_name,
            spike_count=count,
            baseline_count=round(per_day, 1),
        ),
    )


def compute_summary(
    reflections: Sequence[Reflection],
    now: datetime,
    config: Optional[SummaryConfig] = None,
    calendar: Optional[LocalCalendar] = None,
) -> List[InsightCard]:
    config = config or SummaryConfig()
    calendar = calendar or LocalCalendar()
    computed_at = ensure_utc(now)

    entries = active_reflections(reflections)
    if not entries:
        return []

    today = calendar.day_of(computed_at)
    current = _Period(entries, today - timedelta(days=6), today, calendar)
    previous = _Period(entries, today - timedelta(days=13), today - timedelta(days=7), calendar)
    if current.count == 0 and previous.count == 0:
        return []

    history = _Period(entries, today - timedelta(days=config.pattern_weeks * 7 - 1), today, calendar)
    baseline = _Period(entries, today - timedelta(days=config.spike_baseline_days - 1), today, calendar)

    candidates = [
        writing_change(current, previous, today, computed_at, config),
        consistency(current, previous, today, computed_at, config),
        weekly_pattern(history, current, previous, today, computed_at, config),
        activity_spike(entries, baseline, current, previous, today, computed_at, config),
    ]
    return [card for card in candidates if card is not None]
