"""
Streak Coach

Detects the hour of day the user writes at most consistently, plus the
current and longest runs of consecutive writing days. Emits at most one
card.

Hours and days are bucketed in the configured local timezone.
"""

from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from ..config import StreakCoachConfig
from ..contracts.base import ensure_utc, stable_id
from ..contracts.cards import InsightCard, InsightEvidence, InsightKind, StreakCoachData
from ..contracts.reflection import Reflection, active_reflections
from ..temporal.calendar import LocalCalendar
from .text import make_preview


# (start hour inclusive, end hour exclusive, label); the last range wraps midnight
PERIODS: Tuple[Tuple[int, int, str], ...] = (
    (5, 8, 'early morning'),
    (8, 12, 'morning'),
    (12, 14, 'midday'),
    (14, 17, 'afternoon'),
    (17, 20, 'evening'),
    (20, 23, 'night'),
    (23, 5, 'late night'),
)

FRAMING_AT_PEAK = 'at_peak'
FRAMING_IMMINENT = 'imminent'
FRAMING_JUST_PASSED = 'just_passed'
FRAMING_DEFAULT = 'default'


def format_hour(hour: int) -> str:
    if hour == 0:
        return '12 AM'
    if hour == 12:
        return '12 PM'
    if hour < 12:
        return f'{hour} AM'
    return f'{hour - 12} PM'


def period_label(hour: int) -> str:
    for start, end, label in PERIODS:
        if start <= end:
            if start <= hour < end:
                return label
        elif hour >= start or hour < end:
            return label
    return 'during the day'


def compute_streaks(days: Iterable[date], today: date) -> Tuple[int, int]:
    """
    Return (current, longest) runs of consecutive days.

    The current run counts back from today when today has an entry,
    otherwise from yesterday; it is 0 when neither has one.
    """
    unique: Set[date] = set(days)
    if not unique:
        return 0, 0

    ordered = sorted(unique)
    longest = run = 1
    for previous, current in zip(ordered, ordered[1:]):
        if (current - previous).days == 1:
            run += 1
            longest = max(longest, run)
        else:
            run = 1

    if today in unique:
        anchor = today
    elif today - timedelta(days=1) in unique:
        anchor = today - timedelta(days=1)
    else:
        return 0, longest

    current_run = 0
    cursor = anchor
    while cursor in unique:
        current_run += 1
        cursor -= timedelta(days=1)
    return current_run, longest


def best_writing_hour(hours: Sequence[int]) -> Tuple[int, int]:
    """(hour, count) with the highest count; ties go to the earliest hour."""
    counts = [0] * 24
    for hour in hours:
        counts[hour] += 1
    best = max(range(24), key=lambda h: (counts[h], -h))
    return best, counts[best]


def choose_framing(hours_until: int, config: StreakCoachConfig) -> str:
    if hours_until == 0:
        return FRAMING_AT_PEAK
    if hours_until <= config.imminent_hours:
        return FRAMING_IMMINENT
    if hours_until >= config.just_passed_hours:
        return FRAMING_JUST_PASSED
    return FRAMING_DEFAULT


def coach_message(
    framing: str,
    hour_label: str,
    period: str,
    current_streak: int,
    config: StreakCoachConfig,
) -> str:
    if framing == FRAMING_AT_PEAK:
        if current_streak > 0:
            return f"This is the hour you write most often. You are on a {current_streak}-day streak."
        return "This is the hour you write most often."
    if framing == FRAMING_IMMINENT:
        return f"Your most consistent writing time, {hour_label}, is coming up. You tend to write in the {period}."
    if framing == FRAMING_JUST_PASSED:
        return f"You write most consistently at {hour_label}, which passed a short while ago."
    if current_streak > config.streak_mention_minimum:
        return f"You are on a {current_streak}-day streak. Your most consistent writing time is {hour_label} ({period})."
    return f"You write most consistently at {hour_label}, in the {period}."


def coach(
    reflections: Sequence[Reflection],
    now: datetime,
    config: Optional[StreakCoachConfig] = None,
    calendar: Optional[LocalCalendar] = None,
) -> List[InsightCard]:
    config = config or StreakCoachConfig()
    calendar = calendar or LocalCalendar()
    now = ensure_utc(now)

    entries = active_reflections(reflections)
    if len(entries) < config.min_entries:
        return []

    best_hour, at_best = best_writing_hour([calendar.hour_of(r.created_at) for r in entries])
    if at_best < config.min_entries_at_hour:
        return []

    current_streak, longest_streak = compute_streaks(
        (calendar.day_of(r.created_at) for r in entries),
        calendar.day_of(now),
    )

    hour_label = format_hour(best_hour)
    period = period_label(best_hour)
    hours_until = (best_hour - calendar.hour_of(now)) % 24
    framing = choose_framing(hours_until, config)

    title = (
        f"{current_streak}-day streak · Best time: {hour_label}"
        if current_streak > 0
        else f"Your best writing time is {hour_label}"
    )

    at_hour = [r for r in entries if calendar.hour_of(r.created_at) == best_hour]
    at_hour.sort(key=lambda r: r.created_at, reverse=True)
    evidence = tuple(
        InsightEvidence(
            entry_id=r.id,
            timestamp=r.created_at,
            preview=make_preview(r.text, config.preview_length),
        )
        for r in at_hour[:config.max_evidence]
    )

    card = InsightCard(
        id=stable_id("streak_coach", best_hour, at_best, len(entries), calendar.day_of(now)),
        kind=InsightKind.STREAK_COACH,
        title=title,
        explanation=coach_message(framing, hour_label, period, current_streak, config),
        evidence=evidence,
        computed_at=now,
        data=StreakCoachData(
            best_hour=best_hour,
            best_hour_label=hour_label,
            period_label=period,
            entries_at_best_hour=at_best,
            total_entries=len(entries),
            percentage_at_best_hour=round(at_best / len(entries) * 100),
            current_streak=current_streak,
            longest_streak=longest_streak,
            hours_until_peak=hours_until,
            framing=framing,
        ),
    )
    return [card]
