"""
Timeline Spikes

Days whose entry count is at least twice the median active day (and at
least three entries). One card per spike day, newest day first.
"""

from __future__ import annotations
from datetime import date, datetime
from typing import List, Optional, Sequence

import numpy as np

from ..config import SpikeConfig
from ..contracts.base import ensure_utc, stable_id
from ..contracts.cards import InsightCard, InsightEvidence, InsightKind, TimelineSpikeData
from ..contracts.reflection import Reflection, active_reflections
from ..temporal.calendar import LocalCalendar
from .text import make_preview


MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June', 'July',
    'August', 'September', 'October', 'November', 'December',
)


def format_day(day: date) -> str:
    """'November 30' style label."""
    return f"{MONTH_NAMES[day.month - 1]} {day.day}"


def compute_spikes(
    reflections: Sequence[Reflection],
    now: datetime,
    config: Optional[SpikeConfig] = None,
    calendar: Optional[LocalCalendar] = None,
) -> List[InsightCard]:
    config = config or SpikeConfig()
    calendar = calendar or LocalCalendar()
    computed_at = ensure_utc(now)

    by_day = calendar.group_by_day(active_reflections(reflections))
    if len(by_day) < config.min_days:
        return []

    median = float(np.median([len(items) for items in by_day.values()]))
    baseline = median if median > 0 else 1.0

    cards: List[InsightCard] = []
    for day in sorted(by_day, reverse=True):
        items = by_day[day]
        count = len(items)
        multiplier = count / baseline
        if multiplier < config.min_multiplier or count < config.min_count:
            continue

        rounded = round(multiplier, 1)
        evidence = tuple(
            InsightEvidence(
                entry_id=r.id,
                timestamp=r.created_at,
                preview=make_preview(r.text, config.preview_length),
            )
            for r in sorted(items, key=lambda r: r.created_at)
        )
        cards.append(InsightCard(
            id=stable_id("timeline_spike", day.isoformat(), count),
            kind=InsightKind.TIMELINE_SPIKE,
            title=f"Writing spike on {format_day(day)}",
            explanation=(
                f"You wrote {count} entries on this day, which is "
                f"{rounded}× your usual daily activity."
            ),
            evidence=evidence,
            computed_at=computed_at,
            data=TimelineSpikeData(
                date=day,
                count=count,
                median_count=round(baseline, 1),
                multiplier=rounded,
            ),
        ))
    return cards
