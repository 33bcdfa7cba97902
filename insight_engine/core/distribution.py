"""
Distribution Classifier

RESPONSIBILITY: Turn reflections into per-day counts over a trailing window
and classify the shape of that series.
ALLOWED INPUTS: Reflection snapshot, window length in days, explicit `now`
OUTPUTS: DistributionResult (always well-formed, degenerate when empty)

CLASSIFICATION POLICY (ordered, first match wins):
==================================================
- concentration >= 0.6 OR skew >= 2         -> powerlaw
- skew >= 0.8 OR concentration >= 0.4       -> lognormal
- |skew| <= 0.4 AND concentration <= 0.3    -> normal
- otherwise                                 -> mixed

Statistics are computed over ACTIVE days only (days with >= 1 entry).
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple
import math

import numpy as np

from ..config import DistributionConfig
from ..contracts.base import ensure_utc
from ..contracts.cards import DayCount, DistributionClass, DistributionResult
from ..contracts.reflection import Reflection, active_reflections
from ..temporal.calendar import LocalCalendar


# =============================================================================
# STATISTICS
# =============================================================================

def population_skew(counts: np.ndarray) -> float:
    """Third standardized moment; 0 when the series has no spread."""
    if counts.size == 0:
        return 0.0
    mean = counts.mean()
    std = counts.std()
    if std == 0:
        return 0.0
    return float(np.mean((counts - mean) ** 3) / std ** 3)


def top_share(counts: np.ndarray, fraction: float) -> float:
    """Share of total volume held by the top `fraction` of days (at least one)."""
    total = counts.sum()
    if counts.size == 0 or total == 0:
        return 0.0
    ordered = np.sort(counts)[::-1]
    top_n = max(1, math.ceil(counts.size * fraction))
    return float(ordered[:top_n].sum() / total)


def classify_shape(skew: float, concentration: float, config: DistributionConfig) -> DistributionClass:
    if concentration >= config.powerlaw_concentration or skew >= config.powerlaw_skew:
        return DistributionClass.POWERLAW
    if skew >= config.lognormal_skew or concentration >= config.lognormal_concentration:
        return DistributionClass.LOGNORMAL
    if abs(skew) <= config.normal_abs_skew and concentration <= config.normal_concentration:
        return DistributionClass.NORMAL
    return DistributionClass.MIXED


def spike_ratio(counts: np.ndarray) -> float:
    """Max day divided by the median nonzero day."""
    nonzero = counts[counts > 0]
    if nonzero.size == 0:
        return 0.0
    return float(nonzero.max() / np.median(nonzero))


def most_common_count(counts: np.ndarray) -> int:
    """Most frequent nonzero day count; ties go to the smaller count."""
    nonzero = counts[counts > 0].astype(int)
    if nonzero.size == 0:
        return 0
    values, frequencies = np.unique(nonzero, return_counts=True)
    return int(values[int(np.argmax(frequencies))])


def _word_count(text: str) -> int:
    return len(text.split())


def describe_shape(
    classification: DistributionClass,
    frequency_per_day: float,
    magnitude: float,
) -> str:
    if frequency_per_day < 0.5:
        frequency = 'sparse'
    elif frequency_per_day < 1:
        frequency = 'moderate'
    else:
        frequency = 'frequent'

    if magnitude < 50:
        size = 'brief'
    elif magnitude < 200:
        size = 'moderate'
    else:
        size = 'detailed'

    if classification is DistributionClass.NORMAL:
        return f"Steady {frequency} entries with consistent {size} writing. Regular pattern with low variance."
    if classification is DistributionClass.LOGNORMAL:
        return f"Mostly small entries with occasional medium spikes. {size.capitalize()} writing with moderate variance."
    if classification is DistributionClass.POWERLAW:
        return f"Long quiet periods followed by rare large spikes. {size.capitalize()} writing with high variance."
    return f"No single shape fits this period. {frequency.capitalize()} entries with {size} writing."


# =============================================================================
# CLASSIFIER
# =============================================================================

def window_reflections(
    reflections: Sequence[Reflection],
    window_days: int,
    now: datetime,
) -> List[Reflection]:
    now = ensure_utc(now)
    start = now - timedelta(days=window_days)
    return [r for r in active_reflections(reflections) if start <= r.created_at <= now]


def classify(
    reflections: Sequence[Reflection],
    window_days: int,
    now: datetime,
    config: Optional[DistributionConfig] = None,
    calendar: Optional[LocalCalendar] = None,
) -> DistributionResult:
    """Classify the daily-count distribution over the trailing window."""
    config = config or DistributionConfig()
    calendar = calendar or LocalCalendar()

    entries = window_reflections(reflections, window_days, now)
    by_day = calendar.group_by_day(entries)

    if not by_day:
        return DistributionResult(
            window_days=window_days,
            daily_counts=(),
            classification=DistributionClass.MIXED,
            explanation=describe_shape(DistributionClass.MIXED, 0.0, 0.0),
        )

    daily_counts = tuple(
        DayCount(date=day, count=len(items)) for day, items in sorted(by_day.items())
    )
    counts = np.array([d.count for d in daily_counts], dtype=float)

    skew = population_skew(counts)
    concentration = top_share(counts, config.top_share_fraction)
    classification = classify_shape(skew, concentration, config)

    top_days: Tuple[DayCount, ...] = tuple(
        sorted(daily_counts, key=lambda d: (-d.count, -d.date.toordinal()))[:config.top_days]
    )
    total = int(counts.sum())
    frequency = total / window_days if window_days > 0 else 0.0
    magnitude = sum(_word_count(r.text) for r in entries) / len(entries)

    return DistributionResult(
        window_days=window_days,
        daily_counts=daily_counts,
        classification=classification,
        skew=skew,
        concentration=concentration,
        variance=float(counts.var()),
        spike_ratio=spike_ratio(counts),
        top10_share=concentration,
        most_common_day_count=most_common_count(counts),
        top_days=top_days,
        total_entries=total,
        active_days=len(daily_counts),
        frequency_per_day=frequency,
        magnitude=magnitude,
        explanation=describe_shape(classification, frequency, magnitude),
    )


def classify_windows(
    reflections: Sequence[Reflection],
    now: datetime,
    config: Optional[DistributionConfig] = None,
    calendar: Optional[LocalCalendar] = None,
) -> List[DistributionResult]:
    """One result per configured trailing window (7, 30, 90, 365 days)."""
    config = config or DistributionConfig()
    return [classify(reflections, days, now, config, calendar) for days in config.windows]
