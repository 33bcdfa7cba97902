"""
Local Calendar
==============

Day, hour and week bucketing in the user's local timezone.

All stored timestamps are UTC. "Calendar day", "hour of day" and "ISO
week" only make sense in one timezone, so every detector goes through a
LocalCalendar instead of calling `.date()` on a UTC datetime.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List
from zoneinfo import ZoneInfo

from ..contracts.base import ensure_utc
from ..contracts.reflection import Reflection


SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class LocalCalendar:
    timezone_name: str = "UTC"
    _zone: ZoneInfo = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, '_zone', ZoneInfo(self.timezone_name))

    def local(self, moment: datetime) -> datetime:
        return ensure_utc(moment).astimezone(self._zone)

    def day_of(self, moment: datetime) -> date:
        return self.local(moment).date()

    def hour_of(self, moment: datetime) -> int:
        return self.local(moment).hour

    def week_start(self, moment: datetime) -> date:
        """Monday of the ISO week containing `moment`."""
        day = self.day_of(moment)
        return day - timedelta(days=day.weekday())

    def start_of_day(self, day: date) -> datetime:
        """Local midnight of `day`, expressed in UTC."""
        return datetime.combine(day, time.min, tzinfo=self._zone).astimezone(timezone.utc)

    def group_by_day(self, reflections: Iterable[Reflection]) -> Dict[date, List[Reflection]]:
        """Reflections keyed by local day, in input order within each day."""
        grouped: Dict[date, List[Reflection]] = {}
        for reflection in reflections:
            grouped.setdefault(self.day_of(reflection.created_at), []).append(reflection)
        return grouped


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Floor of the elapsed days between two instants."""
    elapsed = (ensure_utc(later) - ensure_utc(earlier)).total_seconds()
    return int(elapsed // SECONDS_PER_DAY)
