"""
Logical Clock for Deterministic Computation
===========================================

Injectable source of `now`. Every detector takes `now` explicitly; the
clock exists for callers (the engine facade, the API) that do not have
one yet.

MODES:
- LIVE: reads system time and keeps the most recent ticks
- REPLAY: returns a pre-recorded tick sequence, in order
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

from ..contracts.base import ensure_utc


class ClockExhausted(Exception):
    """Raised when a replay clock runs out of ticks."""
    pass


@dataclass
class LogicalClock:
    _ticks: List[datetime] = field(default_factory=list)
    _current_index: int = 0
    _is_live: bool = True
    _max_recorded: int = 1_000

    def now(self) -> datetime:
        if self._is_live:
            current = datetime.now(timezone.utc)
            self._ticks.append(current)
            if len(self._ticks) > self._max_recorded:
                # retention: drop oldest
                del self._ticks[0]
            self._current_index += 1
            return current
        if self._current_index >= len(self._ticks):
            raise ClockExhausted(
                f"Replay clock exhausted at index {self._current_index}. "
                f"Recorded sequence had {len(self._ticks)} ticks."
            )
        tick = self._ticks[self._current_index]
        self._current_index += 1
        return tick

    def tick_count(self) -> int:
        return self._current_index

    def is_live(self) -> bool:
        return self._is_live

    def recorded_ticks(self) -> List[datetime]:
        return list(self._ticks)

    @classmethod
    def live(cls, max_recorded: int = 1_000) -> LogicalClock:
        return cls(_is_live=True, _max_recorded=max_recorded)

    @classmethod
    def replay(cls, *ticks: datetime) -> LogicalClock:
        return cls(_ticks=[ensure_utc(t) for t in ticks], _is_live=False)

    def __repr__(self) -> str:
        mode = "LIVE" if self._is_live else "REPLAY"
        return f"LogicalClock({mode}, ticks={len(self._ticks)}, index={self._current_index})"
