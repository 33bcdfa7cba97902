"""
Temporal Helpers
================

Timezone-aware bucketing, an injectable clock, and stale-request guarding.

INVARIANTS:
- Stored timestamps are UTC; bucketing happens in one configured local zone
- Nothing here reads the system clock except LogicalClock in LIVE mode

Modules:
- calendar: local day / hour / ISO-week bucketing
- clock: injectable `now`
- sequencer: monotonic request tickets
"""

from .calendar import LocalCalendar, whole_days_between
from .clock import LogicalClock, ClockExhausted
from .sequencer import RequestSequencer, RequestTicket

__all__ = [
    'LocalCalendar',
    'whole_days_between',
    'LogicalClock',
    'ClockExhausted',
    'RequestSequencer',
    'RequestTicket',
]
