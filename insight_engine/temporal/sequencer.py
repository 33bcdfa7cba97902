"""
Request Sequencer
=================

The surrounding system loads reflections asynchronously and may re-trigger
computation while an earlier one is still being rendered. Each computation
takes a ticket; only the result holding the newest ticket is current.
"""

from __future__ import annotations
from dataclasses import dataclass
import threading


@dataclass(frozen=True)
class RequestTicket:
    sequence: int
    snapshot_key: str = ""


class RequestSequencer:
    """Monotonic counter guarding against stale results."""

    def __init__(self):
        self._latest = 0
        self._lock = threading.Lock()

    def begin(self, snapshot_key: str = "") -> RequestTicket:
        with self._lock:
            self._latest += 1
            return RequestTicket(sequence=self._latest, snapshot_key=snapshot_key)

    def is_current(self, ticket: RequestTicket) -> bool:
        with self._lock:
            return ticket.sequence == self._latest

    @property
    def latest(self) -> int:
        return self._latest
