"""
Reflection Input Contracts

The Entry Repository (external) hands the engine a snapshot of decrypted
reflections. These types describe that snapshot and the analysis window.

BOUNDARY ENFORCEMENT:
=====================
- Reflections are immutable once constructed
- The engine never mutates, persists, or re-reads a Reflection
- Parsing from boundary dictionaries raises ValueError on malformed input
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from .base import ensure_utc, format_timestamp, parse_timestamp


@dataclass(frozen=True)
class Reflection:
    """One user-authored, timestamped text record."""
    id: str
    created_at: datetime
    text: str
    deleted_at: Optional[datetime] = None
    source_id: Optional[str] = None

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Reflection id must be a non-empty string")
        if not isinstance(self.created_at, datetime):
            raise ValueError("Reflection created_at must be a datetime")
        if not isinstance(self.text, str):
            raise ValueError("Reflection text must be a string")
        object.__setattr__(self, 'created_at', ensure_utc(self.created_at))
        if self.deleted_at is not None:
            object.__setattr__(self, 'deleted_at', ensure_utc(self.deleted_at))

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'createdAt': format_timestamp(self.created_at),
            'deletedAt': format_timestamp(self.deleted_at) if self.deleted_at else None,
            'text': self.text,
            'sourceId': self.source_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Reflection:
        """
        Build a Reflection from a boundary record.

        Accepts camelCase or snake_case keys and either `text` or
        `plaintext` for the body.
        """
        if not isinstance(data, dict):
            raise ValueError("Reflection record must be a mapping")

        created = data.get('createdAt', data.get('created_at'))
        deleted = data.get('deletedAt', data.get('deleted_at'))
        text = data.get('text', data.get('plaintext'))

        if created is None:
            raise ValueError("Reflection record is missing createdAt")
        if text is None:
            raise ValueError("Reflection record is missing text")

        return cls(
            id=str(data.get('id') or ''),
            created_at=parse_timestamp(created),
            text=text,
            deleted_at=parse_timestamp(deleted) if deleted else None,
            source_id=data.get('sourceId', data.get('source_id')),
        )


def active_reflections(reflections: Iterable[Reflection]) -> List[Reflection]:
    """Drop deleted records; every detector starts here."""
    return [r for r in reflections if not r.is_deleted]


def sorted_by_time(reflections: Iterable[Reflection]) -> List[Reflection]:
    """Oldest first; ties keep input order."""
    return sorted(reflections, key=lambda r: r.created_at)


@dataclass(frozen=True)
class InsightWindow:
    """Closed analysis window `[start, end]`."""
    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, 'start', ensure_utc(self.start))
        object.__setattr__(self, 'end', ensure_utc(self.end))
        if self.start > self.end:
            raise ValueError("InsightWindow start must be before or equal to end")

    @staticmethod
    def trailing(days: int, now: datetime) -> InsightWindow:
        if days <= 0:
            raise ValueError("window days must be positive")
        now = ensure_utc(now)
        return InsightWindow(start=now - timedelta(days=days), end=now)

    def contains(self, moment: datetime) -> bool:
        return self.start <= ensure_utc(moment) <= self.end

    def filter(self, reflections: Iterable[Reflection]) -> List[Reflection]:
        return [r for r in reflections if self.contains(r.created_at)]

    def to_dict(self) -> Dict[str, str]:
        return {
            'start': format_timestamp(self.start),
            'end': format_timestamp(self.end),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], now: datetime) -> InsightWindow:
        """Accepts `{start, end}` or `{windowDays}`."""
        if 'windowDays' in data or 'window_days' in data:
            days = data.get('windowDays', data.get('window_days'))
            try:
                days = int(days)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Invalid windowDays: {days!r}") from exc
            return cls.trailing(days, now)
        if 'start' in data and 'end' in data:
            return cls(start=parse_timestamp(data['start']), end=parse_timestamp(data['end']))
        raise ValueError("Window must specify {start, end} or {windowDays}")


def entry_ids(reflections: Iterable[Reflection]) -> FrozenSet[str]:
    return frozenset(r.id for r in reflections)
