"""
API Mapper
==========

Transforms request bodies into engine contracts and engine results into
response DTOs. Parsing failures raise ValueError; the server maps them to 422.
"""
from typing import Any, Dict, List, Optional, Sequence
from datetime import datetime

from ..contracts.base import parse_timestamp
from ..contracts.cards import ContrastPair, TopicDriftBucket
from ..contracts.reflection import InsightWindow, Reflection


def map_reflections(records: Sequence[Dict[str, Any]]) -> List[Reflection]:
    """Boundary records -> Reflections, rejecting duplicate ids."""
    reflections = [Reflection.from_dict(record) for record in records]
    seen = set()
    for r in reflections:
        if r.id in seen:
            raise ValueError(f"Duplicate reflection id: {r.id}")
        seen.add(r.id)
    return reflections


def map_now(value: Optional[str]) -> Optional[datetime]:
    return parse_timestamp(value) if value is not None else None


def map_window(data: Optional[Dict[str, Any]], now: datetime, default_days: int) -> InsightWindow:
    if not data:
        return InsightWindow.trailing(default_days, now)
    return InsightWindow.from_dict(data, now)


def map_topics_to_dto(buckets: List[TopicDriftBucket], pairs: List[ContrastPair]) -> Dict[str, Any]:
    return {
        "topics": [b.to_dict() for b in buckets],
        "contrastPairs": [p.to_dict() for p in pairs],
    }
