"""
Base Contracts and Shared Types

These are the foundational types used across all layers of the insight
engine. All types here are IMMUTABLE and represent pure data.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Optional, Tuple
import hashlib


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    Every rejection or failure state is enumerated.
    """
    # Detector outcomes
    INSUFFICIENT_DATA = auto()
    UNEXPECTED_COMPUTATION_FAILURE = auto()

    # Validation gate rejections
    MALFORMED_CANDIDATE = auto()
    MISSING_FIELD = auto()
    UNKNOWN_KIND = auto()
    PAYLOAD_MISMATCH = auto()
    MISSING_EVIDENCE = auto()
    UNKNOWN_EVIDENCE_ENTRY = auto()
    PREVIEW_TOO_LONG = auto()

    # Wording rejections
    METRIC_TITLE = auto()
    PRESCRIPTIVE_LANGUAGE = auto()
    MISSING_CONTRAST = auto()
    MISSING_CONFIDENCE = auto()
    UNSCOPED_CONFIDENCE = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: object) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)


# =============================================================================
# TIME AND IDENTITY HELPERS
# =============================================================================

def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are interpreted as UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: object) -> datetime:
    """Parse an ISO-8601 string (or pass through a datetime) into aware UTC."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid timestamp: {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError as exc:
        raise ValueError(f"Invalid timestamp: {value!r}") from exc
    return ensure_utc(parsed)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 with a trailing Z, the boundary format for all timestamps."""
    return ensure_utc(value).isoformat().replace('+00:00', 'Z')


def stable_id(prefix: str, *parts: object) -> str:
    """Generate a deterministic identifier from content."""
    seed = "|".join(str(p) for p in parts)
    digest = hashlib.sha256(seed.encode('utf-8')).hexdigest()[:16]
    return f"{prefix}_{digest}"
