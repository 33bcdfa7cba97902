"""
Insight Validation Gate

RESPONSIBILITY: Single enforcement point for the structural and wording
contract of an InsightCard. Cards that fail are dropped silently.
ALLOWED INPUTS: Any object claiming to be an InsightCard, optionally the set
of entry ids present in the input snapshot
OUTPUTS: bool, or ValidationResult carrying Error reasons for diagnostics

WORDING RULES:
==============
- Titles make a claim; a bare count ("You wrote 5 ...") is rejected
- Engine copy describes and never prescribes ("try", "should", ...);
  quoted entry text and evidence bullets are not engine copy
- Event and summary explanations carry Contrast and Confidence sections,
  and the confidence names its scope (days, entries, window, pattern)

WHAT THIS MODULE MUST NOT DO:
=============================
- Raise (the predicate is total)
- Log, print, or surface reasons to the end user
- Repair or partially render a failing card
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AbstractSet, Iterable, List, Optional, Tuple
import re

from .config import ValidationConfig
from .contracts.base import Error, ErrorCode
from .contracts.cards import (
    CONTRACT_SHAPED_KINDS, EVIDENCE_REQUIRED_KINDS, PAYLOAD_TYPES, InsightCard, InsightEvidence,
    InsightKind,
)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Evaluative words the copy should avoid. Soft fence: callers warn, never block.
BANNED_TONE_WORDS: Tuple[str, ...] = (
    'improved', 'worse', 'goal', 'target', 'performance', 'productive',
)

# Titles that only restate a count instead of making a claim
METRIC_TITLE_PATTERNS: Tuple[re.Pattern, ...] = tuple(re.compile(p, re.IGNORECASE) for p in (
    r'^you wrote \d+',
    r'^you had \d+',
    r'^\d+ entries?',
    r'^\d+ reflections?',
    r'^writing activity (up|down|steady)',
    r'^you wrote on \d+ of',
))

# Copy that tells the writer what to do
PRESCRIPTIVE_PATTERNS: Tuple[re.Pattern, ...] = tuple(re.compile(p, re.IGNORECASE) for p in (
    r'\btry\b',
    r'\bshould\b',
    r'\bmust\b',
    r'\bneed to\b',
    r'\bkeep it up\b',
    r'\bbuild a habit\b',
))

_CONTRAST = re.compile(r'Contrast:\s*[^\n]+', re.IGNORECASE)
_CONFIDENCE = re.compile(r'Confidence:\s*([^\n]+)', re.IGNORECASE)
_SCOPE_PATTERNS: Tuple[re.Pattern, ...] = tuple(re.compile(p, re.IGNORECASE) for p in (
    r'\d+\s*(days?|weeks?|months?|years?|entries?|reflections?|active\s+days?)',
    r'pattern.*(repeat|observed|across)',
    r'sample\s+size|window',
))
_QUOTED = re.compile(r'"[^"]*"')


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    reasons: Tuple[Error, ...] = field(default_factory=tuple)


def _non_empty_str(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _check_evidence(
    item: object,
    index: int,
    known_entry_ids: Optional[AbstractSet[str]],
    config: ValidationConfig,
    stamp: datetime,
) -> List[Error]:
    if not isinstance(item, InsightEvidence):
        return [Error(ErrorCode.MALFORMED_CANDIDATE, f"evidence[{index}] is not InsightEvidence", stamp)]

    errors: List[Error] = []
    if not _non_empty_str(item.entry_id):
        errors.append(Error(ErrorCode.MISSING_FIELD, f"evidence[{index}] has no entry id", stamp))
    elif known_entry_ids is not None and item.entry_id not in known_entry_ids:
        errors.append(
            Error(ErrorCode.UNKNOWN_EVIDENCE_ENTRY, f"evidence[{index}] references an unknown entry", stamp)
            .with_context("entry_id", item.entry_id)
        )
    if not isinstance(item.timestamp, datetime):
        errors.append(Error(ErrorCode.MISSING_FIELD, f"evidence[{index}] has no timestamp", stamp))
    if not isinstance(item.preview, str):
        errors.append(Error(ErrorCode.MALFORMED_CANDIDATE, f"evidence[{index}] preview is not text", stamp))
    elif len(item.preview) > config.max_preview_length:
        errors.append(Error(ErrorCode.PREVIEW_TOO_LONG, f"evidence[{index}] preview exceeds limit", stamp))
    return errors


def _authored_copy(explanation: str) -> str:
    """Explanation without evidence bullets and quoted snippets of entry text."""
    lines = [line for line in explanation.splitlines() if not line.lstrip().startswith('•')]
    return _QUOTED.sub(' ', '\n'.join(lines))


def _check_wording(card: InsightCard, stamp: datetime) -> List[Error]:
    errors: List[Error] = []
    title = card.title if isinstance(card.title, str) else ""
    explanation = card.explanation if isinstance(card.explanation, str) else ""

    if any(p.search(title.strip()) for p in METRIC_TITLE_PATTERNS):
        errors.append(Error(ErrorCode.METRIC_TITLE, "title restates a metric instead of a claim", stamp))

    authored = f"{title}\n{_authored_copy(explanation)}"
    flagged = sorted({m.group(0).lower() for p in PRESCRIPTIVE_PATTERNS for m in p.finditer(authored)})
    if flagged:
        errors.append(
            Error(ErrorCode.PRESCRIPTIVE_LANGUAGE, "copy prescribes behavior", stamp)
            .with_context("phrases", ", ".join(flagged))
        )

    if not isinstance(card.kind, InsightKind) or card.kind not in CONTRACT_SHAPED_KINDS:
        return errors

    if not _CONTRAST.search(explanation):
        errors.append(Error(ErrorCode.MISSING_CONTRAST, "explanation has no Contrast section", stamp))
    confidence = _CONFIDENCE.search(explanation)
    if confidence is None:
        errors.append(Error(ErrorCode.MISSING_CONFIDENCE, "explanation has no Confidence section", stamp))
    elif not any(p.search(confidence.group(1)) for p in _SCOPE_PATTERNS):
        errors.append(Error(ErrorCode.UNSCOPED_CONFIDENCE, "confidence does not state its scope", stamp))
    return errors


def validate_detailed(
    card: object,
    known_entry_ids: Optional[AbstractSet[str]] = None,
    config: Optional[ValidationConfig] = None,
) -> ValidationResult:
    """Check a candidate card and collect every rejection reason."""
    config = config or ValidationConfig()

    if not isinstance(card, InsightCard):
        return ValidationResult(False, (Error(ErrorCode.MALFORMED_CANDIDATE, "not an InsightCard", _EPOCH),))

    stamp = card.computed_at if isinstance(card.computed_at, datetime) else _EPOCH
    errors: List[Error] = []

    for name in ('id', 'title', 'explanation'):
        if not _non_empty_str(getattr(card, name)):
            errors.append(Error(ErrorCode.MISSING_FIELD, f"card {name} is empty", stamp))

    if not isinstance(card.computed_at, datetime):
        errors.append(Error(ErrorCode.MISSING_FIELD, "card computed_at is not a datetime", stamp))

    if not isinstance(card.kind, InsightKind):
        errors.append(Error(ErrorCode.UNKNOWN_KIND, "card kind is not an InsightKind", stamp))
    elif not isinstance(card.data, PAYLOAD_TYPES[card.kind]):
        errors.append(
            Error(ErrorCode.PAYLOAD_MISMATCH, "payload type does not match kind", stamp)
            .with_context("kind", card.kind.value)
            .with_context("payload", type(card.data).__name__)
        )

    evidence = card.evidence if isinstance(card.evidence, (tuple, list)) else None
    if evidence is None:
        errors.append(Error(ErrorCode.MALFORMED_CANDIDATE, "evidence is not a sequence", stamp))
    else:
        if isinstance(card.kind, InsightKind) and card.kind in EVIDENCE_REQUIRED_KINDS and not evidence:
            errors.append(
                Error(ErrorCode.MISSING_EVIDENCE, "card claims evidence but has none", stamp)
                .with_context("kind", card.kind.value)
            )
        for index, item in enumerate(evidence):
            errors.extend(_check_evidence(item, index, known_entry_ids, config, stamp))

    errors.extend(_check_wording(card, stamp))

    if errors:
        errors = [e.with_context("card_id", str(card.id)) for e in errors]
    return ValidationResult(ok=not errors, reasons=tuple(errors))


def validate(
    card: object,
    known_entry_ids: Optional[AbstractSet[str]] = None,
    config: Optional[ValidationConfig] = None,
) -> bool:
    """Pure, total predicate: True when the card may be shown."""
    return validate_detailed(card, known_entry_ids, config).ok


def filter_valid(
    cards: Iterable[InsightCard],
    known_entry_ids: Optional[AbstractSet[str]] = None,
    config: Optional[ValidationConfig] = None,
) -> List[InsightCard]:
    return [card for card in cards if validate(card, known_entry_ids, config)]


def check_insight_tone(text: str) -> List[str]:
    """Banned evaluative words present in `text`, as whole words."""
    lowered = text.lower()
    return [w for w in BANNED_TONE_WORDS if re.search(rf"\b{w}\b", lowered)]
