"""
Text Helpers

Previews, title previews and the lexical tokenizer shared by detectors.
Nothing here interprets meaning: tokens are lowercase word fragments.
"""

from __future__ import annotations
from typing import FrozenSet, List
import re


ELLIPSIS = "…"

STOPWORDS: FrozenSet[str] = frozenset("""
a an the and or but in on at to for of with by from is are was were be been
being have has had do does did will would could should may might must shall
can need i you he she it we they me him her us them my your his its our their
this that these those am so just very really also only about into through
during before after above below up down out off over under again further then
once here there when where why how all each few more most other some such no
nor not own same than too as if because until while got get getting like even
going went today yesterday tomorrow now still much many back
""".split())

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\s]")
_SENTENCE_END = re.compile(r"[.!?]")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def make_preview(text: str, max_length: int = 50) -> str:
    """Whitespace-collapsed snippet, truncated with an ellipsis."""
    cleaned = collapse_whitespace(text)
    if len(cleaned) <= max_length:
        return cleaned
    return cleaned[:max_length].rstrip() + ELLIPSIS


def title_preview(text: str, max_length: int = 40) -> str:
    """First line of an entry, or its first `max_length` characters."""
    stripped = text.strip()
    first_line = stripped.split("\n", 1)[0].strip() if stripped else ""
    first_line = collapse_whitespace(first_line)
    if not first_line:
        return "(untitled)"
    if len(first_line) <= max_length:
        return first_line
    return first_line[:max_length].rstrip() + ELLIPSIS


def first_sentence(text: str) -> str:
    return _SENTENCE_END.split(text.strip(), 1)[0].strip()


def tokenize(text: str, min_length: int = 3) -> List[str]:
    """
    Lowercase, strip non-word characters, split on whitespace, drop short
    tokens and stopwords. Unique tokens in first-appearance order.
    """
    cleaned = _NON_WORD.sub(" ", text.lower())
    tokens = (
        token for token in cleaned.split()
        if len(token) >= min_length and token not in STOPWORDS
    )
    return list(dict.fromkeys(tokens))


def capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]
