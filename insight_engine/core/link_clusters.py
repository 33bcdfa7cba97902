"""
Link Cluster Engine

RESPONSIBILITY: Group reflections by lexical overlap into unranked clusters.
ALLOWED INPUTS: Reflection snapshot, explicit `now` (stamps computed_at only)
OUTPUTS: link_cluster InsightCards (at most five, largest first)

ALGORITHM:
==========
1. Tokenize every non-deleted reflection; drop those with < 3 tokens
2. Connect pairs whose Jaccard similarity is >= 0.25
3. Greedy-by-degree BFS collects components of size >= 2
4. Per cluster: shared top tokens, template title, snippet summary,
   evidence from the newest members
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from itertools import combinations
from typing import FrozenSet, List, Optional, Sequence, Tuple

from ..config import LinkClusterConfig
from ..contracts.base import ensure_utc, stable_id
from ..contracts.cards import InsightCard, InsightEvidence, InsightKind, LinkClusterData
from ..contracts.reflection import Reflection, active_reflections, entry_ids
from ..validation import validate
from .text import ELLIPSIS, capitalize, first_sentence, make_preview, tokenize
from .topology import SimilarityGraph, jaccard


@dataclass(frozen=True)
class Cluster:
    """Built and discarded within one `cluster` call."""
    members: Tuple[Reflection, ...]
    token_sets: Tuple[FrozenSet[str], ...]
    top_tokens: Tuple[str, ...]

    @property
    def token_set(self) -> FrozenSet[str]:
        return frozenset().union(*self.token_sets)

    @property
    def avg_similarity(self) -> float:
        """Mean pairwise Jaccard between members."""
        pairs = list(combinations(self.token_sets, 2))
        if not pairs:
            return 0.0
        return round(sum(jaccard(a, b) for a, b in pairs) / len(pairs), 2)


# =============================================================================
# CLUSTERING
# =============================================================================

def find_top_tokens(token_lists: Sequence[Sequence[str]], max_tokens: int) -> Tuple[str, ...]:
    """Tokens present in at least two members, most frequent first."""
    counts: Counter = Counter()
    for tokens in token_lists:
        counts.update(tokens)
    shared = [(token, n) for token, n in counts.items() if n >= 2]
    shared.sort(key=lambda item: -item[1])
    return tuple(token for token, _ in shared[:max_tokens])


def build_clusters(
    reflections: Sequence[Reflection],
    config: Optional[LinkClusterConfig] = None,
) -> List[Cluster]:
    config = config or LinkClusterConfig()

    tokenized = [(r, tokenize(r.text, config.min_token_length)) for r in reflections]
    candidates = [(r, tokens) for r, tokens in tokenized if len(tokens) >= config.min_tokens_per_entry]
    if len(candidates) < 2:
        return []

    token_sets = [frozenset(tokens) for _, tokens in candidates]
    graph = SimilarityGraph()
    graph.build(token_sets, config.min_similarity)

    clusters: List[Cluster] = []
    for component in graph.greedy_components(config.min_cluster_size):
        clusters.append(Cluster(
            members=tuple(candidates[i][0] for i in component),
            token_sets=tuple(token_sets[i] for i in component),
            top_tokens=find_top_tokens([candidates[i][1] for i in component], config.max_top_tokens),
        ))

    clusters.sort(key=lambda c: -len(c.members))
    return clusters[:config.max_clusters]


# =============================================================================
# CARD COPY
# =============================================================================

def cluster_title(top_tokens: Sequence[str]) -> str:
    if not top_tokens:
        return "Related reflections"
    if len(top_tokens) == 1:
        return f"Cluster about {capitalize(top_tokens[0])}"
    if len(top_tokens) == 2:
        return f"Cluster about {capitalize(top_tokens[0])} and {top_tokens[1]}"
    return "Cluster: " + ", ".join(capitalize(t) for t in top_tokens[:3])


def cluster_summary(members: Sequence[Reflection], top_tokens: Sequence[str], max_snippets: int = 3) -> str:
    snippets: List[str] = []
    for member in members[:max_snippets]:
        sentence = first_sentence(member.text)
        if len(sentence) > 10:
            snippets.append(sentence if len(sentence) <= 80 else sentence[:80] + ELLIPSIS)

    count = len(members)
    if not snippets:
        topics = ", ".join(top_tokens[:3]) or "related themes"
        return f"{count} reflections connected by {topics}."

    noun = "reflection" if count == 1 else "reflections"
    around = f" around {' and '.join(top_tokens[:2])}" if top_tokens else ""
    themes = f'"{snippets[0]}"'
    if len(snippets) > 1:
        themes += f' and "{snippets[1]}"'
    return f"{count} {noun}{around}. Key themes: {themes}."


def cluster_to_card(cluster: Cluster, computed_at: datetime, config: LinkClusterConfig) -> InsightCard:
    newest = sorted(cluster.members, key=lambda r: r.created_at, reverse=True)
    evidence = tuple(
        InsightEvidence(
            entry_id=r.id,
            timestamp=r.created_at,
            preview=make_preview(r.text, config.preview_length),
        )
        for r in newest[:config.max_evidence]
    )
    return InsightCard(
        id=stable_id("link_cluster", *sorted(r.id for r in cluster.members)),
        kind=InsightKind.LINK_CLUSTER,
        title=cluster_title(cluster.top_tokens),
        explanation=cluster_summary(cluster.members, cluster.top_tokens, config.max_summary_snippets),
        evidence=evidence,
        computed_at=computed_at,
        data=LinkClusterData(
            cluster_size=len(cluster.members),
            top_tokens=cluster.top_tokens,
            avg_similarity=cluster.avg_similarity,
        ),
    )


def cluster(
    reflections: Sequence[Reflection],
    now: datetime,
    config: Optional[LinkClusterConfig] = None,
) -> List[InsightCard]:
    """Compute link cluster cards; only gate-passing cards are returned."""
    config = config or LinkClusterConfig()
    entries = active_reflections(reflections)
    if len(entries) < config.min_cluster_size:
        return []

    computed_at = ensure_utc(now)
    known = entry_ids(entries)
    cards = [cluster_to_card(c, computed_at, config) for c in build_clusters(entries, config)]
    return [card for card in cards if validate(card, known)]
