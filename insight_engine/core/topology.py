"""
Similarity Topology
===================

Structural grouping of reflections by lexical overlap.

FENCE POST:
===========
This module computes TOPOLOGY (who is connected to whom), not IMPORTANCE.

ALLOWED:
- Graph construction over integer reflection indices
- Breadth-first component collection

FORBIDDEN:
- Centrality measures (PageRank, betweenness) - implies ranking
- Weighting clusters by anything other than member count

Nodes are integer indices into the caller's reflection array; no node holds
a reference to another node's data.
"""

from __future__ import annotations
from typing import AbstractSet, List, Sequence

import networkx as nx


def jaccard(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """|A ∩ B| / |A ∪ B|, 0 when either set is empty."""
    if not a or not b:
        return 0.0
    union = len(a | b)
    return len(a & b) / union if union else 0.0


class SimilarityGraph:
    """
    Undirected graph over reflection indices with an edge wherever two
    token sets reach the similarity threshold.
    """

    def __init__(self):
        self._graph = nx.Graph()

    def build(self, token_sets: Sequence[AbstractSet[str]], min_similarity: float) -> None:
        """Replace the graph. Edges are added in ascending (i, j) order."""
        self._graph = nx.Graph()
        self._graph.add_nodes_from(range(len(token_sets)))
        for i in range(len(token_sets)):
            for j in range(i + 1, len(token_sets)):
                similarity = jaccard(token_sets[i], token_sets[j])
                if similarity >= min_similarity:
                    self._graph.add_edge(i, j, similarity=similarity)

    def degree_order(self) -> List[int]:
        """Nodes by descending degree; ties keep index order."""
        return sorted(self._graph.nodes, key=lambda n: -self._graph.degree[n])

    def component_from(self, start: int) -> List[int]:
        """Breadth-first visit order of the component containing `start`."""
        return [start] + [v for _, v in nx.bfs_edges(self._graph, start)]

    def greedy_components(self, min_size: int) -> List[List[int]]:
        """
        Visit unvisited nodes in descending-degree order, collect each
        node's component by BFS, keep components with at least `min_size`
        members.
        """
        visited = set()
        components: List[List[int]] = []
        for start in self.degree_order():
            if start in visited:
                continue
            component = self.component_from(start)
            visited.update(component)
            if len(component) >= min_size:
                components.append(component)
        return components
