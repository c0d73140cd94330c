"""
Label search over a built graph.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from domainmap.compiler.folding import FoldingView
from domainmap.compiler.types import GraphModel, Node

logger = logging.getLogger(__name__)

EXACT_SCORE = 3
PREFIX_SCORE = 2
SUBSTRING_SCORE = 1


@dataclass(frozen=True)
class SearchHit:
    node: Node
    score: int

    def to_dict(self) -> dict:
        return {
            "id": self.node.id,
            "kind": self.node.kind,
            "label": self.node.label,
            "key": self.node.key,
            "score": self.score,
        }


def _score(label: str, query: str) -> int:
    label = label.lower()
    if label == query:
        return EXACT_SCORE
    if label.startswith(query):
        return PREFIX_SCORE
    if query in label:
        return SUBSTRING_SCORE
    return 0


def search_nodes(
    graph: GraphModel,
    query: str,
    view: Optional[FoldingView] = None,
    kind: Optional[str] = None,
    max_results: Optional[int] = None,
) -> List[SearchHit]:
    """
    Case-insensitive label search. Exact matches rank above prefix matches,
    which rank above substring matches; ties keep model order.
    With a view, only currently visible nodes are considered.
    """
    query = (query or "").strip().lower()
    if not query:
        return []

    scored = []
    for node in graph.nodes:
        if kind is not None and node.kind != kind:
            continue
        if view is not None and not view.is_visible(node):
            continue
        score = _score(node.label, query)
        if score > 0:
            scored.append(SearchHit(node=node, score=score))

    # sort() is stable, so equal scores stay in creation order
    scored.sort(key=lambda hit: hit.score, reverse=True)
    if max_results is not None:
        scored = scored[:max_results]

    logger.debug("[SEARCH] '%s' -> %d hits", query, len(scored))
    return scored
