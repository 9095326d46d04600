"""Weighted score fusion of semantic and full-text search results.

The text engine exposes no relevance score comparable to a 0..1 cosine
similarity, so every text match contributes the flat TEXT_MATCH_SCORE.
This is a known approximation; replacing it with a different heuristic
changes ranking semantics and must be flagged as such.

Ties keep insertion order (sorted() is stable): semantic-seeded entries
come before entries that only the text search found.
"""

from typing import Any

from shared.models.errors import InvalidRequestError
from shared.models.search import HybridResultItem, SemanticHit

TEXT_MATCH_SCORE = 0.8


def normalize_weights(semantic_weight: float, text_weight: float) -> tuple[float, float]:
    """Scale both weights so they sum to 1.

    Args:
        semantic_weight (float): Caller-supplied semantic weight, any non-negative scale.
        text_weight (float): Caller-supplied text weight, same scale.

    Returns:
        tuple[float, float]: The normalized (semantic, text) weights.

    Raises:
        InvalidRequestError: If a weight is negative or both are zero.
    """
    if semantic_weight < 0 or text_weight < 0:
        raise InvalidRequestError("Search weights must not be negative.")
    total = semantic_weight + text_weight
    if total == 0:
        raise InvalidRequestError("At least one of semantic_weight and text_weight must be greater than zero.")
    return semantic_weight / total, text_weight / total


def text_hit_id(hit: dict[str, Any]) -> str:
    return str(hit.get("id") or hit.get("_id"))


def fuse_results(
    semantic_hits: list[SemanticHit],
    text_hits: list[dict[str, Any]],
    semantic_weight: float,
    text_weight: float,
    limit: int,
) -> list[HybridResultItem]:
    """Merge semantic and text hits by document id and rank them by weighted score.

    Args:
        semantic_hits (list[SemanticHit]): Vector engine hits, scores are cosine similarities.
        text_hits (list[dict[str, Any]]): Flat text engine hits.
        semantic_weight (float): Normalized semantic weight.
        text_weight (float): Normalized text weight.
        limit (int): Maximum number of results.

    Returns:
        list[HybridResultItem]: At most `limit` items, best first.
    """
    combined: dict[str, dict[str, Any]] = {}

    for hit in semantic_hits:
        combined[hit.id] = {"semantic_score": hit.score, "text_score": 0.0, "document": hit.payload}

    for hit in text_hits:
        doc_id = text_hit_id(hit)
        existing = combined.get(doc_id)
        if existing is not None:
            existing["text_score"] = TEXT_MATCH_SCORE
        else:
            combined[doc_id] = {"semantic_score": 0.0, "text_score": TEXT_MATCH_SCORE, "document": hit}

    items = [
        HybridResultItem(
            id=doc_id,
            score=data["semantic_score"] * semantic_weight + data["text_score"] * text_weight,
            semantic_score=data["semantic_score"],
            text_score=data["text_score"],
            document=data["document"],
        )
        for doc_id, data in combined.items()
    ]
    items = sorted(items, key=lambda item: item.score, reverse=True)
    return items[:limit]
