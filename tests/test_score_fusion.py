"""Weighted fusion of semantic and text hits."""

import pytest

from shared.helper.score_fusion import TEXT_MATCH_SCORE, fuse_results, normalize_weights
from shared.models.errors import InvalidRequestError
from shared.models.search import SemanticHit


def _semantic(*pairs):
    return [SemanticHit(id=doc_id, score=score, payload={"name": doc_id}) for doc_id, score in pairs]


def test_weights_are_scale_invariant():
    assert normalize_weights(7, 3) == pytest.approx((0.7, 0.3))
    assert normalize_weights(0.7, 0.3) == pytest.approx(normalize_weights(70, 30))


@pytest.mark.parametrize("weights", [(0, 0), (-1, 2), (1, -0.5)])
def test_invalid_weights_rejected(weights):
    with pytest.raises(InvalidRequestError):
        normalize_weights(*weights)


def test_overlap_gets_both_scores():
    results = fuse_results(_semantic(("a", 0.9)), [{"id": "a", "name": "A"}], 0.7, 0.3, 10)
    assert len(results) == 1
    assert results[0].semantic_score == 0.9
    assert results[0].text_score == TEXT_MATCH_SCORE
    assert results[0].score == pytest.approx(0.9 * 0.7 + 0.8 * 0.3)
    # semantic payload wins as the document
    assert results[0].document == {"name": "a"}


def test_text_only_hit_is_inserted():
    results = fuse_results([], [{"_id": "b", "name": "B"}], 0.5, 0.5, 10)
    assert results[0].id == "b"
    assert results[0].semantic_score == 0
    assert results[0].score == pytest.approx(0.4)


def test_ranking_and_truncation():
    semantic = _semantic(("a", 0.2), ("b", 0.95), ("c", 0.5))
    results = fuse_results(semantic, [{"id": "c"}, {"id": "d"}], 0.7, 0.3, 2)
    # b: 0.665, c: 0.59, d: 0.24, a: 0.14
    assert [r.id for r in results] == ["b", "c"]


def test_ties_keep_semantic_first():
    # both end at 0.4: a = 0.8*0.5, b = 0.8*0.5 (text only)
    results = fuse_results(_semantic(("a", 0.8)), [{"id": "b"}], 0.5, 0.5, 10)
    assert [r.id for r in results] == ["a", "b"]


def test_empty_inputs():
    assert fuse_results([], [], 0.7, 0.3, 10) == []
