"""Search orchestration: isolation filters, degradation and fusion end to end."""

import asyncio

import pytest

from conftest import FakeConfigLoader, contact_entity, product_entity
from server.api.services.SearchService import SearchService
from services.search_index.IndexingService import IndexingService
from shared.clients.rag.models.VectorPoint import RECORD_ID_KEY, make_point_id
from shared.models.errors import InvalidRequestError, NotFoundError
from shared.models.search import TextSearchQuery
from shared.models.tenant import TenantContext

CTX = TenantContext.build("acme", "sales")
OBJECT_ID = "65f0a1b2c3d4e5f601234567"


@pytest.fixture
def service(helper_config, search_client, rag_client, embed_manager) -> SearchService:
    loader = FakeConfigLoader(entities=[contact_entity(), product_entity()])
    indexing = IndexingService(helper_config, search_client, rag_client, embed_manager, loader)
    return SearchService(helper_config, search_client, rag_client, loader, indexing)


def _vector_hit(record_id: str, score: float, **fields) -> dict:
    return {"id": make_point_id(record_id), "score": score, "payload": {"tenant_id": "acme", RECORD_ID_KEY: record_id, **fields}}


def test_semantic_filter_isolates_tenant_and_unit(service, rag_client):
    rag_client.search_results = [_vector_hit(OBJECT_ID, 0.9, name="Ada")]
    hits = asyncio.run(service.semantic_search(CTX, "contact", "ada", limit=4))

    assert rag_client.search_calls[0]["filter"] == {
        "must": [
            {"key": "tenant_id", "match": {"value": "acme"}},
            {"key": "unit_id", "match": {"value": "sales"}},
        ]
    }
    assert rag_client.search_calls[0]["limit"] == 4
    assert hits[0].id == OBJECT_ID
    assert RECORD_ID_KEY not in hits[0].payload


def test_semantic_search_embeds_the_query_once(service, rag_client, embed_manager):
    rag_client.search_results = [_vector_hit(OBJECT_ID, 0.9)]
    asyncio.run(service.semantic_search(CTX, "contact", "ada"))

    # the vector collection is sized from the query vector, no sample embedding
    assert embed_manager.client.calls == [["ada"]]
    assert rag_client.collections["acme_contact_vectors"] == 3


def test_semantic_search_requires_embeddable_fields(service):
    with pytest.raises(InvalidRequestError):
        asyncio.run(service.semantic_search(CTX, "product", "x"))


def test_unknown_entity_is_not_found(service):
    with pytest.raises(NotFoundError):
        asyncio.run(service.hybrid_search(CTX, "ghost", "x"))
    with pytest.raises(NotFoundError):
        asyncio.run(service.text_search(CTX, TextSearchQuery(q="x", entity="ghost")))


def test_text_search_ensures_collection(service, search_client):
    asyncio.run(service.text_search(CTX, TextSearchQuery(q="x", entity="contact")))
    assert "acme_sales_contact" in search_client.collections


def test_hybrid_fuses_both_engines(service, rag_client, search_client):
    rag_client.search_results = [_vector_hit(OBJECT_ID, 0.9, name="Ada"), _vector_hit("2", 0.4, name="Bob")]
    search_client.search_hits["contact"] = [{"id": "3", "name": "Cy"}, {"id": OBJECT_ID, "name": "Ada"}]

    response = asyncio.run(service.hybrid_search(CTX, "contact", "ada", limit=2))

    assert response.total == 2
    # 0.87, then "2" at 0.28 ahead of text-only "3" at 0.24
    assert [r.id for r in response.results] == [OBJECT_ID, "2"]
    assert response.results[0].score == pytest.approx(0.9 * 0.7 + 0.8 * 0.3)
    assert response.diagnostics is None
    # each sub-search asks for limit*2 candidates
    assert rag_client.search_calls[0]["limit"] == 4
    assert search_client.search_calls[0][2].per_page == 4


def test_hybrid_degrades_to_text_when_vector_engine_fails(service, rag_client, search_client):
    rag_client.fail_search = True
    search_client.search_hits["contact"] = [{"id": "3"}]

    response = asyncio.run(service.hybrid_search(CTX, "contact", "x", include_diagnostics=True))

    assert [r.id for r in response.results] == ["3"]
    assert response.diagnostics.semantic_failed
    assert not response.diagnostics.text_failed


def test_hybrid_degrades_to_semantic_when_text_engine_fails(service, rag_client, search_client):
    rag_client.search_results = [_vector_hit(OBJECT_ID, 0.9), _vector_hit("2", 0.4)]
    search_client.fail_search = True

    response = asyncio.run(service.hybrid_search(CTX, "contact", "ada", include_diagnostics=True))

    assert [r.id for r in response.results] == [OBJECT_ID, "2"]
    assert [r.semantic_score for r in response.results] == [0.9, 0.4]
    assert all(r.text_score == 0 for r in response.results)
    assert response.diagnostics.text_failed
    assert not response.diagnostics.semantic_failed


def test_hybrid_never_raises_when_both_fail(service, rag_client, search_client):
    rag_client.fail_search = True
    search_client.fail_search = True
    response = asyncio.run(service.hybrid_search(CTX, "contact", "x"))
    assert response.results == []
    assert response.total == 0


def test_zero_semantic_weight_skips_vector_search(service, rag_client, search_client):
    # the record is only reachable through the vector engine
    rag_client.search_results = [_vector_hit(OBJECT_ID, 0.99)]

    response = asyncio.run(service.hybrid_search(CTX, "contact", "x", semantic_weight=0, text_weight=1, include_diagnostics=True))

    assert response.results == []
    assert rag_client.search_calls == []
    assert response.diagnostics.semantic_skipped


def test_entity_without_embeddable_fields_is_text_only(service, rag_client, search_client):
    search_client.search_hits["product"] = [{"id": "p1", "sku": "X"}]
    response = asyncio.run(service.hybrid_search(CTX, "product", "x"))
    assert [r.id for r in response.results] == ["p1"]
    assert rag_client.search_calls == []


def test_both_weights_zero_rejected(service):
    with pytest.raises(InvalidRequestError):
        asyncio.run(service.hybrid_search(CTX, "contact", "x", semantic_weight=0, text_weight=0))


def test_global_search_groups_by_entity(service, search_client):
    search_client.search_hits["contact"] = [{"id": "c1", "name": "Ada"}]

    groups = asyncio.run(service.global_search(CTX, "ada", limit=5))

    assert [g.entity for g in groups] == ["contact"]
    assert groups[0].items == [{"id": "c1", "name": "Ada", "_id": "c1"}]
    assert all(call[2].per_page == 5 for call in search_client.search_calls)


def test_global_search_skips_failing_entities(service, search_client):
    search_client.fail_search = True
    assert asyncio.run(service.global_search(CTX, "ada")) == []
