"""Typesense adapter against an httpx.MockTransport."""

import asyncio
import json

import httpx
import pytest

from conftest import contact_entity, product_entity
from shared.clients.search.typesense.SearchClientTypesense import SearchClientTypesense, render_filter_value
from shared.models.errors import EngineFailureError
from shared.models.search import TextSearchQuery
from shared.models.tenant import TenantContext

CTX = TenantContext.build("acme", "sales")


@pytest.fixture
def make_client(helper_config, monkeypatch):
    monkeypatch.setenv("SEARCH_TYPESENSE_BASE_URL", "http://typesense.test")
    monkeypatch.setenv("SEARCH_TYPESENSE_API_KEY", "ts-key")

    def _make(handler) -> SearchClientTypesense:
        client = SearchClientTypesense(helper_config=helper_config)
        asyncio.run(client.boot(transport=httpx.MockTransport(handler)))
        return client

    return _make


def test_schema_synthesis(make_client):
    client = make_client(lambda request: httpx.Response(200))
    schema = client.get_collection_schema(contact_entity(), "acme_sales_contact")
    fields = {f["name"]: f for f in schema["fields"]}

    assert schema["name"] == "acme_sales_contact"
    assert fields["id"] == {"name": "id", "type": "string"}
    assert fields["tenant_id"]["facet"] and fields["tenant_id"]["optional"]
    assert fields["unit_id"]["facet"]
    assert fields["name"] == {"name": "name", "type": "string", "optional": False, "index": True, "facet": True}
    assert fields["email"]["type"] == "string" and fields["email"]["optional"]
    assert fields["created_at"] == {"name": "created_at", "type": "int64", "optional": False}
    # notes is embeddable only, not indexed
    assert "notes" not in fields
    assert schema["default_sorting_field"] == "created_at"


def test_schema_for_tenant_scoped_entity(make_client):
    client = make_client(lambda request: httpx.Response(200))
    schema = client.get_collection_schema(product_entity(), "acme_product")
    names = [f["name"] for f in schema["fields"]]
    assert "unit_id" not in names
    assert schema["fields"][-1] == {"name": "price", "type": "int32", "optional": True}
    # no required numeric field
    assert "default_sorting_field" not in schema


def test_filter_value_rendering():
    assert render_filter_value(True) == "true"
    assert render_filter_value(3.5) == "3.5"
    assert render_filter_value("O`Neil") == "`O\\`Neil`"


def test_filter_composition(make_client):
    client = make_client(lambda request: httpx.Response(200))
    filters = {"active": False, "age": 3, "city": "Rome", "tags": ["a", "b"], "ignored": None}
    assert client.get_filter(CTX, filters, tenant_scoped=False) == (
        "tenant_id:=`acme` && unit_id:=`sales` && active:=false && age:=3 && city:=`Rome` && tags:=[`a`,`b`]"
    )
    assert client.get_filter(CTX, None, tenant_scoped=True) == "tenant_id:=`acme`"


def test_ensure_creates_missing_collection(make_client):
    created = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["X-TYPESENSE-API-KEY"] == "ts-key"
        if request.method == "GET":
            return httpx.Response(404, json={"message": "Not Found"})
        created.append(json.loads(request.content))
        return httpx.Response(201, json={})

    client = make_client(handler)
    name = asyncio.run(client.do_ensure_collection(CTX, "contact", contact_entity()))
    assert name == "acme_sales_contact"
    assert created[0]["name"] == "acme_sales_contact"


def test_ensure_treats_conflict_as_success(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404) if request.method == "GET" else httpx.Response(409, json={"message": "exists"})

    client = make_client(handler)
    assert asyncio.run(client.do_ensure_collection(CTX, "contact", contact_entity())) == "acme_sales_contact"


def test_ensure_skips_existing_collection(make_client):
    methods = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(200, json={"name": "acme_sales_contact"})

    client = make_client(handler)
    asyncio.run(client.do_ensure_collection(CTX, "contact", contact_entity()))
    assert methods == ["GET"]


def test_ensure_propagates_other_retrieval_errors(make_client):
    client = make_client(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(EngineFailureError) as exc:
        asyncio.run(client.do_ensure_collection(CTX, "contact", contact_entity()))
    assert exc.value.status_code == 500


def test_search_builds_isolated_query_and_unwraps_hits(make_client):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"found": 1, "page": 1, "hits": [{"document": {"id": "c1", "name": "Ada"}}]})

    client = make_client(handler)
    result = asyncio.run(client.do_search(CTX, "contact", TextSearchQuery(q="ada", entity="contact", facets=["city", "tags"])))

    assert seen["path"] == "/collections/acme_sales_contact/documents/search"
    assert seen["params"]["filter_by"] == "tenant_id:=`acme` && unit_id:=`sales`"
    assert seen["params"]["query_by"] == "*"
    assert seen["params"]["per_page"] == "10"
    assert seen["params"]["page"] == "1"
    assert seen["params"]["facet_by"] == "city,tags"
    assert result.hits == [{"id": "c1", "name": "Ada"}]
    assert result.found == 1


def test_search_tenant_scoped_entity(make_client):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["filter_by"] = request.url.params["filter_by"]
        return httpx.Response(200, json={"found": 0, "hits": []})

    client = make_client(handler)
    asyncio.run(client.do_search(CTX, "product", TextSearchQuery(q="x", entity="product"), product_entity()))
    assert seen == {"path": "/collections/acme_product/documents/search", "filter_by": "tenant_id:=`acme`"}


def test_search_failure_raises(make_client):
    client = make_client(lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(EngineFailureError):
        asyncio.run(client.do_search(CTX, "contact", TextSearchQuery(q="x", entity="contact")))


def test_upsert_uses_coerce_or_drop(make_client):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={})

    client = make_client(handler)
    asyncio.run(client.do_upsert_document(CTX, contact_entity(), {"id": "c1", "name": "Ada"}))
    assert seen["params"] == {"action": "upsert", "dirty_values": "coerce_or_drop"}
    assert seen["body"]["id"] == "c1"


def test_delete_missing_document_is_noop(make_client):
    client = make_client(lambda request: httpx.Response(404, json={"message": "Not Found"}))
    asyncio.run(client.do_delete_document(CTX, contact_entity(), "gone"))


def test_transport_error_becomes_engine_failure(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = make_client(handler)
    with pytest.raises(EngineFailureError):
        asyncio.run(client.do_healthcheck())


def test_list_collections_parses_stats(make_client):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        return httpx.Response(
            200,
            json=[
                {"name": "acme_sales_contact", "num_documents": 12, "created_at": 1700000000},
                {"name": "acme_product"},
            ],
        )

    client = make_client(handler)
    stats = asyncio.run(client.do_list_collections())

    assert (seen["method"], seen["path"]) == ("GET", "/collections")
    assert [(s.name, s.num_documents) for s in stats] == [("acme_sales_contact", 12), ("acme_product", 0)]
    assert stats[0].created_at == 1700000000
    assert stats[1].created_at is None


def test_list_collections_failure_raises(make_client):
    client = make_client(lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(EngineFailureError):
        asyncio.run(client.do_list_collections())
