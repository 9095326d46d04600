"""Shared fixtures: a quiet HelperConfig and in-memory stand-ins for the engines, store and config."""

import asyncio
import logging
from typing import Any

import pytest

from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.helper.collection_naming import collection_name, vector_collection_name
from shared.helper.entity_helper import is_tenant_scoped
from shared.logging.logging_setup import ColorLogger
from shared.models.config import EmbeddingsProviderConfig, TenantConfig, UnitConfig
from shared.models.entity import EntityDefinition, FieldDefinition
from shared.models.errors import ConfigurationError, EngineFailureError
from shared.models.indexing import CollectionStats
from shared.models.search import TextSearchResult


@pytest.fixture
def helper_config(monkeypatch) -> HelperConfig:
    monkeypatch.setenv("INDEXER_SETTLE_DELAY_MS", "0")
    return HelperConfig(logger=ColorLogger(logging.getLogger("tests")))


def contact_entity(scope: str | None = None) -> EntityDefinition:
    return EntityDefinition(
        name="contact",
        scope=scope,
        fields=[
            FieldDefinition(name="name", type="string", required=True, searchable=True, embeddable=True),
            FieldDefinition(name="email", type="email", indexed=True),
            FieldDefinition(name="notes", type="text", embeddable=True),
            FieldDefinition(name="created_at", type="datetime", required=True, indexed=True),
        ],
    )


def product_entity() -> EntityDefinition:
    """Tenant-scoped entity without embeddable fields."""
    return EntityDefinition(
        name="product",
        scope="tenant",
        fields=[
            FieldDefinition(name="sku", type="string", required=True, searchable=True),
            FieldDefinition(name="price", type="number", indexed=True),
        ],
    )


class FakeSearchClient:
    def __init__(self):
        self.collections: dict[str, dict] = {}
        self.documents: dict[str, dict[str, dict]] = {}
        self.search_hits: dict[str, list[dict]] = {}
        self.search_calls: list[tuple] = []
        self.fail_search = False
        self.fail_upsert = False

    def get_collection_name(self, ctx, entity, entity_def=None) -> str:
        return collection_name(ctx.tenant_id, ctx.unit_id, entity, is_global=is_tenant_scoped(entity_def))

    async def do_ensure_collection(self, ctx, entity, entity_def) -> str:
        name = self.get_collection_name(ctx, entity, entity_def)
        self.collections.setdefault(name, {"name": name})
        return name

    async def do_upsert_document(self, ctx, entity_def, doc) -> None:
        if self.fail_upsert:
            raise EngineFailureError("text engine down", status_code=503)
        name = self.get_collection_name(ctx, entity_def.name, entity_def)
        self.documents.setdefault(name, {})[doc["id"]] = doc

    async def do_delete_document(self, ctx, entity_def, doc_id) -> None:
        name = self.get_collection_name(ctx, entity_def.name, entity_def)
        self.documents.get(name, {}).pop(doc_id, None)

    async def do_search(self, ctx, entity, query, entity_def=None) -> TextSearchResult:
        self.search_calls.append((ctx, entity, query))
        if self.fail_search:
            raise EngineFailureError("text engine down", status_code=503)
        hits = self.search_hits.get(entity, [])
        return TextSearchResult(hits=hits, found=len(hits), page=1)

    async def do_list_collections(self) -> list[CollectionStats]:
        return [
            CollectionStats(name=name, num_documents=len(self.documents.get(name, {})), created_at=1700000000)
            for name in self.collections
        ]


class FakeRAGClient:
    def __init__(self):
        self.collections: dict[str, int] = {}
        self.points: dict[str, dict[Any, VectorPoint]] = {}
        self.search_results: list[dict] = []
        self.search_calls: list[dict] = []
        self.fail_search = False
        self.fail_ensure = False

    async def do_ensure_collection(self, tenant_id, entity, vector_size) -> str:
        if self.fail_ensure:
            raise EngineFailureError("vector engine down", status_code=503)
        name = vector_collection_name(tenant_id, entity)
        self.collections.setdefault(name, vector_size)
        return name

    async def do_upsert_points(self, tenant_id, entity, points) -> None:
        name = vector_collection_name(tenant_id, entity)
        for point in points:
            self.points.setdefault(name, {})[point.id] = point

    async def do_delete_points(self, tenant_id, entity, point_ids) -> None:
        name = vector_collection_name(tenant_id, entity)
        for point_id in point_ids:
            self.points.get(name, {}).pop(point_id, None)

    async def do_search(self, tenant_id, entity, vector, limit=10, filter=None, score_threshold=None) -> list[dict]:
        self.search_calls.append({"tenant_id": tenant_id, "entity": entity, "limit": limit, "filter": filter})
        if self.fail_search:
            raise EngineFailureError("vector engine down", status_code=503)
        return self.search_results[:limit]


class FakeEmbedClient:
    DIMENSION = 3

    def __init__(self):
        self.calls: list[list[str]] = []

    async def do_embed(self, texts) -> list[list[float]]:
        texts = [texts] if isinstance(texts, str) else texts
        self.calls.append(list(texts))
        if any("boom" in text for text in texts):
            raise EngineFailureError("embedding backend failed", status_code=500)
        return [[float(len(text)), 1.0, 0.0] for text in texts]


class FakeEmbedManager:
    """Hands out one FakeEmbedClient. With a resolver, provider configs are validated by the real resolve() first."""

    def __init__(self, client: FakeEmbedClient | None = None, resolver=None):
        self.client = client or FakeEmbedClient()
        self.resolver = resolver
        self.overrides: list[tuple[str | None, EmbeddingsProviderConfig | None]] = []
        self.cleared: list[str | None] = []

    async def get_client(self, tenant_id=None, tenant_override=None):
        self.overrides.append((tenant_id, tenant_override))
        if self.resolver is not None:
            self.resolver.resolve(self.resolver.get_global_provider_config(), tenant_override)
        return self.client

    async def clear(self, tenant_id=None) -> None:
        self.cleared.append(tenant_id)

    async def close(self) -> None:
        return None


class FakeStore:
    """Primary store whose change feed replays queued events; None ends the feed."""

    def __init__(self):
        self.collections: dict[str, list[dict]] = {}
        self.feeds: dict[str, asyncio.Queue] = {}
        self.watched: list[str] = []
        self.closed = False

    def feed(self, collection: str) -> asyncio.Queue:
        return self.feeds.setdefault(collection, asyncio.Queue())

    async def find_by_id(self, collection, doc_id):
        for doc in self.collections.get(collection, []):
            if str(doc.get("_id")) == str(doc_id):
                return doc
        return None

    async def iter_documents(self, collection, batch_size=100):
        for doc in list(self.collections.get(collection, [])):
            yield doc

    async def watch(self, collection):
        self.watched.append(collection)
        queue = self.feed(collection)
        while True:
            event = await queue.get()
            if event is None:
                return
            if isinstance(event, Exception):
                raise event
            yield event

    async def close(self) -> None:
        self.closed = True


class FakeConfigLoader:
    def __init__(self, entities: list[EntityDefinition], tenants: list[TenantConfig] | None = None, units: dict[str, list[UnitConfig]] | None = None):
        self.tenants = tenants or [TenantConfig(tenant_id="acme", name="Acme")]
        self.units = units or {"acme": [UnitConfig(unit_id="sales", tenant_id="acme")]}
        self.entities = entities
        self.cleared: list[str | None] = []
        self.broken_tenants: set[str] = set()

    async def get_tenant(self, tenant_id):
        return next((t for t in self.tenants if t.tenant_id == tenant_id), None)

    async def get_tenants(self):
        return list(self.tenants)

    async def get_units(self, tenant_id):
        if tenant_id in self.broken_tenants:
            raise ConfigurationError(f"Invalid units config for '{tenant_id}'")
        return list(self.units.get(tenant_id, []))

    async def get_entity(self, tenant_id, entity_name):
        return next((e for e in self.entities if e.name == entity_name), None)

    async def get_entities(self, tenant_id):
        return list(self.entities)

    def clear_cache(self, tenant_id=None) -> None:
        self.cleared.append(tenant_id)


@pytest.fixture
def search_client() -> FakeSearchClient:
    return FakeSearchClient()


@pytest.fixture
def rag_client() -> FakeRAGClient:
    return FakeRAGClient()


@pytest.fixture
def embed_manager() -> FakeEmbedManager:
    return FakeEmbedManager()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
