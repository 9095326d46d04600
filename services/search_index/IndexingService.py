"""Dual-write indexing.

Projects primary-store records into the full-text and vector engines and
ensures the target collections exist before the first write. Shared by the
change-capture indexer, the backfill and the HTTP surface.
"""

from typing import Any

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint, make_point_id
from shared.clients.search.SearchClientInterface import SearchClientInterface
from shared.config.ConfigLoaderInterface import ConfigLoaderInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.collection_naming import collection_name, sanitize, vector_collection_name
from shared.helper.document_projector import INTERNAL_ID_FIELD, normalize_document, project
from shared.helper.entity_helper import concat_fields, get_embeddable_fields, is_tenant_scoped
from shared.models.entity import EntityDefinition
from shared.models.errors import NotFoundError
from shared.models.indexing import (
    CollectionStats,
    IndexedCollectionDetail,
    IndexingMetrics,
    IndexingMetricsSummary,
    ScopeMetrics,
)
from shared.models.tenant import TenantContext

# text embedded once per (tenant, entity) to discover the vector dimension
SAMPLE_TEXT = "sample"


class IndexingService:
    """Writes records to both engines. The two writes are not atomic; backfill reconciles drift."""

    def __init__(
        self,
        helper_config: HelperConfig,
        search_client: SearchClientInterface,
        rag_client: RAGClientInterface,
        embed_manager: EmbedClientManager,
        config_loader: ConfigLoaderInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._search_client = search_client
        self._rag_client = rag_client
        self._embed_manager = embed_manager
        self._config_loader = config_loader
        self._ready_vector_collections: set[str] = set()

    ##########################################
    ################ GETTER ##################
    ##########################################

    async def get_embed_client(self, tenant_id: str) -> EmbedClientInterface:
        """Embed client for a tenant, honouring its stored embeddingsProvider override."""
        tenant = await self._config_loader.get_tenant(tenant_id)
        override = tenant.embeddings_provider if tenant is not None else None
        return await self._embed_manager.get_client(tenant_id, override)

    ##########################################
    ############ SCHEMA ENSURE ###############
    ##########################################

    async def ensure_text_collection(self, ctx: TenantContext, entity_def: EntityDefinition) -> str:
        return await self._search_client.do_ensure_collection(ctx, entity_def.name, entity_def)

    async def ensure_vector_collection(self, tenant_id: str, entity_def: EntityDefinition, vector_size: int | None = None) -> str:
        """Create the (tenant, entity) vector collection, sized by a sample embedding.

        Callers holding a freshly embedded vector pass its length as vector_size,
        which skips the sample embedding.

        The dimension is discovered once per process and collection; it is not
        reconciled if the embedding model changes later.

        Returns:
            str: The vector collection name.

        Raises:
            ConfigurationError: If the tenant's embeddings provider is misconfigured.
            EngineFailureError: If embedding or collection creation fails.
        """
        name = vector_collection_name(tenant_id, entity_def.name)
        if name in self._ready_vector_collections:
            return name

        if vector_size is None:
            embed_client = await self.get_embed_client(tenant_id)
            [sample_vector] = await embed_client.do_embed([SAMPLE_TEXT])
            vector_size = len(sample_vector)
        await self._rag_client.do_ensure_collection(tenant_id, entity_def.name, vector_size)
        self._ready_vector_collections.add(name)
        self.logging.debug("Vector collection '%s' ready (dimension %d).", name, vector_size)
        return name

    async def ensure_partition(self, ctx: TenantContext, entity_def: EntityDefinition) -> None:
        """Ensure the text collection and, for entities with embeddable fields, the vector collection."""
        await self.ensure_text_collection(ctx, entity_def)
        if get_embeddable_fields(entity_def):
            await self.ensure_vector_collection(ctx.tenant_id, entity_def)

    ##########################################
    ############### WRITES ###################
    ##########################################

    async def index_document(
        self,
        ctx: TenantContext,
        entity_def: EntityDefinition,
        raw_doc: dict[str, Any],
        doc_id: str | None = None,
    ) -> bool:
        """Project a record and write it to the text engine, then to the vector engine.

        The vector write is skipped when the entity has no embeddable fields or
        the concatenated embeddable text is blank.

        Args:
            ctx (TenantContext): Partition the record belongs to.
            entity_def (EntityDefinition): The record's entity.
            raw_doc (dict[str, Any]): The record as read from the primary store.
            doc_id (str | None): Record identifier. Taken from the record's "_id" when omitted.

        Returns:
            bool: True if a vector point was written as well.

        Raises:
            EngineFailureError: If either engine write or the embedding fails.
            ConfigurationError: If the embeddings provider is misconfigured.
        """
        doc_id = doc_id if doc_id is not None else str(raw_doc.get(INTERNAL_ID_FIELD))
        normalized = normalize_document(raw_doc)
        projected = project(normalized, doc_id, ctx.tenant_id, ctx.unit_id, entity_def)

        await self._search_client.do_upsert_document(ctx, entity_def, projected.text)

        embeddable_fields = get_embeddable_fields(entity_def)
        if not embeddable_fields:
            return False
        text = concat_fields(normalized, embeddable_fields).strip()
        if not text:
            self.logging.debug("No embeddable text for %s/%s, skipping vector write.", entity_def.name, doc_id)
            return False

        embed_client = await self.get_embed_client(ctx.tenant_id)
        [vector] = await embed_client.do_embed([text])
        await self.ensure_vector_collection(ctx.tenant_id, entity_def, vector_size=len(vector))
        point = VectorPoint.build(doc_id, vector, projected.vector)
        await self._rag_client.do_upsert_points(ctx.tenant_id, entity_def.name, [point])
        return True

    async def remove_document(self, ctx: TenantContext, entity_def: EntityDefinition, doc_id: str) -> None:
        """Remove a record from both engines. Absent targets are no-ops."""
        await self._search_client.do_delete_document(ctx, entity_def, doc_id)
        if get_embeddable_fields(entity_def):
            await self._rag_client.do_delete_points(ctx.tenant_id, entity_def.name, [make_point_id(doc_id)])

    def reset(self) -> None:
        """Forget which vector collections are known to exist."""
        self._ready_vector_collections.clear()

    ##########################################
    ############### METRICS ##################
    ##########################################

    async def get_metrics(self, tenant_id: str) -> IndexingMetrics:
        """Compare the collections a tenant's configuration implies with those the text engine holds.

        Tenant-scoped entities are expected once ("global"), unit-scoped entities
        once per unit ("local"). Existing collections of the tenant that no
        configured entity maps to are reported as "unknown". Collections of
        other tenants are never reported.

        Raises:
            NotFoundError: If the tenant is not configured.
            EngineFailureError: If the text engine cannot list its collections.
        """
        if await self._config_loader.get_tenant(tenant_id) is None:
            raise NotFoundError(f"Tenant '{tenant_id}' not found.")
        all_stats = await self._search_client.do_list_collections()
        entities = await self._config_loader.get_entities(tenant_id)
        units = await self._config_loader.get_units(tenant_id)
        other_tenants = [t.tenant_id for t in await self._config_loader.get_tenants() if t.tenant_id != tenant_id]

        stats = {s.name: s for s in all_stats if self._belongs_to_tenant(s.name, tenant_id, other_tenants)}

        global_collections = [
            self._collection_detail(stats, collection_name(tenant_id, None, e.name, is_global=True), e.name, "global", None)
            for e in entities
            if is_tenant_scoped(e)
        ]
        local_collections = [
            self._collection_detail(stats, collection_name(tenant_id, unit.unit_id, e.name), e.name, "local", unit.unit_id)
            for unit in units
            for e in entities
            if not is_tenant_scoped(e)
        ]
        # whatever was not claimed above
        unknown_collections = [
            IndexedCollectionDetail(
                name=s.name,
                scope="unknown",
                indexed=True,
                num_documents=s.num_documents,
                created_at=s.created_at,
                updated_at=s.updated_at,
            )
            for s in stats.values()
        ]

        tenant_collections = global_collections + local_collections + unknown_collections
        summary = IndexingMetricsSummary(
            total_collections=sum(1 for c in tenant_collections if c.indexed),
            total_documents=sum(c.num_documents for c in tenant_collections),
            global_=ScopeMetrics.of(global_collections),
            local=ScopeMetrics.of(local_collections),
            unknown=ScopeMetrics.of(unknown_collections, with_expected=False),
        )
        return IndexingMetrics(
            tenant_id=tenant_id,
            summary=summary,
            global_collections=global_collections,
            local_collections=local_collections,
            unknown_collections=unknown_collections,
        )

    @staticmethod
    def _belongs_to_tenant(name: str, tenant_id: str, other_tenants: list[str]) -> bool:
        prefix = sanitize(tenant_id) + "_"
        if not name.startswith(prefix):
            return False
        # "acme_eu_contact" belongs to tenant "acme_eu", not to "acme"
        return not any(
            name.startswith(sanitize(other) + "_") and len(sanitize(other)) > len(sanitize(tenant_id))
            for other in other_tenants
        )

    @staticmethod
    def _collection_detail(
        stats: dict[str, CollectionStats],
        name: str,
        entity: str,
        scope: str,
        unit_id: str | None,
    ) -> IndexedCollectionDetail:
        # claimed collections are removed so only unknown ones remain in stats
        stat = stats.pop(name, None)
        return IndexedCollectionDetail(
            name=name,
            entity=entity,
            scope=scope,
            unit_id=unit_id,
            indexed=stat is not None,
            num_documents=stat.num_documents if stat else 0,
            created_at=stat.created_at if stat else None,
            updated_at=stat.updated_at if stat else None,
        )
