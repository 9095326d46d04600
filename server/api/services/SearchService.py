"""Search service: text, semantic, hybrid and global search over a tenant's entities.

Text search runs against Typesense, semantic search against Qdrant with a
mandatory tenant (and, for unit-scoped entities, unit) payload filter.
Hybrid search fuses both and degrades to whichever sub-search succeeded.
"""

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import RECORD_ID_KEY, VectorPoint
from shared.clients.search.SearchClientInterface import SearchClientInterface
from shared.config.ConfigLoaderInterface import ConfigLoaderInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.entity_helper import get_embeddable_fields, is_tenant_scoped
from shared.helper.score_fusion import fuse_results, normalize_weights
from shared.models.entity import EntityDefinition
from shared.models.errors import InvalidRequestError, NotFoundError
from shared.models.search import (
    GlobalSearchGroup,
    HybridDiagnostics,
    HybridSearchResponse,
    SemanticHit,
    TextSearchQuery,
    TextSearchResult,
)
from shared.models.tenant import TenantContext
from services.search_index.IndexingService import IndexingService


class SearchService:
    """Orchestrates entity lookup, embedding, engine queries and result fusion."""

    def __init__(
        self,
        helper_config: HelperConfig,
        search_client: SearchClientInterface,
        rag_client: RAGClientInterface,
        config_loader: ConfigLoaderInterface,
        indexing_service: IndexingService,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._search = search_client
        self._rag = rag_client
        self._config_loader = config_loader
        self._indexing = indexing_service

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _get_entity(self, ctx: TenantContext, entity: str) -> EntityDefinition:
        entity_def = await self._config_loader.get_entity(ctx.tenant_id, entity)
        if entity_def is None:
            raise NotFoundError(f"Entity '{entity}' not found for tenant '{ctx.tenant_id}'.")
        return entity_def

    @staticmethod
    def build_vector_filter(ctx: TenantContext, entity_def: EntityDefinition) -> dict:
        """Payload filter isolating a vector search to the tenant, and to the unit for unit-scoped entities."""
        must = [{"key": "tenant_id", "match": {"value": ctx.tenant_id}}]
        if not is_tenant_scoped(entity_def):
            must.append({"key": "unit_id", "match": {"value": ctx.unit_id}})
        return {"must": must}

    ##########################################
    ################ CORE ####################
    ##########################################

    async def text_search(self, ctx: TenantContext, query: TextSearchQuery) -> TextSearchResult:
        """Full-text search in one entity collection, creating the collection on first use.

        Raises:
            NotFoundError: If the entity is not configured for the tenant.
            EngineFailureError: If the text engine fails.
        """
        entity_def = await self._get_entity(ctx, query.entity)
        await self._indexing.ensure_text_collection(ctx, entity_def)
        return await self._search.do_search(ctx, query.entity, query, entity_def)

    async def semantic_search(self, ctx: TenantContext, entity: str, query: str, limit: int = 10) -> list[SemanticHit]:
        """Nearest-neighbour search on the entity's embeddable text.

        Raises:
            NotFoundError: If the entity is not configured for the tenant.
            InvalidRequestError: If the entity has no embeddable fields.
            ConfigurationError: If the embeddings provider is misconfigured.
            EngineFailureError: If embedding or the vector engine fails.
        """
        entity_def = await self._get_entity(ctx, entity)
        if not get_embeddable_fields(entity_def):
            raise InvalidRequestError(f"Entity '{entity}' has no embeddable fields.")

        embed_client = await self._indexing.get_embed_client(ctx.tenant_id)
        [query_vector] = await embed_client.do_embed([query])
        await self._indexing.ensure_vector_collection(ctx.tenant_id, entity_def, vector_size=len(query_vector))

        raw_hits = await self._rag.do_search(
            ctx.tenant_id,
            entity,
            query_vector,
            limit=limit,
            filter=self.build_vector_filter(ctx, entity_def),
        )
        hits: list[SemanticHit] = []
        for raw in raw_hits:
            payload = dict(raw.get("payload") or {})
            record_id = VectorPoint.record_id_of(raw["id"], payload)
            payload.pop(RECORD_ID_KEY, None)
            hits.append(SemanticHit(id=record_id, score=raw.get("score", 0.0), payload=payload))
        return hits

    async def hybrid_search(
        self,
        ctx: TenantContext,
        entity: str,
        query: str,
        semantic_weight: float = 0.7,
        text_weight: float = 0.3,
        limit: int = 10,
        include_diagnostics: bool = False,
    ) -> HybridSearchResponse:
        """Weighted fusion of semantic and full-text results.

        Each sub-search fetches limit*2 candidates. A failing sub-search counts
        as empty; a sub-search whose normalized weight is zero is not run.

        Raises:
            NotFoundError: If the entity is not configured for the tenant.
            InvalidRequestError: If a weight is negative or both are zero.
        """
        entity_def = await self._get_entity(ctx, entity)
        w_sem, w_text = normalize_weights(semantic_weight, text_weight)
        diagnostics = HybridDiagnostics()
        candidates = limit * 2

        semantic_hits: list[SemanticHit] = []
        if w_sem == 0:
            diagnostics.semantic_skipped = True
        elif get_embeddable_fields(entity_def):
            try:
                semantic_hits = await self.semantic_search(ctx, entity, query, candidates)
            except Exception as e:
                diagnostics.semantic_failed = True
                self.logging.warning("Semantic search failed for %s: %s", entity, e)
        else:
            diagnostics.semantic_skipped = True

        text_hits: list[dict] = []
        if w_text > 0:
            try:
                result = await self.text_search(ctx, TextSearchQuery(q=query, entity=entity, per_page=candidates, page=1))
                text_hits = result.hits
            except Exception as e:
                diagnostics.text_failed = True
                self.logging.warning("Text search failed for %s: %s", entity, e)

        results = fuse_results(semantic_hits, text_hits, w_sem, w_text, limit)
        self.logging.info(
            "Hybrid search %s/%s: %d semantic, %d text candidates -> %d results.",
            ctx.tenant_id,
            entity,
            len(semantic_hits),
            len(text_hits),
            len(results),
        )
        return HybridSearchResponse(
            results=results,
            total=len(results),
            diagnostics=diagnostics if include_diagnostics else None,
        )

    async def global_search(self, ctx: TenantContext, query: str, limit: int = 10) -> list[GlobalSearchGroup]:
        """Text search across every entity of the tenant. Entities without hits or with failing searches are left out."""
        groups: list[GlobalSearchGroup] = []
        for entity_def in await self._config_loader.get_entities(ctx.tenant_id):
            try:
                result = await self.text_search(ctx, TextSearchQuery(q=query, entity=entity_def.name, per_page=limit, page=1))
            except Exception as e:
                self.logging.warning("Global search failed for entity %s: %s", entity_def.name, e)
                continue
            if result.hits:
                items = [{**hit, "_id": hit.get("id") or hit.get("_id")} for hit in result.hits]
                groups.append(GlobalSearchGroup(entity=entity_def.name, items=items))
        return groups
