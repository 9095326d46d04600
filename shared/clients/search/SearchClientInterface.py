from abc import abstractmethod
from typing import Any

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.collection_naming import collection_name
from shared.helper.entity_helper import is_tenant_scoped
from shared.models.entity import EntityDefinition
from shared.models.errors import EngineFailureError
from shared.models.indexing import CollectionStats
from shared.models.search import TextSearchQuery, TextSearchResult
from shared.models.tenant import TenantContext


class SearchClientInterface(ClientInterface):
    """Full-text engine adapter.

    Unlike the vector adapter, this adapter enforces tenant isolation itself:
    every search is filtered on tenant_id, and on unit_id for unit-scoped entities.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "search"
        """
        return "search"

    def get_collection_name(self, ctx: TenantContext, entity: str, entity_def: EntityDefinition | None = None) -> str:
        """Resolves the collection of an entity within the tenant context."""
        return collection_name(ctx.tenant_id, ctx.unit_id, entity, is_global=is_tenant_scoped(entity_def))

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collections(self) -> str:
        """Returns the endpoint path for creating and listing collections (e.g. "/collections")."""
        pass

    @abstractmethod
    def _get_endpoint_collection(self, collection: str) -> str:
        """Returns the endpoint path for retrieving a single collection (e.g. "/collections/my_col")."""
        pass

    @abstractmethod
    def _get_endpoint_documents(self, collection: str) -> str:
        """Returns the endpoint path for document upserts (e.g. "/collections/my_col/documents")."""
        pass

    @abstractmethod
    def _get_endpoint_document(self, collection: str, doc_id: str) -> str:
        """Returns the endpoint path for a single document (e.g. "/collections/my_col/documents/42")."""
        pass

    @abstractmethod
    def _get_endpoint_search(self, collection: str) -> str:
        """Returns the endpoint path for search requests (e.g. "/collections/my_col/documents/search")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_collection_schema(self, entity_def: EntityDefinition, name: str) -> dict:
        """
        Derives the engine collection schema from an entity definition.

        Args:
            entity_def (EntityDefinition): The entity whose indexed/searchable fields make up the schema.
            name (str): The collection name.

        Returns:
            dict: The schema for the create-collection request.
        """
        pass

    @abstractmethod
    def get_filter(self, ctx: TenantContext, filters: dict[str, Any] | None, tenant_scoped: bool) -> str:
        """
        Builds the engine-native filter expression: tenant (and unit) isolation plus equality filters.

        Args:
            ctx (TenantContext): The tenant context to isolate on.
            filters (dict[str, Any] | None): Additional equality filters. List values match any element.
            tenant_scoped (bool): True if the entity is shared by all units (no unit filter).

        Returns:
            str: The filter expression.
        """
        pass

    @abstractmethod
    def get_search_params(self, ctx: TenantContext, query: TextSearchQuery, entity_def: EntityDefinition | None = None) -> dict:
        """Builds the engine-native search parameters for a structured query."""
        pass

    @abstractmethod
    def get_upsert_params(self) -> dict:
        """Returns the query parameters of a document upsert request."""
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_search_result(self, raw_response: dict) -> TextSearchResult:
        """Normalizes a raw search response. Hits are returned as flat field maps."""
        pass

    @abstractmethod
    def extract_collection_stats(self, raw_response: list) -> list[CollectionStats]:
        """Normalizes a raw collection listing into name and document count per collection."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_retrieve_collection(self, collection: str) -> dict | None:
        """Retrieve a collection.

        Returns:
            dict | None: The collection description, or None if it does not exist.

        Raises:
            EngineFailureError: On any failure other than "not found".
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_collection(collection))
        if resp.status_code == 404:
            return None
        if resp.status_code >= 300:
            self.logging.error("Retrieving collection '%s' failed with status %d: %s", collection, resp.status_code, resp.text[:500])
            raise EngineFailureError(f"Retrieving collection '{collection}' failed with status {resp.status_code}", status_code=resp.status_code)
        return resp.json()

    async def do_create_collection(self, schema: dict) -> None:
        """Create a collection. A conflict (created concurrently) counts as success.

        Raises:
            EngineFailureError: If the engine rejects the creation for any other reason.
        """
        resp = await self.do_request(method="POST", json=schema, endpoint=self._get_endpoint_collections())
        if resp.status_code == 409:
            self.logging.debug("Collection '%s' was created concurrently.", schema.get("name"))
            return
        if resp.status_code >= 300:
            self.logging.error("Creating collection '%s' failed with status %d: %s", schema.get("name"), resp.status_code, resp.text[:500])
            raise EngineFailureError(f"Creating collection '{schema.get('name')}' failed with status {resp.status_code}", status_code=resp.status_code)
        self.logging.info("Created search collection '%s' with %d fields.", schema.get("name"), len(schema.get("fields", [])))

    async def do_list_collections(self) -> list[CollectionStats]:
        """List every collection of the engine with its document count.

        Raises:
            EngineFailureError: If the listing fails.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_collections(), raise_on_error=True)
        return self.extract_collection_stats(resp.json())

    async def do_ensure_collection(self, ctx: TenantContext, entity: str, entity_def: EntityDefinition) -> str:
        """Create the entity's collection from its definition if it does not exist yet.

        Returns:
            str: The collection name.
        """
        collection = self.get_collection_name(ctx, entity, entity_def)
        if await self.do_retrieve_collection(collection) is None:
            await self.do_create_collection(self.get_collection_schema(entity_def, collection))
        return collection

    async def do_upsert_document(self, ctx: TenantContext, entity_def: EntityDefinition, doc: dict[str, Any]) -> None:
        """Insert or replace a document. Values that do not match the schema are coerced or dropped."""
        await self.do_request(
            method="POST",
            json=doc,
            params=self.get_upsert_params(),
            endpoint=self._get_endpoint_documents(self.get_collection_name(ctx, entity_def.name, entity_def)),
            raise_on_error=True,
        )

    async def do_delete_document(self, ctx: TenantContext, entity_def: EntityDefinition, doc_id: str) -> None:
        """Delete a document by id. A missing document (or collection) is not an error."""
        collection = self.get_collection_name(ctx, entity_def.name, entity_def)
        resp = await self.do_request(method="DELETE", endpoint=self._get_endpoint_document(collection, doc_id))
        if resp.status_code == 404:
            self.logging.debug("Document '%s' not present in '%s', nothing to delete.", doc_id, collection)
            return
        if resp.status_code >= 300:
            self.logging.error("Deleting '%s' from '%s' failed with status %d: %s", doc_id, collection, resp.status_code, resp.text[:500])
            raise EngineFailureError(f"Deleting '{doc_id}' from '{collection}' failed with status {resp.status_code}", status_code=resp.status_code)

    async def do_search(self, ctx: TenantContext, entity: str, query: TextSearchQuery, entity_def: EntityDefinition | None = None) -> TextSearchResult:
        """Run a full-text search within the tenant context.

        Args:
            ctx (TenantContext): Tenant and unit to isolate on.
            entity (str): Entity whose collection is searched.
            query (TextSearchQuery): The structured query.
            entity_def (EntityDefinition | None): Definition used to resolve scope. Unit-scoped when absent.

        Returns:
            TextSearchResult: Flat hits, found count and page.
        """
        resp = await self.do_request(
            method="GET",
            params=self.get_search_params(ctx, query, entity_def),
            endpoint=self._get_endpoint_search(self.get_collection_name(ctx, entity, entity_def)),
            raise_on_error=True,
        )
        return self.extract_search_result(resp.json())
