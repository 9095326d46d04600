from abc import abstractmethod
from typing import Any

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.helper.collection_naming import vector_collection_name
from shared.models.errors import EngineFailureError


class RAGClientInterface(ClientInterface):
    """Vector engine adapter.

    Collections are addressed per (tenant, entity) via vector_collection_name().
    Searches do NOT inject tenant isolation: every caller must pass the
    tenant_id (and, for unit-scoped entities, unit_id) match clauses itself.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collection(self, collection: str) -> str:
        """
        Returns the endpoint path to look up or create a collection.

        Args:
            collection (str): The collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col")
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self, collection: str) -> str:
        """
        Returns the endpoint path for points upsert requests.

        Args:
            collection (str): The collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points")
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self, collection: str) -> str:
        """
        Returns the endpoint path for deleting points by id.

        Args:
            collection (str): The collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/delete")
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self, collection: str) -> str:
        """
        Returns the endpoint path for nearest-neighbour search requests.

        Args:
            collection (str): The collection name.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/search")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        """Builds the backend-specific request payload for a collection creation."""
        pass

    @abstractmethod
    def get_upsert_payload(self, points: list[VectorPoint]) -> dict:
        """Builds the backend-specific request payload for a points upsert."""
        pass

    @abstractmethod
    def get_delete_payload(self, point_ids: list[str | int]) -> dict:
        """Builds the backend-specific request payload for a delete by point ids."""
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], limit: int, filter: dict | None, score_threshold: float | None) -> dict:
        """
        Builds the backend-specific request payload for a nearest-neighbour search.

        Args:
            vector (list[float]): The query vector.
            limit (int): The maximum number of results.
            filter (dict | None): Metadata filter, passed through untouched.
            score_threshold (float | None): Minimum similarity score, if any.

        Returns:
            dict: The payload for the search request.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[dict[str, Any]]:
        """
        Extracts the scored points from a raw search response.

        Returns:
            list[dict[str, Any]]: Dicts with keys "id", "score" and "payload".
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self, collection: str) -> bool:
        """Check if a collection exists in the rag backend.

        Any lookup failure (404, transport error, other status) counts as missing.

        Returns:
            bool: True if the collection exists, False otherwise.
        """
        try:
            resp = await self.do_request(method="GET", endpoint=self._get_endpoint_collection(collection))
        except EngineFailureError:
            return False
        return resp.status_code < 300

    async def do_create_collection(self, collection: str, vector_size: int, distance: str = "Cosine") -> None:
        """Create a collection in the rag backend.

        A conflict (created concurrently by another worker) counts as success.

        Args:
            collection (str): The collection name.
            vector_size (int): The size of the vectors in the collection.
            distance (str): The distance metric for the vectors.

        Raises:
            EngineFailureError: If the backend rejects the creation for any other reason.
        """
        resp = await self.do_request(
            method="PUT",
            json=self.get_create_collection_payload(vector_size, distance),
            endpoint=self._get_endpoint_collection(collection))
        if resp.status_code == 409:
            self.logging.debug("Vector collection '%s' was created concurrently.", collection)
            return
        if resp.status_code >= 300:
            self.logging.error("Creating vector collection '%s' failed with status %d: %s", collection, resp.status_code, resp.text[:500])
            raise EngineFailureError(f"Creating vector collection '{collection}' failed with status {resp.status_code}", status_code=resp.status_code)
        self.logging.info("Created vector collection '%s' (size=%d, distance=%s).", collection, vector_size, distance)

    async def do_ensure_collection(self, tenant_id: str, entity: str, vector_size: int) -> str:
        """Create the (tenant, entity) vector collection if it does not exist yet.

        An existing collection is never reconciled with a different vector_size.

        Returns:
            str: The collection name.
        """
        collection = vector_collection_name(tenant_id, entity)
        if not await self.do_existence_check(collection):
            await self.do_create_collection(collection, vector_size=vector_size)
        return collection

    async def do_upsert_points(self, tenant_id: str, entity: str, points: list[VectorPoint]) -> None:
        """Upsert points into the (tenant, entity) collection.
        Inserts new points or replaces existing ones with the same id.
        """
        await self.do_request(
            method="PUT",
            json=self.get_upsert_payload(points),
            endpoint=self._get_endpoint_points(vector_collection_name(tenant_id, entity)),
            raise_on_error=True,
        )

    async def do_delete_points(self, tenant_id: str, entity: str, point_ids: list[str | int]) -> None:
        """Delete points by id. Ids that are not present are ignored by the backend,
        a missing collection is treated the same way."""
        collection = vector_collection_name(tenant_id, entity)
        resp = await self.do_request(
            method="POST",
            json=self.get_delete_payload(point_ids),
            endpoint=self._get_endpoint_delete_points(collection),
        )
        if resp.status_code == 404:
            self.logging.debug("Vector collection '%s' not found, nothing to delete.", collection)
            return
        if resp.status_code >= 300:
            self.logging.error("Deleting points from '%s' failed with status %d: %s", collection, resp.status_code, resp.text[:500])
            raise EngineFailureError(f"Deleting points from '{collection}' failed with status {resp.status_code}", status_code=resp.status_code)

    async def do_search(
        self,
        tenant_id: str,
        entity: str,
        vector: list[float],
        limit: int = 10,
        filter: dict | None = None,
        score_threshold: float | None = None,
    ) -> list[dict[str, Any]]:
        """Nearest-neighbour search in the (tenant, entity) collection.

        Args:
            tenant_id (str): Tenant owning the collection.
            entity (str): Entity name.
            vector (list[float]): The query vector.
            limit (int): The maximum number of results.
            filter (dict | None): Metadata filter. Must contain the tenant/unit match clauses.
            score_threshold (float | None): Minimum similarity score, if any.

        Returns:
            list[dict[str, Any]]: Scored points with "id", "score" and "payload".
        """
        resp = await self.do_request(
            method="POST",
            json=self.get_search_payload(vector, limit, filter, score_threshold),
            endpoint=self._get_endpoint_search(vector_collection_name(tenant_id, entity)),
            raise_on_error=True,
        )
        return self.extract_search_hits(resp.json())
