from typing import Any, AsyncIterator

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import ChangeEvent
from shared.models.errors import EngineFailureError


class StoreClientMongo(StoreClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._uri = self.get_config_val("URI", default="mongodb://localhost:27017", val_type="string")
        self._db_name = self.get_config_val("DB_NAME", default="crm_atlas", val_type="string")
        self._client: AsyncIOMotorClient | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Mongo"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="URI", val_type="string", default="mongodb://localhost:27017"),
            EnvConfig(env_key="DB_NAME", val_type="string", default="crm_atlas"),
        ]

    def is_booted(self) -> bool:
        return self._client is not None

    def get_database(self) -> AsyncIOMotorDatabase:
        if self._client is None:
            raise EngineFailureError("MongoDB client not initialised. Call boot() before making requests.")
        return self._client[self._db_name]

    @staticmethod
    def to_object_id(doc_id: Any) -> Any:
        """String ids that look like ObjectIds are converted, anything else is used as is."""
        if isinstance(doc_id, str) and ObjectId.is_valid(doc_id):
            return ObjectId(doc_id)
        return doc_id

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def boot(self) -> None:
        self._client = AsyncIOMotorClient(self._uri, tz_aware=True)
        self.logging.info("Connected to MongoDB database '%s'.", self._db_name)

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self.logging.info("MongoDB connection closed.")

    async def do_healthcheck(self) -> bool:
        try:
            await self.get_database().command("ping")
            return True
        except PyMongoError as e:
            self.logging.error("MongoDB healthcheck failed: %s", e)
            return False

    async def find_by_id(self, collection: str, doc_id: Any) -> dict | None:
        try:
            return await self.get_database()[collection].find_one({"_id": self.to_object_id(doc_id)})
        except PyMongoError as e:
            raise EngineFailureError(f"Failed to fetch document {doc_id} from '{collection}': {e}") from e

    async def iter_documents(self, collection: str, batch_size: int = 100) -> AsyncIterator[dict]:
        cursor = self.get_database()[collection].find({}).batch_size(batch_size)
        try:
            async for doc in cursor:
                yield doc
        except PyMongoError as e:
            raise EngineFailureError(f"Failed to read documents from '{collection}': {e}") from e

    async def watch(self, collection: str) -> AsyncIterator[ChangeEvent]:
        try:
            async with self.get_database()[collection].watch(full_document="updateLookup") as stream:
                async for raw in stream:
                    try:
                        yield ChangeEvent.model_validate(raw)
                    except ValidationError:
                        self.logging.debug("Skipping change event '%s' on '%s'.", raw.get("operationType"), collection)
        except PyMongoError as e:
            raise EngineFailureError(f"Change feed on '{collection}' failed: {e}") from e
