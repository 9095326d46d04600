from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from shared.config.ConfigCache import ConfigCache
from shared.config.ConfigLoaderInterface import ConfigLoaderInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EntitiesConfig, TenantConfig, UnitConfig
from shared.models.entity import EntityDefinition
from shared.models.errors import ConfigurationError

TENANT_CONFIG_COLLECTION = "tenant_config"
UNITS_CONFIG_COLLECTION = "units_config"
ENTITIES_CONFIG_COLLECTION = "entities_config"


class ConfigLoaderMongo(ConfigLoaderInterface):
    """Loads configuration documents from MongoDB, caching them in an injected ConfigCache.

    A malformed document raises ConfigurationError when it is looked up directly
    and is skipped (with an error log) when it is part of a listing.
    """

    def __init__(self, helper_config: HelperConfig, db: AsyncIOMotorDatabase, cache: ConfigCache | None = None):
        self.logging = helper_config.get_logger()
        self._db = db
        self._cache = cache if cache is not None else ConfigCache()

    async def get_tenant(self, tenant_id: str) -> TenantConfig | None:
        cached = self._cache.get_tenant(tenant_id)
        if cached is not None:
            return cached

        doc = await self._db[TENANT_CONFIG_COLLECTION].find_one({"tenant_id": tenant_id})
        if not doc:
            return None
        try:
            config = TenantConfig.model_validate(doc)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid tenant config for '{tenant_id}': {e}") from e
        self._cache.set_tenant(tenant_id, config)
        return config

    async def get_tenants(self) -> list[TenantConfig]:
        docs = await self._db[TENANT_CONFIG_COLLECTION].find({}).to_list(length=None)
        tenants: list[TenantConfig] = []
        for doc in docs:
            try:
                tenants.append(TenantConfig.model_validate(doc))
            except ValidationError as e:
                self.logging.error("Skipping invalid tenant config '%s': %s", doc.get("tenant_id"), e)
        return tenants

    async def get_units(self, tenant_id: str) -> list[UnitConfig]:
        cached = self._cache.get_units(tenant_id)
        if cached is not None:
            return cached

        docs = await self._db[UNITS_CONFIG_COLLECTION].find({"tenant_id": tenant_id}).to_list(length=None)
        units: list[UnitConfig] = []
        for doc in docs:
            try:
                units.append(UnitConfig.model_validate(doc))
            except ValidationError as e:
                self.logging.error("Skipping invalid unit config '%s' of tenant '%s': %s", doc.get("unit_id"), tenant_id, e)
        self._cache.set_units(tenant_id, units)
        return units

    async def _load_entities(self, tenant_id: str) -> EntitiesConfig | None:
        cached = self._cache.get_entities(tenant_id)
        if cached is not None:
            return cached

        doc = await self._db[ENTITIES_CONFIG_COLLECTION].find_one({"tenant_id": tenant_id})
        if not doc:
            self.logging.warning("No entities config found for tenant '%s'.", tenant_id)
            return None
        try:
            config = EntitiesConfig.model_validate(doc)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid entities config for '{tenant_id}': {e}") from e
        self._cache.set_entities(tenant_id, config)
        return config

    async def get_entity(self, tenant_id: str, entity_name: str) -> EntityDefinition | None:
        config = await self._load_entities(tenant_id)
        if config is None:
            return None
        entity = self._cache.get_entity(tenant_id, entity_name)
        if entity is None:
            self.logging.warning(
                "Entity '%s' not found for tenant '%s'. Available: %s",
                entity_name,
                tenant_id,
                [e.name for e in config.entities],
            )
        return entity

    async def get_entities(self, tenant_id: str) -> list[EntityDefinition]:
        config = await self._load_entities(tenant_id)
        return config.entities if config is not None else []

    def clear_cache(self, tenant_id: str | None = None) -> None:
        self._cache.clear(tenant_id)
