from abc import ABC, abstractmethod

from shared.models.config import TenantConfig, UnitConfig
from shared.models.entity import EntityDefinition


class ConfigLoaderInterface(ABC):
    """Read access to tenant, unit and entity configuration."""

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> TenantConfig | None:
        pass

    @abstractmethod
    async def get_tenants(self) -> list[TenantConfig]:
        pass

    @abstractmethod
    async def get_units(self, tenant_id: str) -> list[UnitConfig]:
        pass

    @abstractmethod
    async def get_entity(self, tenant_id: str, entity_name: str) -> EntityDefinition | None:
        """
        Looks up one entity definition of a tenant.

        Returns:
            EntityDefinition | None: The definition, or None if the tenant or entity is unknown.
        """
        pass

    @abstractmethod
    async def get_entities(self, tenant_id: str) -> list[EntityDefinition]:
        pass

    def clear_cache(self, tenant_id: str | None = None) -> None:
        """Invalidate cached configuration. Loaders without a cache do nothing."""
        return None
