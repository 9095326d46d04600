from shared.models.config import EntitiesConfig, TenantConfig, UnitConfig
from shared.models.entity import EntityDefinition


class ConfigCache:
    """In-process cache for tenant, unit and entity configuration.

    Injected into the config loader; clear() is the invalidation hook after
    configuration changes.
    """

    def __init__(self):
        self._tenants: dict[str, TenantConfig] = {}
        self._units: dict[str, dict[str, UnitConfig]] = {}
        self._entities: dict[str, EntitiesConfig] = {}

    ################ TENANTS ##################
    def get_tenant(self, tenant_id: str) -> TenantConfig | None:
        return self._tenants.get(tenant_id)

    def set_tenant(self, tenant_id: str, config: TenantConfig) -> None:
        self._tenants[tenant_id] = config

    ################ UNITS ##################
    def get_units(self, tenant_id: str) -> list[UnitConfig] | None:
        units = self._units.get(tenant_id)
        return list(units.values()) if units is not None else None

    def set_units(self, tenant_id: str, units: list[UnitConfig]) -> None:
        self._units[tenant_id] = {unit.unit_id: unit for unit in units}

    ################ ENTITIES ##################
    def get_entities(self, tenant_id: str) -> EntitiesConfig | None:
        return self._entities.get(tenant_id)

    def get_entity(self, tenant_id: str, entity_name: str) -> EntityDefinition | None:
        config = self._entities.get(tenant_id)
        if config is None:
            return None
        return next((e for e in config.entities if e.name == entity_name), None)

    def set_entities(self, tenant_id: str, config: EntitiesConfig) -> None:
        self._entities[tenant_id] = config

    def clear(self, tenant_id: str | None = None) -> None:
        """Drop one tenant's cached configuration, or everything when no tenant is given."""
        if tenant_id:
            self._tenants.pop(tenant_id, None)
            self._units.pop(tenant_id, None)
            self._entities.pop(tenant_id, None)
        else:
            self._tenants.clear()
            self._units.clear()
            self._entities.clear()
