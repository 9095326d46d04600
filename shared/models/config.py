from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared.models.entity import EntityDefinition


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required for a env setting.

    Attributes:
        env_key (str): The key/name of the environment variable to read.
        val_type (str): The expected type of the environment variable's value. Supported types are "string", "number", "bool", and "list".
        default (str | int | bool | list | None): An optional default value if the environment variable is not set. If None, the variable is required and an error will be raised if it is not set.
    """

    env_key: str
    val_type: str
    default: str | int | bool | list | None = None


class EmbeddingsProviderConfig(BaseModel):
    """
    Embedding backend selection, either process-wide (from env) or stored per tenant.

    Attributes:
        name (str): Provider name. Selects the EmbedClient implementation; names without one
            (e.g. "local") are stored as is and rejected when the client is resolved.
        api_key (str | None): API key for the provider. Accepts the stored "apiKey" spelling.
        model (str | None): Embedding model name. Falls back to the provider default.
        base_url (str | None): Base URL of the provider API. Falls back to the provider default.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    api_key: str | None = Field(default=None, alias="apiKey")
    model: str | None = None
    base_url: str | None = Field(default=None, alias="baseUrl")


class TenantConfig(BaseModel):
    """Tenant configuration document as stored in the `tenant_config` collection."""

    tenant_id: str
    name: str = ""
    settings: dict[str, Any] | None = None
    embeddings_provider: EmbeddingsProviderConfig | None = Field(default=None, alias="embeddingsProvider")

    model_config = ConfigDict(populate_by_name=True)


class UnitConfig(BaseModel):
    """Unit configuration document as stored in the `units_config` collection."""

    unit_id: str
    tenant_id: str
    name: str = ""
    settings: dict[str, Any] | None = None


class EntitiesConfig(BaseModel):
    """All entity definitions of a tenant, as stored in the `entities_config` collection."""

    tenant_id: str
    entities: list[EntityDefinition] = []
