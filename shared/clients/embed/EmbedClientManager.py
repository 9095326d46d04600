from shared.helper.HelperConfig import HelperConfig
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.models.config import EmbeddingsProviderConfig
from shared.models.errors import ConfigurationError

GLOBAL_CACHE_KEY = "__global__"


class EmbedClientManager:
    """
    Resolves the embedding backend for a tenant and keeps one booted client per tenant.

    The process-wide provider comes from env (EMBED_ENGINE plus EMBED_<ENGINE>_*).
    A tenant's stored embeddingsProvider replaces it entirely when it names a provider.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self._clients: dict[str, EmbedClientInterface] = {}

    ##########################################
    ################ CONFIG ##################
    ##########################################

    def get_global_provider_config(self) -> EmbeddingsProviderConfig:
        """
        Reads the process-wide embeddings provider from ENV configuration.
        The engine name is not checked here; resolve() rejects unsupported engines.

        Returns:
            EmbeddingsProviderConfig: The global provider config.
        """
        engine = self.helper_config.get_string_val("EMBED_ENGINE", default="openai").strip().lower()
        prefix = f"EMBED_{engine.upper()}"
        return EmbeddingsProviderConfig(
            name=engine,
            api_key=self.helper_config.get_string_val(f"{prefix}_API_KEY", default="") or None,
            model=self.helper_config.get_string_val(f"{prefix}_MODEL", default="") or None,
            base_url=self.helper_config.get_string_val(f"{prefix}_BASE_URL", default="") or None,
        )

    ##########################################
    ############### RESOLVER #################
    ##########################################

    def resolve(
        self,
        global_config: EmbeddingsProviderConfig,
        tenant_override: EmbeddingsProviderConfig | None = None,
    ) -> EmbedClientInterface:
        """
        Instantiates the Embed client for the effective provider config.

        Args:
            global_config (EmbeddingsProviderConfig): The process-wide provider config.
            tenant_override (EmbeddingsProviderConfig | None): The tenant's provider config, if any.
                When it names a provider it is used as is; fields are never merged with the global config.

        Returns:
            EmbedClientInterface: A not yet booted client.

        Raises:
            ConfigurationError: If the provider is unsupported or needs an API key that is not configured.
        """
        config = tenant_override if tenant_override and tenant_override.name else global_config
        engine = config.name.strip().lower().capitalize()
        class_name = f"EmbedClient{engine}"
        try:
            module = __import__(
                f"shared.clients.embed.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError, ValueError) as e:
            raise ConfigurationError(f"Unsupported Embed engine specified: '{config.name}'. Error: {e}") from e

        client = client_class(helper_config=self.helper_config, provider_config=config)
        client.validate_api_key()
        self.logging.debug("Resolved Embed client for engine: %s", engine)
        return client

    ##########################################
    ################# CACHE ##################
    ##########################################

    async def get_client(
        self,
        tenant_id: str | None = None,
        tenant_override: EmbeddingsProviderConfig | None = None,
    ) -> EmbedClientInterface:
        """
        Returns the booted Embed client for a tenant, resolving and booting it on first use.

        Tenants without an override share the global client.
        """
        key = tenant_id if tenant_override and tenant_override.name and tenant_id else GLOBAL_CACHE_KEY
        client = self._clients.get(key)
        if client is not None:
            return client

        override = tenant_override if key != GLOBAL_CACHE_KEY else None
        client = self.resolve(self.get_global_provider_config(), override)
        await client.boot()
        self._clients[key] = client
        return client

    async def clear(self, tenant_id: str | None = None) -> None:
        """
        Drops cached clients: only the tenant's when tenant_id is given, otherwise all of them.
        """
        keys = [tenant_id] if tenant_id else list(self._clients)
        for key in keys:
            client = self._clients.pop(key, None)
            if client is not None:
                await client.close()

    async def close(self) -> None:
        await self.clear()
