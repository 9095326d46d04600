from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.search.SearchClientInterface import SearchClientInterface
from shared.clients.search.SearchClientManager import SearchClientManager
from shared.clients.store.mongo.StoreClientMongo import StoreClientMongo
from shared.config.ConfigCache import ConfigCache
from shared.config.ConfigLoaderMongo import ConfigLoaderMongo
from shared.helper.HelperConfig import HelperConfig


class ClientBundle:
    """
    Every engine client a process needs, constructed once and injected into the services.

    Used by the FastAPI lifespan and by the indexer and backfill runners.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.search_client: SearchClientInterface = SearchClientManager(helper_config=helper_config).get_client()
        self.rag_client: RAGClientInterface = RAGClientManager(helper_config=helper_config).get_client()
        self.store_client = StoreClientMongo(helper_config=helper_config)
        self.embed_manager = EmbedClientManager(helper_config=helper_config)
        self.config_cache = ConfigCache()
        self.config_loader: ConfigLoaderMongo | None = None

    async def boot(self, healthcheck: bool = True) -> None:
        """
        Boots all clients and optionally checks that the engines are reachable.

        Raises:
            EngineFailureError: If a healthcheck fails.
        """
        await self.search_client.boot()
        await self.rag_client.boot()
        await self.store_client.boot()
        self.config_loader = ConfigLoaderMongo(
            helper_config=self.helper_config,
            db=self.store_client.get_database(),
            cache=self.config_cache,
        )

        if healthcheck:
            await self.search_client.do_healthcheck()
            await self.rag_client.do_healthcheck()
            self.logging.info(
                "Engines reachable: %s, %s.",
                self.search_client.get_engine_name(),
                self.rag_client.get_engine_name(),
            )

    async def close(self) -> None:
        await self.embed_manager.close()
        await self.search_client.close()
        await self.rag_client.close()
        await self.store_client.close()
