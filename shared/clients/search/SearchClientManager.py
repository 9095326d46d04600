from shared.helper.HelperConfig import HelperConfig
from shared.clients.search.SearchClientInterface import SearchClientInterface
from shared.models.errors import ConfigurationError


class SearchClientManager:
    """
    Manager class to instantiate the full-text engine client based on configuration.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        # SEARCH_ENGINE, default "typesense"
        engine = self.helper_config.get_string_val("SEARCH_ENGINE", default="typesense")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> SearchClientInterface:
        engine = self._get_engine_from_env()
        class_name = f"SearchClient{engine}"
        try:
            module = __import__(
                f"shared.clients.search.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Unsupported search engine specified: '{engine}'. Error: {e}") from e
        self.logging.debug("Instantiated search client for engine: %s", engine)
        return client_class(helper_config=self.helper_config)

    def get_client(self) -> SearchClientInterface:
        return self.client
