from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.models.errors import ConfigurationError


class RAGClientManager:
    """
    Manager class to instantiate the vector engine client based on configuration.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the vector engine from ENV configuration (RAG_ENGINE, default "qdrant").

        Returns:
            str: The capitalized engine name, e.g. "Qdrant".
        """
        engine = self.helper_config.get_string_val("RAG_ENGINE", default="qdrant")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> RAGClientInterface:
        """
        Raises:
            ConfigurationError: If the configured engine has no client implementation.
        """
        engine = self._get_engine_from_env()
        class_name = f"RAGClient{engine}"
        try:
            module = __import__(
                f"shared.clients.rag.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Unsupported RAG engine specified: '{engine}'. Error: {e}") from e
        self.logging.debug("Instantiated RAG client for engine: %s", engine)
        return client_class(helper_config=self.helper_config)

    def get_client(self) -> RAGClientInterface:
        return self.client
