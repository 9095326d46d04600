from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EmbeddingsProviderConfig, EnvConfig
from shared.models.errors import ConfigurationError, EngineFailureError


class EmbedClientInterface(ClientInterface):
    """Embedding backend. Built from an EmbeddingsProviderConfig rather than
    from env directly, so a tenant override can select its own backend."""

    def __init__(self, helper_config: HelperConfig, provider_config: EmbeddingsProviderConfig):
        self._provider_config = provider_config
        super().__init__(helper_config=helper_config)

        self.embed_model = provider_config.model or self._get_default_model()
        self._base_url = provider_config.base_url or self._get_default_base_url()
        self._api_key = (provider_config.api_key or "").strip()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_api_key(self) -> None:
        """
        Ensures an API key is configured when the backend needs one.

        Raises:
            ConfigurationError: If the backend requires an API key and none is configured.
        """
        if self._requires_api_key() and not self._api_key:
            raise ConfigurationError(
                f"Missing API key for embeddings provider '{self.get_engine_name()}'. "
                f"Set EMBED_{self.get_engine_name().upper()}_API_KEY or configure the tenant's embeddingsProvider.apiKey."
            )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        # everything comes from the provider config
        return []

    @abstractmethod
    def _requires_api_key(self) -> bool:
        """
        Returns whether the backend refuses requests without an API key.
        """
        pass

    @abstractmethod
    def _get_default_model(self) -> str:
        """
        Returns the model used when the provider config names none.
        """
        pass

    @abstractmethod
    def _get_default_base_url(self) -> str:
        """
        Returns the base URL used when the provider config names none.
        """
        pass

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")

        Raises:
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).

        Raises:
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...], [...]]}  (already ordered)
        - OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]} (needs sorting)

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            EngineFailureError: If the response format is invalid or embeddings are empty.
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Send an embedding request and return the extracted vectors.

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: One embedding vector per input, in input order.

        Raises:
            ConfigurationError: If the backend needs an API key and none is configured.
            EngineFailureError: If the HTTP request fails or the response holds no valid embeddings.
        """
        self.validate_api_key()
        texts = [texts] if isinstance(texts, str) else texts
        if not texts:
            return []
        body = self.get_embed_payload(texts)
        response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        if response.status_code != 200:
            self.logging.error(
                "Embedding request to %s failed: status %d, body: %s",
                self.get_engine_name(),
                response.status_code,
                response.text[:200],
            )
            raise EngineFailureError(
                "Embedding request failed with status %d." % response.status_code,
                status_code=response.status_code,
            )
        vectors = self.extract_embeddings_from_response(response.json())
        if len(vectors) != len(texts):
            raise EngineFailureError(
                f"Embedding backend {self.get_engine_name()} returned {len(vectors)} vectors for {len(texts)} inputs."
            )
        return vectors
