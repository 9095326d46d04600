from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.models.errors import EngineFailureError


class EmbedClientOllama(EmbedClientInterface):

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _requires_api_key(self) -> bool:
        # self-hosted, a key is only needed behind an authenticating proxy
        return False

    def _get_default_model(self) -> str:
        return "nomic-embed-text"

    def _get_default_base_url(self) -> str:
        return "http://localhost:11434"

    ################ ENDPOINTS ##################
    def _get_endpoint_healthcheck(self) -> str:
        # root on ollama
        return ""

    def get_endpoint_embedding(self) -> str:
        # ollama uses /api/embed for embedding requests
        return "/api/embed"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the Ollama embedding request body.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: {"model": "...", "input": [...]}
        """
        return {"model": self.embed_model, "input": texts}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        embeddings = response_data.get("embeddings")
        if not embeddings or not embeddings[0]:
            raise EngineFailureError(
                "Ollama response does not contain valid embeddings. "
                f"Response keys: {list(response_data.keys())}"
            )
        return embeddings
