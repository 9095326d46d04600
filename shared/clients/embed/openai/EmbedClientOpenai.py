from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.models.errors import EngineFailureError


class EmbedClientOpenai(EmbedClientInterface):

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "OpenAI"

    ################ CONFIG ##################
    def _requires_api_key(self) -> bool:
        return True

    def _get_default_model(self) -> str:
        return "text-embedding-3-small"

    def _get_default_base_url(self) -> str:
        return "https://api.openai.com/v1"

    ################ ENDPOINTS ##################
    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def get_endpoint_embedding(self) -> str:
        return "/embeddings"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from an OpenAI-compatible /embeddings response.

        Items carry an "index"; they are sorted by it so the output matches input order.
        """
        data = response_data.get("data")
        if not data:
            raise EngineFailureError(
                f"{self.get_engine_name()} response does not contain embeddings. "
                f"Response keys: {list(response_data.keys())}"
            )
        ordered = sorted(data, key=lambda item: item.get("index", 0))
        return [item["embedding"] for item in ordered]
