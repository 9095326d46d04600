from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai


class EmbedClientJina(EmbedClientOpenai):
    """Jina embeddings. The /embeddings API is OpenAI-compatible, only defaults differ."""

    def _get_engine_name(self) -> str:
        return "Jina"

    def _get_default_model(self) -> str:
        return "jina-embeddings-v2-base-en"

    def _get_default_base_url(self) -> str:
        return "https://api.jina.ai/v1"

    def _get_endpoint_healthcheck(self) -> str:
        return ""
