"""Embeddings provider resolution and backends."""

import asyncio
import json

import httpx
import pytest

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.jina.EmbedClientJina import EmbedClientJina
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.models.config import EmbeddingsProviderConfig
from shared.models.errors import ConfigurationError, EngineFailureError


@pytest.fixture
def manager(helper_config, monkeypatch) -> EmbedClientManager:
    monkeypatch.setenv("EMBED_ENGINE", "openai")
    monkeypatch.setenv("EMBED_OPENAI_API_KEY", "sk-global")
    monkeypatch.setenv("EMBED_OPENAI_MODEL", "text-embedding-3-large")
    return EmbedClientManager(helper_config=helper_config)


def test_global_config_from_env(manager):
    config = manager.get_global_provider_config()
    assert config.name == "openai"
    assert config.api_key == "sk-global"
    assert config.model == "text-embedding-3-large"
    assert config.base_url is None


def test_unsupported_engine_is_configuration_error(helper_config, monkeypatch):
    monkeypatch.setenv("EMBED_ENGINE", "word2vec")
    manager = EmbedClientManager(helper_config=helper_config)
    # reading the config succeeds, resolving it does not
    config = manager.get_global_provider_config()
    assert config.name == "word2vec"
    with pytest.raises(ConfigurationError):
        manager.resolve(config)


def test_unsupported_tenant_provider_is_configuration_error(manager):
    override = EmbeddingsProviderConfig.model_validate({"name": "local"})
    assert override.name == "local"
    with pytest.raises(ConfigurationError):
        manager.resolve(manager.get_global_provider_config(), override)


def test_resolve_global(manager):
    client = manager.resolve(manager.get_global_provider_config())
    assert isinstance(client, EmbedClientOpenai)
    assert client.embed_model == "text-embedding-3-large"


def test_tenant_override_replaces_global_entirely(manager):
    override = EmbeddingsProviderConfig.model_validate({"name": "jina", "apiKey": "jina-key"})
    client = manager.resolve(manager.get_global_provider_config(), override)
    assert isinstance(client, EmbedClientJina)
    # no field merging with the global openai model
    assert client.embed_model == "jina-embeddings-v2-base-en"


def test_missing_api_key_raises_before_any_request(manager):
    override = EmbeddingsProviderConfig(name="openai", model="text-embedding-3-small")
    with pytest.raises(ConfigurationError):
        manager.resolve(manager.get_global_provider_config(), override)


def test_do_embed_checks_key_before_network(helper_config):
    calls = []
    client = EmbedClientOpenai(helper_config=helper_config, provider_config=EmbeddingsProviderConfig(name="openai"))
    asyncio.run(client.boot(transport=httpx.MockTransport(lambda request: calls.append(request) or httpx.Response(200))))
    with pytest.raises(ConfigurationError):
        asyncio.run(client.do_embed(["hello"]))
    assert calls == []


def test_ollama_needs_no_key(manager):
    client = manager.resolve(manager.get_global_provider_config(), EmbeddingsProviderConfig(name="ollama"))
    assert isinstance(client, EmbedClientOllama)


def test_openai_embeddings_are_ordered_by_index(helper_config):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [{"index": 1, "embedding": [2.0]}, {"index": 0, "embedding": [1.0]}]})

    config = EmbeddingsProviderConfig(name="openai", api_key="sk", base_url="http://embed.test/v1")
    client = EmbedClientOpenai(helper_config=helper_config, provider_config=config)
    asyncio.run(client.boot(transport=httpx.MockTransport(handler)))

    vectors = asyncio.run(client.do_embed(["first", "second"]))
    assert vectors == [[1.0], [2.0]]
    assert seen["url"] == "http://embed.test/v1/embeddings"
    assert seen["auth"] == "Bearer sk"
    assert seen["body"] == {"model": "text-embedding-3-small", "input": ["first", "second"]}


def test_ollama_embed_endpoint(helper_config):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        return httpx.Response(200, json={"embeddings": [[0.5, 0.5]]})

    client = EmbedClientOllama(helper_config=helper_config, provider_config=EmbeddingsProviderConfig(name="ollama"))
    asyncio.run(client.boot(transport=httpx.MockTransport(handler)))
    assert asyncio.run(client.do_embed("hi")) == [[0.5, 0.5]]
    assert seen["path"] == "/api/embed"


def test_backend_error_is_engine_failure(helper_config):
    config = EmbeddingsProviderConfig(name="jina", api_key="k")
    client = EmbedClientJina(helper_config=helper_config, provider_config=config)
    asyncio.run(client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(429, text="rate limited"))))
    with pytest.raises(EngineFailureError) as exc:
        asyncio.run(client.do_embed(["x"]))
    assert exc.value.status_code == 429


def test_clients_are_cached_per_tenant(manager):
    override = EmbeddingsProviderConfig(name="ollama")

    async def scenario():
        global_a = await manager.get_client("a")
        global_b = await manager.get_client("b")
        tenant_c = await manager.get_client("c", override)
        again_c = await manager.get_client("c", override)
        await manager.clear("c")
        fresh_c = await manager.get_client("c", override)
        await manager.close()
        return global_a, global_b, tenant_c, again_c, fresh_c

    global_a, global_b, tenant_c, again_c, fresh_c = asyncio.run(scenario())
    assert global_a is global_b
    assert tenant_c is again_c
    assert isinstance(tenant_c, EmbedClientOllama)
    assert fresh_c is not tenant_c
    assert not fresh_c.is_booted()
