"""
Tests for provider config resolution and the embedding adapters.
HTTP is served by httpx.MockTransport; nothing leaves the process.
"""
import json

import httpx
import pytest
from pydantic import TypeAdapter, ValidationError

from storyrag.adapters.embedding_providers.base import MAX_EMBED_CHARS, EmbeddingError, HttpEmbeddingProvider
from storyrag.adapters.embedding_providers.cohere_provider import CohereProvider
from storyrag.adapters.embedding_providers.factory import build_embedding_provider
from storyrag.adapters.embedding_providers.google_provider import GoogleProvider
from storyrag.adapters.embedding_providers.hash_provider import HashProvider
from storyrag.adapters.embedding_providers.openai_provider import OpenAICompatibleProvider
from storyrag.core.config import Settings
from storyrag.core.providers import (
    CustomProviderConfig,
    DeepSeekProviderConfig,
    GoogleProviderConfig,
    HashProviderConfig,
    OpenAIProviderConfig,
    ProviderConfig,
    ResolvedEmbeddingConfig,
    resolve_embedding_config,
    resolve_scene_config,
)


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def _resolved(provider, base_url="https://embed.test/v1", model="m1"):
    return ResolvedEmbeddingConfig(provider=provider, api_key="k", base_url=base_url, model=model)


class TestResolveSceneConfig:

    def test_no_override_keeps_default(self):
        default = OpenAIProviderConfig(api_key="k")
        assert resolve_scene_config(default, None) is default
        assert resolve_scene_config(default, "  ") is default

    def test_model_name_override(self):
        default = OpenAIProviderConfig(api_key="k", model="a")
        resolved = resolve_scene_config(default, "b")
        assert resolved.model == "b"
        assert resolved.api_key == "k"
        assert resolved.provider == "openai"

    def test_full_override(self):
        default = OpenAIProviderConfig(api_key="k")
        override = GoogleProviderConfig(api_key="g")
        assert resolve_scene_config(default, override) is override


class TestResolveEmbeddingConfig:

    def test_openai_defaults(self):
        r = resolve_embedding_config(OpenAIProviderConfig(api_key="k"))
        assert r.base_url == "https://api.openai.com/v1"
        assert r.model == "text-embedding-3-small"

    def test_trailing_slash_stripped(self):
        r = resolve_embedding_config(CustomProviderConfig(api_key="k", base_url="http://local:8000/v1/"))
        assert r.base_url == "http://local:8000/v1"
        assert r.model == "text-embedding"

    def test_deepseek_has_no_embeddings(self):
        assert resolve_embedding_config(DeepSeekProviderConfig(api_key="k")) is None

    def test_missing_key_disables(self):
        assert resolve_embedding_config(OpenAIProviderConfig()) is None

    def test_custom_needs_base_url(self):
        assert resolve_embedding_config(CustomProviderConfig(api_key="k")) is None

    def test_hash_needs_no_key(self):
        r = resolve_embedding_config(HashProviderConfig(dim=16))
        assert r.provider == "hash"
        assert r.dim == 16

    def test_tagged_union(self):
        cfg = TypeAdapter(ProviderConfig).validate_python({"provider": "google", "api_key": "k"})
        assert isinstance(cfg, GoogleProviderConfig)
        with pytest.raises(ValidationError):
            TypeAdapter(ProviderConfig).validate_python({"provider": "nope"})

    def test_settings_build_provider_config(self):
        cfg = Settings(EMBED_PROVIDER="DeepSeek", EMBED_API_KEY="k").provider_config()
        assert isinstance(cfg, DeepSeekProviderConfig)


class TestBuildEmbeddingProvider:

    def test_disabled(self):
        assert build_embedding_provider(OpenAIProviderConfig()) is None

    @pytest.mark.parametrize("config,cls", [
        (OpenAIProviderConfig(api_key="k"), OpenAICompatibleProvider),
        (CustomProviderConfig(api_key="k", base_url="http://x"), OpenAICompatibleProvider),
        (GoogleProviderConfig(api_key="k"), GoogleProvider),
        (HashProviderConfig(), HashProvider),
    ])
    def test_picks_adapter(self, config, cls):
        assert isinstance(build_embedding_provider(config), cls)


class TestOpenAICompatibleProvider:

    def test_request_and_parse(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [{"embedding": [0.1, 0.2, 0.3]}]})

        p = OpenAICompatibleProvider(_resolved("openai"), client=_client(handler))
        assert p.embed_text("林风") == [0.1, 0.2, 0.3]
        assert seen["url"] == "https://embed.test/v1/embeddings"
        assert seen["auth"] == "Bearer k"
        assert seen["body"]["input"] == "林风"
        assert seen["body"]["model"] == "m1"

    def test_long_text_is_truncated(self):
        seen = {}

        def handler(request):
            seen["input"] = json.loads(request.content)["input"]
            return httpx.Response(200, json={"data": [{"embedding": [1.0]}]})

        p = OpenAICompatibleProvider(_resolved("openai"), client=_client(handler))
        p.embed_text("字" * (MAX_EMBED_CHARS + 50))
        assert len(seen["input"]) == MAX_EMBED_CHARS

    def test_http_error(self):
        p = OpenAICompatibleProvider(_resolved("openai"), client=_client(lambda r: httpx.Response(500, json={})))
        with pytest.raises(EmbeddingError):
            p.embed_text("林风")

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        p = OpenAICompatibleProvider(_resolved("openai"), client=_client(handler))
        with pytest.raises(EmbeddingError):
            p.embed_text("林风")

    def test_malformed_payload(self):
        p = OpenAICompatibleProvider(_resolved("openai"), client=_client(lambda r: httpx.Response(200, json={"data": []})))
        with pytest.raises(EmbeddingError):
            p.embed_text("林风")

    def test_empty_embedding(self):
        p = OpenAICompatibleProvider(
            _resolved("openai"), client=_client(lambda r: httpx.Response(200, json={"data": [{"embedding": []}]}))
        )
        with pytest.raises(EmbeddingError):
            p.embed_text("林风")

    def test_empty_text(self):
        p = OpenAICompatibleProvider(_resolved("openai"), client=_client(lambda r: httpx.Response(500)))
        with pytest.raises(EmbeddingError):
            p.embed_text("   ")

    def test_null_entry_in_embedding(self):
        p = OpenAICompatibleProvider(
            _resolved("openai"), client=_client(lambda r: httpx.Response(200, json={"data": [{"embedding": [None, 1.0]}]}))
        )
        with pytest.raises(EmbeddingError):
            p.embed_text("林风")

    def test_non_numeric_entry_in_embedding(self):
        p = OpenAICompatibleProvider(
            _resolved("openai"), client=_client(lambda r: httpx.Response(200, json={"data": [{"embedding": ["x", 1.0]}]}))
        )
        with pytest.raises(EmbeddingError):
            p.embed_text("林风")


class TestGoogleProvider:

    def test_request_and_parse(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers["x-goog-api-key"]
            return httpx.Response(200, json={"embedding": {"values": [0.5, 0.5]}})

        p = GoogleProvider(_resolved("google", model="text-embedding-004"), client=_client(handler))
        assert p.embed_text("林风") == [0.5, 0.5]
        assert seen["url"] == "https://embed.test/v1/models/text-embedding-004:embedContent"
        assert seen["key"] == "k"


class TestCohereProvider:

    def test_request_and_parse(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"embeddings": [[1.0, 0.0]]})

        p = CohereProvider(_resolved("cohere"), client=_client(handler))
        assert p.embed_text("林风") == [1.0, 0.0]
        assert seen["url"] == "https://embed.test/v1/embed"
        assert seen["body"]["texts"] == ["林风"]
        assert seen["body"]["input_type"] == "search_document"


class TestHashProvider:

    def test_deterministic_unit_vectors(self):
        p = HashProvider(dim=16)
        a = p.embed_text("林风")
        assert a == p.embed_text("林风")
        assert len(a) == 16
        assert sum(x * x for x in a) == pytest.approx(1.0)
        assert a != p.embed_text("乔雨")


class TestHttpEmbeddingProviderBase:

    def test_is_abstract(self):
        with pytest.raises(TypeError):
            HttpEmbeddingProvider(_resolved("openai"))
