"""Tests for embedding providers and generation clients over stubbed HTTP."""

import pytest
import requests

from gigarag.core import EmbeddingError, GeminiEmbedder, OpenAIEmbedder, make_embedder, truncate_for_embedding
from gigarag.llm import GeminiClient, HuggingFaceClient, LLMConfig, create_client
from gigarag.llm import client as llm_client


class FakeResponse:

    def __init__(self, data=None, status=200):
        self.data = data
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.data is None:
            raise ValueError("no JSON body")
        return self.data


class FakeSession:

    def __init__(self, response):
        self.response = response
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        return self.response


@pytest.fixture
def no_keys(monkeypatch):
    for name in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "OPENAI_API_KEY", "HF_TOKEN"):
        monkeypatch.delenv(name, raising=False)


class TestTruncation:

    def test_long_text_is_cut_with_marker(self):
        assert truncate_for_embedding("abcdef", 3) == "abc..."

    def test_short_text_untouched(self):
        assert truncate_for_embedding("abc", 3) == "abc"


class TestGeminiEmbedder:

    def test_decodes_values(self):
        embedder = GeminiEmbedder("gemini-embedding-001", "k", 3)
        embedder.session = FakeSession(FakeResponse({"embedding": {"values": [0.1, 0.2, 0.3]}}))

        assert embedder.embed_one("hello") == [0.1, 0.2, 0.3]
        url, kwargs = embedder.session.requests[0]
        assert url.endswith("/models/gemini-embedding-001:embedContent")
        assert kwargs["json"]["content"] == {"parts": [{"text": "hello"}]}
        assert kwargs["params"] == {"key": "k"}

    def test_malformed_response_fails_closed(self):
        embedder = GeminiEmbedder("gemini-embedding-001", "k", 3)
        embedder.session = FakeSession(FakeResponse({"embedding": {"values": "nope"}}))

        with pytest.raises(EmbeddingError):
            embedder.embed_one("hello")

    def test_http_error(self):
        embedder = GeminiEmbedder("gemini-embedding-001", "k", 3)
        embedder.session = FakeSession(FakeResponse({}, status=429))

        with pytest.raises(EmbeddingError, match="429"):
            embedder.embed_one("hello")


class TestOpenAIEmbedder:

    def test_decodes_first_item(self):
        embedder = OpenAIEmbedder("text-embedding-3-small", "k", 2)
        embedder.session = FakeSession(FakeResponse({"data": [{"embedding": [0.5, 0.5], "index": 0}]}))

        assert embedder.embed(["a"]) == [[0.5, 0.5]]
        _, kwargs = embedder.session.requests[0]
        assert kwargs["json"]["dimensions"] == 2

    def test_empty_data_fails_closed(self):
        embedder = OpenAIEmbedder("text-embedding-3-small", "k", 2)
        embedder.session = FakeSession(FakeResponse({"data": []}))

        with pytest.raises(EmbeddingError):
            embedder.embed_one("a")


class TestMakeEmbedder:

    def test_gemini_default_dimension(self, cfg, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "k")

        embedder = make_embedder(cfg)

        assert isinstance(embedder, GeminiEmbedder)
        assert embedder.dimension == 3072

    def test_openai_configured_dimension(self, cfg, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "k")
        cfg["embedding"].update({"backend": "openai", "model": None, "dimension": 512})

        embedder = make_embedder(cfg)

        assert embedder.model == "text-embedding-3-small"
        assert embedder.dimension == 512

    def test_missing_credentials(self, cfg, no_keys):
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            make_embedder(cfg)

    def test_unknown_backend(self, cfg):
        cfg["embedding"]["backend"] = "cohere"
        with pytest.raises(ValueError):
            make_embedder(cfg)


class TestGenerationClients:

    def test_gemini_complete(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "k")
        data = {
            "candidates": [{"content": {"parts": [{"text": "Answer "}, {"text": "here."}]}, "finishReason": "STOP"}],
            "usageMetadata": {"promptTokenCount": 7, "candidatesTokenCount": 2, "totalTokenCount": 9},
        }
        monkeypatch.setattr(llm_client.requests, "post", lambda *a, **kw: FakeResponse(data))

        response = GeminiClient(LLMConfig()).complete("q")

        assert response.content == "Answer here."
        assert response.finish_reason == "stop"
        assert response.usage["total_tokens"] == 9
        assert response.error is None

    def test_gemini_without_candidates_reports_error(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "k")
        monkeypatch.setattr(llm_client.requests, "post", lambda *a, **kw: FakeResponse({"candidates": []}))

        response = GeminiClient(LLMConfig()).complete("q")

        assert response.content is None
        assert response.finish_reason == "error"
        assert "no candidates" in response.error

    def test_huggingface_http_error(self, monkeypatch):
        monkeypatch.setenv("HF_TOKEN", "t")
        monkeypatch.setattr(llm_client.requests, "post", lambda *a, **kw: FakeResponse({}, status=503))

        response = HuggingFaceClient().complete("q")

        assert "503" in response.error

    def test_huggingface_chat(self, monkeypatch):
        monkeypatch.setenv("HF_TOKEN", "t")
        data = {"choices": [{"message": {"content": " ok "}, "finish_reason": "stop"}], "usage": {"total_tokens": 3}}
        monkeypatch.setattr(llm_client.requests, "post", lambda *a, **kw: FakeResponse(data))

        response = HuggingFaceClient().chat("system", "hi")

        assert response.content == "ok"
        assert response.usage["total_tokens"] == 3

    def test_huggingface_chat_sends_system_and_user_only(self, monkeypatch):
        monkeypatch.setenv("HF_TOKEN", "t")
        sent = []
        data = {"choices": [{"message": {"content": "ok"}}]}

        def fake_post(url, **kwargs):
            sent.append(kwargs["json"])
            return FakeResponse(data)

        monkeypatch.setattr(llm_client.requests, "post", fake_post)

        HuggingFaceClient().chat(" be brief ", " hi ")
        HuggingFaceClient().complete("q")

        assert sent[0]["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi"},
        ]
        assert sent[1]["messages"] == [{"role": "user", "content": "q"}]

    def test_create_client_without_credentials(self, cfg, no_keys):
        assert create_client(cfg) is None

    def test_create_client_picks_backend(self, cfg, monkeypatch):
        monkeypatch.setenv("HF_TOKEN", "t")
        cfg["generation"]["backend"] = "huggingface"

        assert isinstance(create_client(cfg), HuggingFaceClient)

    def test_create_client_unknown_backend(self, cfg):
        cfg["generation"]["backend"] = "claude"
        with pytest.raises(ValueError):
            create_client(cfg)
