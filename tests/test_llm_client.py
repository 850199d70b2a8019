"""Tests for the Ollama client."""
import json

import httpx
import pytest

from ragpipe.errors import EmbeddingError, GenerationError
from ragpipe.llm_client import OllamaClient


def _client(handler, **kwargs):
    return OllamaClient(
        base_url="http://ollama.test/",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestEmbed:
    """Embedding endpoint."""

    def test_returns_embedding(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"embedding": [0.1, 0.2]})

        client = _client(handler, embedding_model="embed-test")

        assert client.embed("hello") == [0.1, 0.2]
        assert requests[0].url == "http://ollama.test/api/embeddings"
        assert json.loads(requests[0].content) == {"model": "embed-test", "prompt": "hello"}

    def test_empty_embedding_raises(self):
        client = _client(lambda request: httpx.Response(200, json={"embedding": []}))
        with pytest.raises(EmbeddingError):
            client.embed("hello")

    @pytest.mark.parametrize("body", [{"embedding": None}, {"embedding": "0.1"}, {}, [0.1, 0.2], 3])
    def test_malformed_body_raises_embedding_error(self, body):
        client = _client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(EmbeddingError):
            client.embed("hello")

    def test_http_error_raises_embedding_error(self):
        client = _client(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(EmbeddingError) as exc_info:
            client.embed("hello")
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    def test_invalid_json_raises_embedding_error(self):
        client = _client(lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(EmbeddingError):
            client.embed("hello")


class TestGenerate:
    """Chat endpoint."""

    def test_returns_message_content(self):
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(200, json={"message": {"role": "assistant", "content": "ETL is..."}})

        client = _client(handler, chat_model="chat-test", temperature=0.2)

        assert client.generate("prompt text") == "ETL is..."
        assert requests[0] == {
            "model": "chat-test",
            "messages": [{"role": "user", "content": "prompt text"}],
            "stream": False,
            "options": {"temperature": 0.2},
        }

    def test_empty_answer_raises(self):
        client = _client(lambda request: httpx.Response(200, json={"message": {"content": ""}}))
        with pytest.raises(GenerationError):
            client.generate("prompt")

    @pytest.mark.parametrize(
        "body",
        [
            {"message": None},
            {"message": "ETL is..."},
            {"message": {"content": None}},
            {},
            ["ETL is..."],
            "ETL is...",
        ],
    )
    def test_malformed_body_raises_generation_error(self, body):
        client = _client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(GenerationError):
            client.generate("prompt")

    def test_connection_error_raises_generation_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(GenerationError, match="Cannot reach Ollama"):
            _client(handler).generate("prompt")

    def test_http_error_raises_generation_error(self):
        client = _client(lambda request: httpx.Response(404, json={"error": "model not found"}))
        with pytest.raises(GenerationError):
            client.generate("prompt")
