"""Ollama LLM client wrapper with error handling."""
import httpx
from typing import Any, Dict, List, Optional
import structlog

from ragpipe import config
from ragpipe.errors import EmbeddingError, GenerationError

logger = structlog.get_logger()


class OllamaClient:
    """Blocking client for the Ollama embedding and chat endpoints.

    ``embed`` and ``generate`` match the pipeline's ``embedding_fn`` and
    ``generate_fn`` contracts and can be passed as bound methods.
    """

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        embedding_model: str = None,
        chat_model: str = None,
        temperature: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL (defaults to config.OLLAMA_BASE_URL)
            timeout: Request timeout in seconds (defaults to config.REQUEST_TIMEOUT)
            embedding_model: Embedding model (defaults to config.EMBEDDING_MODEL)
            chat_model: Chat model (defaults to config.CHAT_MODEL)
            temperature: Sampling temperature (0.0-2.0)
            transport: Optional httpx transport, used by tests
        """
        self.base_url = (base_url or config.OLLAMA_BASE_URL).rstrip("/")
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL
        self.chat_model = chat_model or config.CHAT_MODEL
        self.temperature = temperature
        self.transport = transport

    def _post(self, path: str, payload: Dict) -> Any:
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(f"{self.base_url}{path}", json=payload)
            response.raise_for_status()
            return response.json()

    def embed(self, text: str) -> List[float]:
        """Generate an embedding for a text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector

        Raises:
            EmbeddingError: On API errors, a malformed response or an empty
                embedding
        """
        payload = {
            "model": self.embedding_model,
            "prompt": text,
        }

        logger.debug(
            "ollama_embedding_request",
            model=self.embedding_model,
            prompt_length=len(text),
        )

        try:
            data = self._post("/api/embeddings", payload)
        except httpx.HTTPError as e:
            logger.error("ollama_embedding_error", error=str(e), base_url=self.base_url)
            raise EmbeddingError(f"Ollama embedding request failed: {e}") from e
        except ValueError as e:
            raise EmbeddingError(f"Invalid embedding response: {e}") from e

        if not isinstance(data, dict):
            raise EmbeddingError(
                f"Invalid embedding response: expected an object, got {type(data).__name__}"
            )

        embedding = data.get("embedding")
        if not isinstance(embedding, list):
            raise EmbeddingError("Missing embedding in Ollama response")
        if not embedding:
            raise EmbeddingError("Empty embedding returned from Ollama")

        logger.debug(
            "ollama_embedding_response",
            model=self.embedding_model,
            dimension=len(embedding),
        )

        return embedding

    def generate(self, prompt: str) -> str:
        """Send a single-turn chat request and return the answer text.

        Args:
            prompt: Rendered prompt

        Returns:
            Model answer

        Raises:
            GenerationError: On API errors, a malformed response or an empty
                answer
        """
        payload = {
            "model": self.chat_model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
        }

        if self.temperature is not None:
            payload["options"] = {"temperature": self.temperature}

        logger.info(
            "ollama_chat_request",
            model=self.chat_model,
            prompt_length=len(prompt),
        )

        try:
            data = self._post("/api/chat", payload)
        except httpx.ConnectError as e:
            logger.error("ollama_connection_error", error=str(e), base_url=self.base_url)
            raise GenerationError(f"Cannot reach Ollama at {self.base_url}: {e}") from e
        except httpx.HTTPError as e:
            logger.error(
                "ollama_http_error",
                error=str(e),
                status_code=getattr(getattr(e, "response", None), "status_code", None),
            )
            raise GenerationError(f"Ollama chat request failed: {e}") from e
        except ValueError as e:
            raise GenerationError(f"Invalid chat response: {e}") from e

        if not isinstance(data, dict):
            raise GenerationError(
                f"Invalid chat response: expected an object, got {type(data).__name__}"
            )

        message = data.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise GenerationError("Missing message content in Ollama response")
        if not content:
            raise GenerationError("Empty answer returned from Ollama")

        logger.info(
            "ollama_chat_response",
            model=self.chat_model,
            response_length=len(content),
        )

        return content
