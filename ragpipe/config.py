"""Application configuration with sensible defaults."""
import os
from pathlib import Path

from ragpipe.errors import TemplateError

# Paths
BASE_DIR = Path(__file__).parent.parent

# Ollama configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gemma3:12b")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "mxbai-embed-large:latest")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60.0"))

# RAG parameters (token-based, see rag.chunker for the tokenization)
MAX_CHUNK_TOKENS = int(os.getenv("MAX_CHUNK_TOKENS", "2048"))
CHARS_PER_TOKEN = int(os.getenv("CHARS_PER_TOKEN", "4"))   # subword width
MIN_SIMILARITY = float(os.getenv("MIN_SIMILARITY", "0.1"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "3"))

DEFAULT_PROMPT_TEMPLATE = """Context information is below.
RETRIEVED_CHUNK :
{retrieved_chunk}
Given the context information and not prior knowledge, answer the question.
QUESTION: {question}
Answer:
"""

PROMPT_TEMPLATE_PATH = os.getenv("PROMPT_TEMPLATE_PATH")


def load_prompt_template() -> str:
    """Read the template at PROMPT_TEMPLATE_PATH, or return the built-in one."""
    if not PROMPT_TEMPLATE_PATH:
        return DEFAULT_PROMPT_TEMPLATE
    try:
        return Path(PROMPT_TEMPLATE_PATH).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateError(
            f"Cannot read PROMPT_TEMPLATE_PATH {PROMPT_TEMPLATE_PATH}: {e}"
        ) from e


# Default run (used by scripts/ask.py)
DEFAULT_SOURCE = os.getenv(
    "DEFAULT_SOURCE",
    "https://docs.spring.io/spring-ai/reference/api/etl-pipeline.html",
)
DEFAULT_QUESTION = os.getenv("DEFAULT_QUESTION", "What is ETL pipeline?")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
