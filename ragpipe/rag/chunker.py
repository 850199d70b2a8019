"""Token-bounded text chunking for RAG pipeline.

Implements a vocabulary-free tokenizer so chunk boundaries are reproducible
without downloading a model-specific encoding.
"""
import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import structlog

from ragpipe import config
from ragpipe.errors import ChunkingError

logger = structlog.get_logger()

# Runs of word characters, or a single punctuation character
TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]")


@dataclass(frozen=True)
class Chunk:
    """A piece of source text, positioned by ordinal within its document.

    ``id`` stays ``None`` until a VectorIndex assigns one on insertion.
    """

    text: str
    ordinal: int
    metadata: Dict[str, str] = field(default_factory=dict)
    id: Optional[str] = None


class TokenChunker:
    """Non-overlapping chunker that splits text along token boundaries."""

    def __init__(self, chars_per_token: int = None):
        """Initialize the token chunker.

        Args:
            chars_per_token: Width of one subword token in characters; longer
                words count as several tokens (default from config)
        """
        if chars_per_token is None:
            chars_per_token = config.CHARS_PER_TOKEN
        self.chars_per_token = chars_per_token

        if self.chars_per_token <= 0:
            raise ValueError(
                f"chars_per_token must be positive, got {self.chars_per_token}"
            )

    def token_cost(self, token: str) -> int:
        """Number of subword tokens a single regex token counts for."""
        return max(1, math.ceil(len(token) / self.chars_per_token))

    def count_tokens(self, text: str) -> int:
        """Count the tokens in ``text`` using the chunker's scheme."""
        return sum(self.token_cost(m.group()) for m in TOKEN_PATTERN.finditer(text))

    def split(self, text: str, max_tokens: int) -> List[str]:
        """Split text into ordered chunks of at most ``max_tokens`` tokens.

        A token that alone exceeds ``max_tokens`` is emitted as its own
        oversized chunk. Whitespace between two chunks is dropped; whitespace
        inside a chunk is kept as in the source.

        Args:
            text: Text to chunk
            max_tokens: Upper bound on tokens per chunk

        Returns:
            List of chunk strings in source order

        Raises:
            ChunkingError: If max_tokens is not positive
        """
        if max_tokens <= 0:
            raise ChunkingError(f"max_tokens must be positive, got {max_tokens}")

        if not text:
            return []

        chunks = []
        chunk_start = None
        chunk_end = 0
        chunk_tokens = 0

        for match in TOKEN_PATTERN.finditer(text):
            cost = self.token_cost(match.group())

            if chunk_start is not None and chunk_tokens + cost > max_tokens:
                chunks.append(text[chunk_start:chunk_end])
                chunk_start = None
                chunk_tokens = 0

            if chunk_start is None:
                chunk_start = match.start()

            chunk_end = match.end()
            chunk_tokens += cost

        if chunk_start is not None:
            chunks.append(text[chunk_start:chunk_end])

        logger.debug(
            "text_split",
            text_length=len(text),
            max_tokens=max_tokens,
            chunk_count=len(chunks),
        )

        return chunks

    def make_chunks(
        self,
        text: str,
        max_tokens: int,
        metadata: Optional[Dict[str, str]] = None,
    ) -> List[Chunk]:
        """Split text and wrap each piece in a Chunk with its ordinal.

        Args:
            text: Text to chunk
            max_tokens: Upper bound on tokens per chunk
            metadata: Metadata copied onto every chunk

        Returns:
            List of Chunk objects with contiguous ordinals from 0
        """
        pieces = self.split(text, max_tokens)
        metadata = dict(metadata or {})

        chunks = [
            Chunk(text=piece, ordinal=ordinal, metadata=dict(metadata))
            for ordinal, piece in enumerate(pieces)
        ]

        logger.info(
            "text_chunked",
            text_length=len(text),
            max_tokens=max_tokens,
            chunk_count=len(chunks),
        )

        return chunks

    def get_chunk_stats(self, chunks: List[Chunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of Chunk objects

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_tokens": 0,
                "avg_chunk_tokens": 0,
                "min_chunk_tokens": 0,
                "max_chunk_tokens": 0,
            }

        chunk_tokens = [self.count_tokens(c.text) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_tokens": sum(chunk_tokens),
            "avg_chunk_tokens": sum(chunk_tokens) // len(chunks),
            "min_chunk_tokens": min(chunk_tokens),
            "max_chunk_tokens": max(chunk_tokens),
        }


# Convenience function
def split_text(text: str, max_tokens: int) -> List[str]:
    """Split text using a default chunker (convenience function).

    Args:
        text: Text to chunk
        max_tokens: Upper bound on tokens per chunk

    Returns:
        List of chunk strings
    """
    return TokenChunker().split(text, max_tokens)
