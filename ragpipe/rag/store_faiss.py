"""In-memory FAISS vector index for similarity search.

Handles:
- Embedding validation and dimension locking
- Atomic per-chunk insertion
- Cosine similarity search with score floor and top-K
- Deterministic tie ordering
"""
import math
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence
import numpy as np
import faiss
import structlog

from ragpipe.errors import DimensionMismatchError, EmbeddingError
from ragpipe.rag.chunker import Chunk

logger = structlog.get_logger()

EmbeddingFn = Callable[[str], Sequence[float]]


@dataclass(frozen=True)
class IndexedChunk:
    """A chunk stored in the index together with its embedding."""

    chunk: Chunk
    embedding: np.ndarray = field(compare=False, repr=False)
    position: int = 0

    @property
    def id(self) -> str:
        return self.chunk.id

    @property
    def text(self) -> str:
        return self.chunk.text

    @property
    def ordinal(self) -> int:
        return self.chunk.ordinal

    @property
    def metadata(self) -> Dict[str, str]:
        return self.chunk.metadata


@dataclass(frozen=True)
class ScoredChunk:
    """A chunk returned by a query with its similarity score in [0, 1]."""

    chunk: Chunk
    score: float

    @property
    def text(self) -> str:
        return self.chunk.text


# Ordered best first, never stored
RetrievalResult = List[ScoredChunk]

# Absorbs float64 rounding so equal cosines compare equal
SCORE_DECIMALS = 12


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity clamped to [0, 1]; 0 when either vector is zero."""
    norms = float(np.dot(a, a)) * float(np.dot(b, b))
    if norms == 0.0:
        return 0.0
    score = float(np.dot(a, b)) / math.sqrt(norms)
    return round(min(1.0, max(0.0, score)), SCORE_DECIMALS)


def embed_text(embedding_fn: EmbeddingFn, text: str) -> np.ndarray:
    """Call the embedding function once and validate its output.

    Args:
        embedding_fn: Function mapping text to a vector of floats
        text: Text to embed

    Returns:
        1-D float64 numpy array

    Raises:
        EmbeddingError: If the function fails or the vector is unusable
    """
    try:
        raw = embedding_fn(text)
    except EmbeddingError:
        raise
    except Exception as e:
        logger.error(
            "embedding_generation_failed",
            text_preview=text[:100],
            error=str(e),
            error_type=type(e).__name__,
        )
        raise EmbeddingError(f"Failed to generate embedding: {e}") from e

    try:
        vector = np.asarray(raw, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise EmbeddingError(f"Embedding is not a numeric vector: {e}") from e

    if vector.ndim != 1 or vector.size == 0:
        raise EmbeddingError(
            f"Embedding must be a non-empty 1-D vector, got shape {vector.shape}"
        )

    if not np.all(np.isfinite(vector)):
        raise EmbeddingError("Embedding contains NaN or infinite values")

    return vector


class VectorIndex:
    """FAISS-backed in-memory index of chunks keyed by an assigned id.

    Vectors are L2-normalized before they enter an ``IndexFlatIP``. FAISS
    enumerates the candidates and each returned score is recomputed in
    float64 from the stored embedding.
    """

    def __init__(self, dimension: Optional[int] = None):
        """Initialize the vector index.

        Args:
            dimension: Embedding dimension (locked by the first insertion if
                not provided)
        """
        self.index: Optional[faiss.Index] = None
        self._dimension: Optional[int] = None
        self._entries: List[IndexedChunk] = []
        self._by_id: Dict[str, IndexedChunk] = {}

        if dimension is not None:
            if dimension <= 0:
                raise ValueError(f"dimension must be positive, got {dimension}")
            self._init_index(dimension)

    def _init_index(self, dimension: int) -> None:
        self._dimension = dimension
        # Exact search; the index only ever holds one document's chunks
        self.index = faiss.IndexFlatIP(dimension)

        logger.info(
            "faiss_index_initialized",
            dimension=dimension,
            index_type="IndexFlatIP",
        )

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def __len__(self) -> int:
        return len(self._entries)

    def insert(self, chunk: Chunk, embedding_fn: EmbeddingFn) -> IndexedChunk:
        """Embed a chunk and store it under a freshly assigned id.

        Nothing is stored unless every check passes.

        Args:
            chunk: Chunk to index
            embedding_fn: Function mapping text to a vector of floats

        Returns:
            The stored IndexedChunk

        Raises:
            EmbeddingError: If embedding fails or returns an unusable vector
            DimensionMismatchError: If the vector length differs from the index
        """
        vector = embed_text(embedding_fn, chunk.text)

        if self._dimension is not None and vector.size != self._dimension:
            logger.error(
                "embedding_dimension_mismatch",
                expected=self._dimension,
                actual=vector.size,
                ordinal=chunk.ordinal,
            )
            raise DimensionMismatchError(self._dimension, vector.size, "insert")

        if self.index is None:
            self._init_index(vector.size)

        normalized = vector.astype(np.float32).reshape(1, -1)
        faiss.normalize_L2(normalized)
        self.index.add(normalized)

        entry = IndexedChunk(
            chunk=replace(chunk, id=uuid.uuid4().hex),
            embedding=vector,
            position=len(self._entries),
        )
        self._entries.append(entry)
        self._by_id[entry.id] = entry

        logger.debug(
            "chunk_indexed",
            chunk_id=entry.id,
            ordinal=chunk.ordinal,
            total_vectors=len(self._entries),
        )

        return entry

    def insert_many(
        self, chunks: Sequence[Chunk], embedding_fn: EmbeddingFn
    ) -> List[IndexedChunk]:
        """Insert chunks in order, stopping at the first failure.

        Args:
            chunks: Chunks to index
            embedding_fn: Function mapping text to a vector of floats

        Returns:
            List of stored IndexedChunk objects
        """
        indexed = [self.insert(chunk, embedding_fn) for chunk in chunks]

        logger.info(
            "vectors_added",
            count=len(indexed),
            total_vectors=len(self._entries),
        )

        return indexed

    def get(self, chunk_id: str) -> IndexedChunk:
        """Look up an indexed chunk by id.

        Raises:
            KeyError: If no chunk has this id
        """
        return self._by_id[chunk_id]

    def query(
        self, query_vector: Sequence[float], top_k: int, min_score: float
    ) -> RetrievalResult:
        """Rank stored chunks by cosine similarity to a query vector.

        Args:
            query_vector: Query embedding
            top_k: Maximum number of results
            min_score: Minimum similarity score to keep a result

        Returns:
            ScoredChunk list, best first; equal scores keep insertion order

        Raises:
            DimensionMismatchError: If the query length differs from the index
        """
        if top_k <= 0:
            return []

        vector = np.asarray(query_vector, dtype=np.float64).ravel()

        if self._dimension is None:
            return []

        if vector.size != self._dimension:
            raise DimensionMismatchError(self._dimension, vector.size, "query")

        total = self.index.ntotal
        if total == 0:
            return []

        query = vector.astype(np.float32).reshape(1, -1)
        faiss.normalize_L2(query)

        # FAISS enumerates candidates; scores are recomputed in float64
        _, labels = self.index.search(query, total)

        candidates = []
        for label in labels[0].tolist():
            if label < 0:
                continue
            score = cosine_similarity(self._entries[label].embedding, vector)
            if score >= min_score:
                candidates.append((score, label))

        candidates.sort(key=lambda item: (-item[0], item[1]))

        results = [
            ScoredChunk(chunk=self._entries[label].chunk, score=score)
            for score, label in candidates[:top_k]
        ]

        logger.info(
            "vector_search_completed",
            top_k=top_k,
            min_score=min_score,
            candidates=len(candidates),
            results_found=len(results),
        )

        return results

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the vector index.

        Returns:
            Dictionary with index statistics
        """
        if self.index is None:
            return {
                "initialized": False,
                "vector_count": 0,
                "dimension": None,
            }

        return {
            "initialized": True,
            "vector_count": self.index.ntotal,
            "dimension": self._dimension,
            "index_type": "IndexFlatIP",
        }
