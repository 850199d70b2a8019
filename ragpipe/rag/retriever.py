"""Retriever for similarity search over an in-memory vector index.

Handles:
- Query embedding generation
- Vector search with score floor and top-K
"""
import structlog

from ragpipe.rag.store_faiss import (
    EmbeddingFn,
    RetrievalResult,
    VectorIndex,
    embed_text,
)

logger = structlog.get_logger()


class Retriever:
    """Semantic retriever for RAG pipeline."""

    def __init__(self, index: VectorIndex, embedding_fn: EmbeddingFn):
        """Initialize the retriever.

        Args:
            index: Vector index to search
            embedding_fn: Function used to embed the question; must match the
                one the index was built with
        """
        self.index = index
        self.embedding_fn = embedding_fn

    def retrieve(
        self, question: str, min_score: float, top_k: int
    ) -> RetrievalResult:
        """Retrieve the chunks most similar to a question.

        Embedding and dimension errors propagate unchanged.

        Args:
            question: User question text
            min_score: Minimum similarity score (0-1) to include results
            top_k: Maximum number of results to return

        Returns:
            List of ScoredChunk objects, sorted by score (best first)

        Raises:
            EmbeddingError: If the question cannot be embedded
            DimensionMismatchError: If the question vector does not fit the index
        """
        logger.info(
            "retrieval_started",
            query_length=len(question),
            top_k=top_k,
            min_score=min_score,
        )

        query_embedding = embed_text(self.embedding_fn, question)

        logger.debug("query_embedded", dimension=query_embedding.size)

        results = self.index.query(query_embedding, top_k=top_k, min_score=min_score)

        logger.info(
            "retrieval_completed",
            query_length=len(question),
            results_returned=len(results),
            top_score=results[0].score if results else None,
        )

        return results


# Convenience function
def retrieve(
    index: VectorIndex,
    question: str,
    embedding_fn: EmbeddingFn,
    min_score: float,
    top_k: int,
) -> RetrievalResult:
    """Retrieve relevant chunks for a question (convenience function).

    Args:
        index: Vector index to search
        question: User question text
        embedding_fn: Function used to embed the question
        min_score: Minimum similarity score
        top_k: Number of results to return

    Returns:
        List of ScoredChunk objects
    """
    return Retriever(index, embedding_fn).retrieve(question, min_score, top_k)
