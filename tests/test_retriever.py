"""Tests for question retrieval."""
import pytest

from ragpipe.errors import DimensionMismatchError, EmbeddingError
from ragpipe.rag.chunker import TokenChunker
from ragpipe.rag.retriever import Retriever, retrieve
from ragpipe.rag.store_faiss import VectorIndex


@pytest.fixture
def etl_index(embedder):
    index = VectorIndex()
    chunks = TokenChunker().make_chunks(
        "The ETL pipeline loads data. "
        "A vector store keeps embeddings. "
        "The prompt asks the model.",
        7,
    )
    index.insert_many(chunks, embedder)
    return index


def test_retrieves_most_similar_chunk_first(etl_index, embedder):
    results = retrieve(etl_index, "What is an ETL pipeline?", embedder, 0.1, 3)

    assert results
    assert "ETL pipeline" in results[0].text
    assert results[0].score == pytest.approx(1.0)


def test_top_k_and_floor_are_applied(etl_index, embedder):
    retriever = Retriever(etl_index, embedder)

    assert len(retriever.retrieve("vector store prompt model", 0.0, 1)) == 1
    assert all(r.score >= 0.5 for r in retriever.retrieve("vector store", 0.5, 3))


def test_embeds_question_once(etl_index):
    calls = []

    def counting(text):
        calls.append(text)
        return [1.0, 0.0, 0.0, 0.0, 0.0, 0.0]

    retrieve(etl_index, "question", counting, 0.1, 3)

    assert calls == ["question"]


def test_embedding_error_propagates(etl_index):
    error = EmbeddingError("offline")

    def broken(text):
        raise error

    with pytest.raises(EmbeddingError) as exc_info:
        retrieve(etl_index, "question", broken, 0.1, 3)

    assert exc_info.value is error


def test_dimension_mismatch_propagates(etl_index):
    with pytest.raises(DimensionMismatchError):
        retrieve(etl_index, "question", lambda text: [1.0, 0.0], 0.1, 3)


def test_no_match_returns_empty_result(etl_index, embedder):
    assert retrieve(etl_index, "weather in Toronto", embedder, 0.1, 3) == []
