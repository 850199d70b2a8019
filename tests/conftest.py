"""Pytest configuration and shared fixtures."""
import re

import pytest

from ragpipe.errors import EmbeddingError, GenerationError
from ragpipe.rag.chunker import Chunk


VOCABULARY = ["etl", "pipeline", "vector", "store", "prompt", "model"]


def keyword_embedding(text: str) -> list:
    """Embed text as word counts over a tiny fixed vocabulary."""
    words = re.findall(r"\w+", text.lower())
    return [float(words.count(term)) for term in VOCABULARY]


def unit_vector(axis: int, dimension: int = 4) -> list:
    vector = [0.0] * dimension
    vector[axis] = 1.0
    return vector


class TableEmbedder:
    """Embedding function that looks texts up in a dict and counts calls."""

    def __init__(self, table: dict):
        self.table = table
        self.calls = []

    def __call__(self, text: str) -> list:
        self.calls.append(text)
        if text not in self.table:
            raise EmbeddingError(f"No embedding for {text!r}")
        return self.table[text]


class RecordingGenerator:
    """Generation function that records prompts and returns a canned answer."""

    def __init__(self, answer: str = "It moves data.", fail: bool = False):
        self.answer = answer
        self.fail = fail
        self.prompts = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise GenerationError("model unavailable")
        return self.answer


@pytest.fixture
def embedder():
    """Deterministic keyword embedding function."""
    return keyword_embedding


@pytest.fixture
def generator():
    """Generation function returning a fixed answer."""
    return RecordingGenerator()


@pytest.fixture
def orthonormal_chunks():
    """Three chunks embedded as e1, e2, e3."""
    chunks = [Chunk(text=f"chunk {i}", ordinal=i) for i in range(3)]
    table = {c.text: unit_vector(i, 3) for i, c in enumerate(chunks)}
    return chunks, TableEmbedder(table)


@pytest.fixture
def etl_document():
    """Short document about ETL pipelines and an unrelated topic."""
    return (
        "An ETL pipeline extracts documents, transforms them and loads them "
        "into a vector store.\n\n"
        "The weather in Toronto is cold in winter and warm in summer."
    )
