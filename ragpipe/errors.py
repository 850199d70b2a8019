"""Exception types raised by the RAG pipeline.

Every stage fails fast with one of these. Foreign exceptions coming out of a
collaborator (HTTP client, file system, embedding model) are converted at the
boundary with ``raise ... from`` so the original cause stays attached.
"""


class RAGPipelineError(Exception):
    """Base class for all pipeline errors."""


class ExtractionError(RAGPipelineError):
    """The source document could not be read or is not supported."""


class ChunkingError(RAGPipelineError):
    """The chunker was configured with a non-positive chunk size."""


class EmbeddingError(RAGPipelineError):
    """The embedding function failed or returned an unusable vector."""


class DimensionMismatchError(EmbeddingError):
    """A vector's length differs from the index dimension."""

    def __init__(self, expected: int, actual: int, operation: str = "query"):
        self.expected = expected
        self.actual = actual
        self.operation = operation
        super().__init__(
            f"{operation.capitalize()} dimension mismatch: expected {expected}, "
            f"got {actual}"
        )


class TemplateError(RAGPipelineError):
    """The prompt template lacks a required placeholder."""


class GenerationError(RAGPipelineError):
    """The generation call failed."""
