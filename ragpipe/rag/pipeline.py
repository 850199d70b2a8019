"""Single-shot RAG pipeline.

Orchestrates:
- Text extraction
- Token chunking
- Embedding and indexing
- Similarity retrieval
- Prompt assembly
- Answer generation
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field
import structlog

from ragpipe import config
from ragpipe.errors import ExtractionError, GenerationError, RAGPipelineError
from ragpipe.rag.chunker import TokenChunker
from ragpipe.rag.prompt import Prompt, PromptAssembler
from ragpipe.rag.retriever import Retriever
from ragpipe.rag.store_faiss import EmbeddingFn, RetrievalResult, VectorIndex

ExtractFn = Callable[[Any], str]
GenerateFn = Callable[[str], str]


class PipelineConfig(BaseModel):
    """Caller-supplied settings for one pipeline run.

    ``max_chunk_tokens`` is range-checked by the chunker, which reports a
    non-positive value as ChunkingError.
    """

    model_config = ConfigDict(frozen=True)

    max_chunk_tokens: int
    min_similarity: float = Field(..., ge=0.0, le=1.0)
    top_k: int = Field(..., gt=0)
    prompt_template: str

    @classmethod
    def from_settings(cls, **overrides) -> "PipelineConfig":
        """Build a config from ragpipe.config defaults.

        The template file is only read when no template override is given.

        Raises:
            TemplateError: If PROMPT_TEMPLATE_PATH cannot be read
        """
        values = {
            "max_chunk_tokens": config.MAX_CHUNK_TOKENS,
            "min_similarity": config.MIN_SIMILARITY,
            "top_k": config.RETRIEVAL_TOP_K,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        if "prompt_template" not in values:
            values["prompt_template"] = config.load_prompt_template()
        return cls(**values)


class PipelineStage(str, Enum):
    """States a run moves through, in order."""

    STARTED = "started"
    EXTRACTED = "extracted"
    CHUNKED = "chunked"
    INDEXED = "indexed"
    RETRIEVED = "retrieved"
    PROMPTED = "prompted"
    GENERATED = "generated"


@dataclass(frozen=True)
class GeneratedAnswer:
    """Outcome of a successful run."""

    answer: str
    prompt: Prompt
    retrieved: RetrievalResult
    chunk_count: int


class Pipeline:
    """Extract, chunk, index, retrieve, assemble and generate, once.

    Every collaborator is passed in. A run that fails stops at the stage it
    reached and re-raises the first error. Foreign exceptions from extract_fn
    and generate_fn are wrapped in ExtractionError and GenerationError.
    """

    def __init__(
        self,
        extract_fn: ExtractFn,
        embedding_fn: EmbeddingFn,
        generate_fn: GenerateFn,
        index: Optional[VectorIndex] = None,
        chunker: Optional[TokenChunker] = None,
        assembler: Optional[PromptAssembler] = None,
        logger=None,
    ):
        """Initialize the pipeline.

        Args:
            extract_fn: Source (path or URL) to plain text
            embedding_fn: Text to embedding vector
            generate_fn: Rendered prompt to answer text
            index: Index to fill; a fresh one is created per run if omitted
            chunker: Token chunker (default TokenChunker())
            assembler: Prompt assembler (default PromptAssembler())
            logger: structlog logger used for progress events
        """
        self.extract_fn = extract_fn
        self.embedding_fn = embedding_fn
        self.generate_fn = generate_fn
        self.index = index
        self.chunker = chunker or TokenChunker()
        self.assembler = assembler or PromptAssembler()
        self.logger = logger or structlog.get_logger()

    def _extract(self, source: Any) -> str:
        try:
            text = self.extract_fn(source)
        except RAGPipelineError:
            raise
        except Exception as e:
            raise ExtractionError(f"Failed to extract {source}: {e}") from e

        if not isinstance(text, str):
            raise ExtractionError(
                f"extract_fn returned {type(text).__name__}, expected str"
            )
        return text

    def _generate(self, prompt: str) -> str:
        try:
            answer = self.generate_fn(prompt)
        except RAGPipelineError:
            raise
        except Exception as e:
            raise GenerationError(f"Failed to generate answer: {e}") from e

        if not isinstance(answer, str):
            raise GenerationError(
                f"generate_fn returned {type(answer).__name__}, expected str"
            )
        return answer

    def run(
        self,
        source: Any,
        question: str,
        config: PipelineConfig,
        metadata: Optional[Dict[str, str]] = None,
    ) -> GeneratedAnswer:
        """Answer a question from a single source document.

        Args:
            source: Path or URL handed to extract_fn
            question: Question to answer
            config: Run settings
            metadata: Metadata attached to every chunk (default: the source)

        Returns:
            GeneratedAnswer with the answer, prompt and retrieved chunks

        Raises:
            RAGPipelineError: The first error raised by any stage
        """
        log = self.logger.bind(source=str(source))
        stage = PipelineStage.STARTED

        def advance(next_stage: PipelineStage, **details) -> PipelineStage:
            log.info("pipeline_stage_completed", stage=next_stage.value, **details)
            return next_stage

        try:
            # Fail before any expensive call if the template is unusable
            self.assembler.validate_template(config.prompt_template)

            text = self._extract(source)
            stage = advance(PipelineStage.EXTRACTED, content_length=len(text))

            chunks = self.chunker.make_chunks(
                text,
                config.max_chunk_tokens,
                metadata if metadata is not None else {"source": str(source)},
            )
            stage = advance(
                PipelineStage.CHUNKED, **self.chunker.get_chunk_stats(chunks)
            )

            index = self.index if self.index is not None else VectorIndex()
            index.insert_many(chunks, self.embedding_fn)
            stage = advance(PipelineStage.INDEXED, total_vectors=len(index))

            retrieved = Retriever(index, self.embedding_fn).retrieve(
                question, config.min_similarity, config.top_k
            )
            stage = advance(PipelineStage.RETRIEVED, results=len(retrieved))

            prompt = self.assembler.assemble(
                config.prompt_template,
                retrieved,
                question,
                min_score=config.min_similarity,
            )
            stage = advance(PipelineStage.PROMPTED, prompt_length=len(prompt.rendered))

            answer = self._generate(prompt.rendered)
            stage = advance(PipelineStage.GENERATED, answer_length=len(answer))

        except Exception as e:
            log.error(
                "pipeline_halted",
                stage=stage.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        return GeneratedAnswer(
            answer=answer,
            prompt=prompt,
            retrieved=retrieved,
            chunk_count=len(chunks),
        )
