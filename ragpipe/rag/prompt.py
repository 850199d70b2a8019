"""Prompt assembly from retrieved context and a question."""
import re
from dataclasses import dataclass, field
from typing import List
import structlog

from ragpipe import config
from ragpipe.errors import TemplateError
from ragpipe.rag.store_faiss import RetrievalResult

logger = structlog.get_logger()

CONTEXT_PLACEHOLDER = "{retrieved_chunk}"
QUESTION_PLACEHOLDER = "{question}"
REQUIRED_PLACEHOLDERS = (CONTEXT_PLACEHOLDER, QUESTION_PLACEHOLDER)

CHUNK_SEPARATOR = "\n\n"
NO_CONTEXT_MARKER = "[no context available]"

DEFAULT_TEMPLATE = config.DEFAULT_PROMPT_TEMPLATE

_PLACEHOLDER_PATTERN = re.compile(
    "|".join(re.escape(p) for p in REQUIRED_PLACEHOLDERS)
)


@dataclass(frozen=True)
class Prompt:
    """A rendered generation request."""

    context: List[str] = field(default_factory=list)
    question: str = ""
    rendered: str = ""


class PromptAssembler:
    """Renders a template with retrieved chunks and the user question.

    Only ``{retrieved_chunk}`` and ``{question}`` are substituted. Any other
    brace expression is left as written so one template can be shared with
    other renderers.
    """

    def __init__(
        self,
        separator: str = CHUNK_SEPARATOR,
        no_context_marker: str = NO_CONTEXT_MARKER,
    ):
        self.separator = separator
        self.no_context_marker = no_context_marker

    def validate_template(self, template: str) -> None:
        """Check that the template can receive both context and question.

        Raises:
            TemplateError: If a required placeholder is missing
        """
        missing = [p for p in REQUIRED_PLACEHOLDERS if p not in template]
        if missing:
            logger.error("prompt_template_invalid", missing=missing)
            raise TemplateError(
                f"Prompt template is missing placeholder(s): {', '.join(missing)}"
            )

    def assemble(
        self,
        template: str,
        context: RetrievalResult,
        question: str,
        min_score: float = 0.0,
    ) -> Prompt:
        """Render a prompt from retrieved chunks and a question.

        Args:
            template: Template containing both placeholders
            context: Retrieved chunks, best first
            question: User question
            min_score: Chunks scoring below this are left out

        Returns:
            Prompt with the context texts used and the rendered string

        Raises:
            TemplateError: If a required placeholder is missing
        """
        self.validate_template(template)

        texts = [r.chunk.text for r in context if r.score >= min_score]
        if len(texts) < len(context):
            logger.warning(
                "chunks_below_floor_dropped",
                dropped=len(context) - len(texts),
                min_score=min_score,
            )

        context_text = self.separator.join(texts) if texts else self.no_context_marker
        values = {
            CONTEXT_PLACEHOLDER: context_text,
            QUESTION_PLACEHOLDER: question,
        }

        # Single pass: substituted text is never scanned again
        rendered = _PLACEHOLDER_PATTERN.sub(lambda m: values[m.group()], template)

        logger.debug(
            "prompt_assembled",
            num_chunks=len(texts),
            prompt_length=len(rendered),
        )

        return Prompt(context=texts, question=question, rendered=rendered)
