#!/usr/bin/env python
"""Answer a question from a single document with the RAG pipeline.

Usage:
    python scripts/ask.py                                  # Default page and question
    python scripts/ask.py notes/setup.md "How do I install it?"
    python scripts/ask.py https://example.com/doc.html --top-k 5 --verbose
"""
import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from ragpipe import config
from ragpipe.errors import RAGPipelineError
from ragpipe.llm_client import OllamaClient
from ragpipe.rag.extract import TextExtractor
from ragpipe.rag.pipeline import Pipeline, PipelineConfig
import structlog


def configure_logging(level: str) -> None:
    """Configure structured logging on top of stdlib logging."""
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Answer a question from one document (retrieval-augmented)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/ask.py
  python scripts/ask.py notes/setup.md "How do I install it?"
  python scripts/ask.py page.html --min-similarity 0.3 --top-k 5
        """,
    )

    parser.add_argument(
        "source",
        nargs="?",
        default=config.DEFAULT_SOURCE,
        help=f"File path or http(s) URL (default: {config.DEFAULT_SOURCE})",
    )

    parser.add_argument(
        "question",
        nargs="?",
        default=config.DEFAULT_QUESTION,
        help=f"Question to answer (default: {config.DEFAULT_QUESTION!r})",
    )

    parser.add_argument(
        "--max-chunk-tokens",
        type=int,
        default=None,
        help=f"Tokens per chunk (default: {config.MAX_CHUNK_TOKENS})",
    )

    parser.add_argument(
        "--min-similarity",
        type=float,
        default=None,
        help=f"Similarity floor 0-1 (default: {config.MIN_SIMILARITY})",
    )

    parser.add_argument(
        "--top-k",
        type=int,
        default=None,
        help=f"Chunks to retrieve (default: {config.RETRIEVAL_TOP_K})",
    )

    parser.add_argument(
        "--template",
        type=Path,
        default=None,
        help="Prompt template file with {retrieved_chunk} and {question}",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug events and print the retrieved chunks",
    )

    return parser


def main(argv=None) -> int:
    """Main entry point for the ask script."""
    args = build_parser().parse_args(argv)

    configure_logging("DEBUG" if args.verbose else config.LOG_LEVEL)
    logger = structlog.get_logger()

    try:
        template = args.template.read_text(encoding="utf-8") if args.template else None
        run_config = PipelineConfig.from_settings(
            max_chunk_tokens=args.max_chunk_tokens,
            min_similarity=args.min_similarity,
            top_k=args.top_k,
            prompt_template=template,
        )
    except (OSError, ValueError, RAGPipelineError) as e:
        print(f"\n❌ Invalid configuration: {e}\n", file=sys.stderr)
        return 2

    print("\n📋 Configuration:")
    print(f"   Source:           {args.source}")
    print(f"   Question:         {args.question}")
    print(f"   Embedding model:  {config.EMBEDDING_MODEL}")
    print(f"   Chat model:       {config.CHAT_MODEL}")
    print(f"   Chunk size:       {run_config.max_chunk_tokens} tokens")
    print(f"   Min similarity:   {run_config.min_similarity}")
    print(f"   Top-K retrieval:  {run_config.top_k}")

    client = OllamaClient()
    pipeline = Pipeline(
        extract_fn=TextExtractor(),
        embedding_fn=client.embed,
        generate_fn=client.generate,
        logger=logger,
    )

    start_time = datetime.now()

    try:
        result = pipeline.run(args.source, args.question, run_config)
    except KeyboardInterrupt:
        print("\n\n⚠️  Cancelled by user.\n", file=sys.stderr)
        return 1
    except RAGPipelineError as e:
        print(f"\n❌ {type(e).__name__}: {e}\n", file=sys.stderr)
        return 1

    elapsed_seconds = (datetime.now() - start_time).total_seconds()

    if args.verbose:
        print(f"\n{'=' * 60}")
        print("  Retrieved chunks")
        print(f"{'=' * 60}")
        for i, scored in enumerate(result.retrieved, 1):
            preview = " ".join(scored.text.split())[:120]
            print(f"  [{i}] score={scored.score:.3f} ordinal={scored.chunk.ordinal} {preview}")

    print(f"\n{'=' * 60}")
    print("  Answer")
    print(f"{'=' * 60}\n")
    print(result.answer)
    print(f"\n  📝 Chunks indexed:  {result.chunk_count}")
    print(f"  🔎 Chunks used:     {len(result.prompt.context)}")
    print(f"  ⏱️  Time elapsed:    {elapsed_seconds:.1f}s\n")

    return 0


if __name__ == "__main__":
    sys.exit(main())
