"""Single-shot retrieval-augmented generation pipeline."""

__version__ = "0.1.0"
