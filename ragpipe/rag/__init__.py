"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Text extraction from files and web pages
- Token-bounded document chunking
- In-memory FAISS vector indexing
- Similarity retrieval
- Grounded prompt assembly
- Pipeline orchestration
"""
