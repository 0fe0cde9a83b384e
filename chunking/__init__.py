"""
Chunking Module

Sentence-aware, token-budgeted chunking with overlap for extracted
document text.
"""

from .chunker import chunk_text, split_sentences
from .config import (
    CHUNKING_MAX_TOKENS,
    CHUNKING_OVERLAP_TOKENS,
)

__all__ = [
    # Chunker
    "chunk_text",
    "split_sentences",
    # Config
    "CHUNKING_MAX_TOKENS",
    "CHUNKING_OVERLAP_TOKENS",
]
