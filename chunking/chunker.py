"""
Chunker

Sentence-aware chunking with overlap.
Splits extracted document text into segments that fit the analysis token
budget, carrying the tail of each segment into the next for context.
"""

import re
from typing import List

from config import CHARS_PER_TOKEN, estimate_tokens
from logs.logging_config import get_llm_logger
from .config import CHUNKING_MAX_TOKENS, CHUNKING_OVERLAP_TOKENS

logger = get_llm_logger()

# A run of text up to and including its terminators, or a bare run of terminators
SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]*|[.!?]+")


def split_sentences(text: str) -> List[str]:
    """
    Split text into sentences ending with '.', '!' or '?'.

    Terminators and surrounding whitespace are kept so that joining the
    pieces reproduces the input. Whitespace-only pieces are dropped.
    """
    return [s for s in SENTENCE_PATTERN.findall(text) if s.strip()]


def chunk_text(
    text: str,
    max_tokens: int = CHUNKING_MAX_TOKENS,
    overlap_tokens: int = CHUNKING_OVERLAP_TOKENS,
) -> List[str]:
    """
    Partition text into token-budgeted, overlapping chunks.

    Args:
        text: Document text
        max_tokens: Budget per chunk (estimated tokens)
        overlap_tokens: Tail of the previous chunk prepended to the next

    Returns:
        Chunks in document order. Text within budget is returned unchanged
        as the only chunk. A single sentence larger than the budget is kept
        whole, so such a chunk may exceed it.
    """
    if max_tokens <= 0:
        raise ValueError(f"max_tokens must be positive, got {max_tokens}")
    if overlap_tokens < 0:
        raise ValueError(f"overlap_tokens must not be negative, got {overlap_tokens}")

    total_tokens = estimate_tokens(text)
    if total_tokens <= max_tokens:
        return [text]

    overlap_chars = overlap_tokens * CHARS_PER_TOKEN
    chunks: List[str] = []
    current = ""

    for sentence in split_sentences(text):
        if current and estimate_tokens(current) + estimate_tokens(sentence) > max_tokens:
            closed = current.strip()
            chunks.append(closed)
            overlap = closed[-overlap_chars:].lstrip() if overlap_chars else ""
            current = overlap + sentence
        else:
            current += sentence

    if current.strip():
        chunks.append(current.strip())

    logger.info(
        f"[CHUNKING] Split complete | chars={len(text)} | est_tokens={total_tokens} | "
        f"chunks={len(chunks)} | max_tokens={max_tokens} | overlap_tokens={overlap_tokens}"
    )
    return chunks
