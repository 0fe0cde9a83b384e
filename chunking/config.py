"""
Chunking Configuration

Module-specific settings for token-budgeted text chunking.
"""
import os

# =========================
# Chunking Settings
# =========================

# Token budget per chunk (estimated as ceil(chars / 4))
CHUNKING_MAX_TOKENS = int(os.getenv("CHUNKING_MAX_TOKENS", "45000"))

# Trailing context carried from one chunk into the next, in tokens (500 => 2000 chars)
CHUNKING_OVERLAP_TOKENS = int(os.getenv("CHUNKING_OVERLAP_TOKENS", "500"))
