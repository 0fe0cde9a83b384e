"""
Global Configuration

Shared settings used across all modules.
Module-specific settings are in each module's config.py file.

All settings can be overridden via environment variables or a .env file.
"""
import math
import os
from dotenv import load_dotenv

# Load .env file before any os.getenv() calls
load_dotenv()

# =========================
# Remote Services
# =========================

# AI server hosts the chat-completion proxy
AI_SERVER_URL = os.getenv("AI_SERVER_URL", "https://ai.collegebuzz.in")

# OCR server hosts the document extraction endpoint
OCR_SERVER_URL = os.getenv("OCR_SERVER_URL", "https://ocr.collegebuzz.in")

DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "qwen-3-235b-a22b-instruct-2507")

# =========================
# Redis Configuration
# =========================

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB = int(os.getenv("REDIS_DB", "0"))

# =========================
# Token Estimation
# =========================

# Fixed approximation shared by chunking and result metadata
CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """
    Estimate token count as ceil(chars / 4).

    This is not a tokenizer. The approximation is part of the chunking
    contract, so it must stay identical everywhere it is used.
    """
    return math.ceil(len(text) / CHARS_PER_TOKEN)
