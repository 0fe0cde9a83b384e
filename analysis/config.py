"""
Analysis Configuration

Module-specific settings for chunked document analysis.
"""
import os

from config import AI_SERVER_URL, DEFAULT_MODEL

# =========================
# LLM Backend Configuration
# =========================

# AI server hosting the chat-completion proxy (falls back to global config)
ANALYSIS_AI_URL = os.getenv("ANALYSIS_AI_URL", AI_SERVER_URL)

# Chat proxy path on the AI server
ANALYSIS_CHAT_PATH = os.getenv("ANALYSIS_CHAT_PATH", "/cerebras/chat")

ANALYSIS_DEFAULT_MODEL = os.getenv("ANALYSIS_DEFAULT_MODEL", DEFAULT_MODEL)

# =========================
# LLM Settings for Analysis
# =========================

ANALYSIS_TEMPERATURE = float(os.getenv("ANALYSIS_TEMPERATURE", "0.2"))
ANALYSIS_TOP_P = float(os.getenv("ANALYSIS_TOP_P", "0.8"))

# Response budget per chunk; also caps the reported token_count
ANALYSIS_MAX_TOKENS = int(os.getenv("ANALYSIS_MAX_TOKENS", "6000"))

# =========================
# Connection Settings
# =========================

ANALYSIS_CONNECTION_TIMEOUT = int(os.getenv("ANALYSIS_CONNECTION_TIMEOUT", "300"))
ANALYSIS_CONNECTION_POOL_LIMIT = int(os.getenv("ANALYSIS_CONNECTION_POOL_LIMIT", "50"))

# =========================
# Analysis Type Settings
# =========================

ANALYSIS_DEFAULT_TYPE = os.getenv("ANALYSIS_DEFAULT_TYPE", "comprehensive")
ANALYSIS_SUPPORTED_TYPES = ["comprehensive", "summary", "key-points", "detailed-explanation"]

# Maximum characters accepted for a user-supplied custom prompt
ANALYSIS_MAX_CUSTOM_PROMPT_CHARS = int(os.getenv("ANALYSIS_MAX_CUSTOM_PROMPT_CHARS", "2000"))

# =========================
# Result Parsing
# =========================

# Separator placed between chunk outputs before parsing
ANALYSIS_CHUNK_SEPARATOR = "\n\n---\n\n"

ANALYSIS_MAX_KEY_INSIGHTS = int(os.getenv("ANALYSIS_MAX_KEY_INSIGHTS", "10"))
ANALYSIS_SECTION_SUMMARY_CHARS = int(os.getenv("ANALYSIS_SECTION_SUMMARY_CHARS", "150"))
