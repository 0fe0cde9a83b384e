"""
Text Extractor Configuration

Module-specific settings for remote (OCR service) document text extraction.
"""
import os

from config import OCR_SERVER_URL

# =========================
# OCR Service Settings
# =========================

EXTRACTOR_OCR_URL = os.getenv("EXTRACTOR_OCR_URL", OCR_SERVER_URL)
EXTRACTOR_OCR_PATH = os.getenv("EXTRACTOR_OCR_PATH", "/api/ocr")

# =========================
# Connection Settings
# =========================

EXTRACTOR_CONNECTION_TIMEOUT = int(os.getenv("EXTRACTOR_CONNECTION_TIMEOUT", "300"))
EXTRACTOR_CONNECTION_POOL_LIMIT = int(os.getenv("EXTRACTOR_CONNECTION_POOL_LIMIT", "20"))

# =========================
# File Processing Settings
# =========================

# Supported file types for document processing
EXTRACTOR_SUPPORTED_FILE_TYPES = {
    ".pdf", ".docx", ".pptx", ".xlsx", ".doc", ".ppt", ".xls", ".txt", ".csv", ".rtf"
}

EXTRACTOR_SUPPORTED_MIME_TYPES = {
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/msword",
    "application/vnd.ms-powerpoint",
    "application/vnd.ms-excel",
    "text/plain",
    "text/csv",
    "application/rtf",
}

# =========================
# Processing Limits
# =========================

EXTRACTOR_MAX_FILE_SIZE_MB = int(os.getenv("EXTRACTOR_MAX_FILE_SIZE_MB", "50"))

# =========================
# User-facing Messages
# =========================

EXTRACTOR_UNAVAILABLE_MESSAGE = "OCR server is currently unavailable. Please try again later."
EXTRACTOR_LOCKED_MESSAGE = "This chat has reached its limits."
EXTRACTOR_EMPTY_MESSAGE = "No text content found in document"
