"""
Text Extractor Module

Extracts text from documents through the remote OCR service.
- Gated on the OCR server's cached health
- Usage-limit (403) responses reported as chat locks
- Outage hints (5xx, network errors) surfaced as server_down
"""

from .schemas import (
    DocumentFile,
    ExtractionOptions,
    ExtractionResult,
    UsageInfo,
    ErrorKind,
)
from .extractor import DocumentExtractor, validate_document_file

__all__ = [
    "DocumentExtractor",
    "validate_document_file",
    "DocumentFile",
    "ExtractionOptions",
    "ExtractionResult",
    "UsageInfo",
    "ErrorKind",
]
