"""
Core Module

Shared infrastructure components for all modules:
- LLM chat client base class
- Error taxonomy
- Credential lookup and caller cancellation
- Validators
"""

from .llm_client_base import BaseLLMClient, LLMConfig
from .cancellation import run_cancellable
from .credentials import get_api_key
from .errors import (
    DocumentAnalysisError,
    ServiceUnavailableError,
    QuotaLockedError,
    NetworkFailureError,
    RequestCancelledError,
    RemoteError,
    EmptyResultError,
    ParseFailureError,
    MissingCredentialsError,
    AnalysisError,
    is_network_error,
    load_json_body,
)
from .validators import (
    validate_file_size,
    validate_text_length,
)

__all__ = [
    "BaseLLMClient",
    "LLMConfig",
    "run_cancellable",
    "get_api_key",
    "DocumentAnalysisError",
    "ServiceUnavailableError",
    "QuotaLockedError",
    "NetworkFailureError",
    "RequestCancelledError",
    "RemoteError",
    "EmptyResultError",
    "ParseFailureError",
    "MissingCredentialsError",
    "AnalysisError",
    "is_network_error",
    "load_json_body",
    "validate_file_size",
    "validate_text_length",
]
