"""
Logs Module

Provides:
- Logging configuration for the analysis pipeline
- LLM request/response logging with metrics
- Context tracking (request_id, user_id)
"""

from .logging_config import (
    setup_logging,
    get_llm_logger,
    get_health_logger,
    get_metrics_logger,
    log_llm_request,
    log_llm_response,
    log_metrics,
    build_metrics,
    RequestContext,
    set_user_id,
    get_user_id,
    clear_user_id,
    set_request_id,
    get_request_id,
    clear_request_id,
    generate_request_id,
    LOG_DIR,
    LLMMetrics
)

__all__ = [
    "setup_logging",
    "get_llm_logger",
    "get_health_logger",
    "get_metrics_logger",
    "log_llm_request",
    "log_llm_response",
    "log_metrics",
    "build_metrics",
    "RequestContext",
    "set_user_id",
    "get_user_id",
    "clear_user_id",
    "set_request_id",
    "get_request_id",
    "clear_request_id",
    "generate_request_id",
    "LOG_DIR",
    "LLMMetrics"
]
