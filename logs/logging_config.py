"""
Logging setup for the analysis pipeline.

- One application logger ("doc_analysis") with console + rotating file output
- A separate metrics logger that writes one JSON object per LLM call
- Request/user correlation via contextvars, injected into every record
"""
import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, asdict
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Dict, Any

from .config import (
    LOG_OUTPUT_DIR,
    LOG_TO_FILE,
    LOG_LEVEL,
    LOG_MAX_BYTES,
    LOG_BACKUP_COUNT,
    LOG_PREVIEW_LENGTH,
    LOG_DATE_FORMAT,
    LOG_DETAILED_FORMAT,
    LOG_SIMPLE_FORMAT,
    LOG_JSON_FORMAT,
    LOG_HEALTH_FORMAT,
    LOG_FILE_REQUESTS,
    LOG_FILE_ERRORS,
    LOG_FILE_METRICS,
    LOG_FILE_HEALTH,
)

LOG_DIR = Path(LOG_OUTPUT_DIR)

APP_LOGGER_NAME = "doc_analysis"
METRICS_LOGGER_NAME = "doc_analysis.metrics"
HEALTH_LOGGER_NAME = "doc_analysis.health"

_request_id: ContextVar[str] = ContextVar("request_id", default="-")
_user_id: ContextVar[str] = ContextVar("user_id", default="-")

_configured = False


# =========================
# Context
# =========================

def generate_request_id() -> str:
    return str(uuid.uuid4())


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def clear_request_id() -> None:
    _request_id.set("-")


def set_user_id(user_id: Optional[str]) -> None:
    _user_id.set(user_id or "-")


def get_user_id() -> str:
    return _user_id.get()


def clear_user_id() -> None:
    _user_id.set("-")


class RequestContext:
    """
    Bind a request id (and optionally a user id) for the duration of a block.

    Usage:
        with RequestContext(request_id, user_id="u-1"):
            await orchestrator.analyze(...)
    """

    def __init__(self, request_id: Optional[str] = None, user_id: Optional[str] = None):
        self.request_id = request_id or generate_request_id()
        self.user_id = user_id
        self._tokens = []

    def __enter__(self) -> "RequestContext":
        self._tokens.append((_request_id, _request_id.set(self.request_id)))
        if self.user_id:
            self._tokens.append((_user_id, _user_id.set(self.user_id)))
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()


class ContextFilter(logging.Filter):
    """Inject request_id / user_id into every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        record.user_id = _user_id.get()
        return True


# =========================
# Setup
# =========================

def _file_handler(filename: str, fmt: str, level: int) -> RotatingFileHandler:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(ContextFilter())
    return handler


def setup_logging(level: str = LOG_LEVEL, log_to_file: bool = LOG_TO_FILE) -> logging.Logger:
    """
    Configure application, metrics and health loggers. Safe to call twice.

    Returns:
        The application logger
    """
    global _configured
    logger = logging.getLogger(APP_LOGGER_NAME)
    if _configured:
        return logger

    logger.setLevel(level)
    logger.propagate = False

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(LOG_SIMPLE_FORMAT, datefmt=LOG_DATE_FORMAT))
    console.addFilter(ContextFilter())
    logger.addHandler(console)

    metrics_logger = logging.getLogger(METRICS_LOGGER_NAME)
    metrics_logger.setLevel(logging.INFO)
    metrics_logger.propagate = False

    health_logger = logging.getLogger(HEALTH_LOGGER_NAME)
    health_logger.setLevel(level)

    if log_to_file:
        logger.addHandler(_file_handler(LOG_FILE_REQUESTS, LOG_DETAILED_FORMAT, logging.DEBUG))
        logger.addHandler(_file_handler(LOG_FILE_ERRORS, LOG_DETAILED_FORMAT, logging.ERROR))
        metrics_logger.addHandler(_file_handler(LOG_FILE_METRICS, LOG_JSON_FORMAT, logging.INFO))
        health_logger.addHandler(_file_handler(LOG_FILE_HEALTH, LOG_HEALTH_FORMAT, logging.DEBUG))

    _configured = True
    logger.debug(f"[LOGGING] Configured | level={level} | dir={LOG_DIR if log_to_file else 'console'}")
    return logger


def get_llm_logger() -> logging.Logger:
    return logging.getLogger(APP_LOGGER_NAME)


def get_health_logger() -> logging.Logger:
    return logging.getLogger(HEALTH_LOGGER_NAME)


def get_metrics_logger() -> logging.Logger:
    return logging.getLogger(METRICS_LOGGER_NAME)


# =========================
# LLM call logging
# =========================

@dataclass
class LLMMetrics:
    """One metrics line per LLM call."""
    request_id: str
    call_id: str
    model: str
    task: str
    latency_ms: float
    prompt_chars: int
    response_chars: int
    status: str
    max_tokens: int
    estimated_prompt_tokens: int
    timestamp: float


def _preview(text: str) -> str:
    if len(text) <= LOG_PREVIEW_LENGTH:
        return text
    return text[:LOG_PREVIEW_LENGTH] + "..."


def log_llm_request(
    model: str,
    task: str,
    prompt: str,
    temperature: float,
    max_tokens: int,
) -> str:
    """Log an outgoing LLM request and return its call id."""
    call_id = uuid.uuid4().hex[:12]
    get_llm_logger().info(
        f"[LLM_REQUEST] call_id={call_id} | task={task} | model={model} | "
        f"prompt_chars={len(prompt)} | temperature={temperature} | max_tokens={max_tokens}"
    )
    get_llm_logger().debug(f"[LLM_REQUEST] call_id={call_id} | preview={_preview(prompt)!r}")
    return call_id


def log_llm_response(
    call_id: str,
    model: str,
    response: str,
    latency_ms: float,
    status: str,
    error_message: Optional[str] = None,
) -> None:
    logger = get_llm_logger()
    if status == "success":
        logger.info(
            f"[LLM_RESPONSE] call_id={call_id} | model={model} | "
            f"response_chars={len(response)} | latency_ms={latency_ms:.0f}"
        )
        logger.debug(f"[LLM_RESPONSE] call_id={call_id} | preview={_preview(response)!r}")
    else:
        logger.error(
            f"[LLM_RESPONSE] call_id={call_id} | model={model} | status={status} | "
            f"latency_ms={latency_ms:.0f} | error={error_message}"
        )


def log_metrics(metrics: LLMMetrics) -> Dict[str, Any]:
    """Write a metrics record as a single JSON line."""
    data = asdict(metrics)
    get_metrics_logger().info(json.dumps(data, ensure_ascii=False))
    return data


def build_metrics(
    call_id: str,
    model: str,
    task: str,
    latency_ms: float,
    prompt: str,
    response: str,
    status: str,
    max_tokens: int,
    estimated_prompt_tokens: int,
) -> LLMMetrics:
    return LLMMetrics(
        request_id=get_request_id(),
        call_id=call_id,
        model=model,
        task=task,
        latency_ms=round(latency_ms, 2),
        prompt_chars=len(prompt),
        response_chars=len(response),
        status=status,
        max_tokens=max_tokens,
        estimated_prompt_tokens=estimated_prompt_tokens,
        timestamp=time.time(),
    )
