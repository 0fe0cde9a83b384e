"""
Error Taxonomy

Typed failure modes shared by the extractor, the LLM client and the
orchestrator. The HTTP routers map these to status codes.
"""
import asyncio
import json
import re
from typing import Any, Dict, Optional

import aiohttp


# Message fragments that mark a transport failure as "service probably down"
NETWORK_ERROR_PATTERN = re.compile(
    r"network|fetch|timeout|timed out|connect|connection|unreachable|reset",
    re.IGNORECASE,
)


class DocumentAnalysisError(Exception):
    """Base class for all pipeline errors."""


class ServiceUnavailableError(DocumentAnalysisError):
    """Health gate rejected the call before any network attempt."""

    def __init__(self, dependency: str, message: Optional[str] = None):
        self.dependency = dependency
        super().__init__(message or f"{dependency} is currently unavailable. Please try again later.")


class QuotaLockedError(DocumentAnalysisError):
    """Usage-limit 403 from a remote dependency. Not an outage."""

    def __init__(self, message: str, remaining: Optional[Dict[str, Any]] = None):
        self.remaining = remaining or {}
        super().__init__(message)


class NetworkFailureError(DocumentAnalysisError):
    """Transport-level failure (timeout, DNS, connection reset)."""

    def __init__(self, message: str, server_down: bool = False):
        self.server_down = server_down
        super().__init__(message)


class RequestCancelledError(NetworkFailureError):
    """The caller aborted an in-flight request."""

    def __init__(self, message: str = "Request was cancelled"):
        super().__init__(message, server_down=False)


class RemoteError(DocumentAnalysisError):
    """Non-2xx, non-403 HTTP response."""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(message)

    @property
    def server_down(self) -> bool:
        return self.status >= 500


class EmptyResultError(DocumentAnalysisError):
    """The call succeeded but produced no usable content."""


class ParseFailureError(DocumentAnalysisError):
    """Local parsing of a structured response failed."""


class MissingCredentialsError(DocumentAnalysisError):
    """No API key is configured for a dependency."""


class AnalysisError(DocumentAnalysisError):
    """Raised by the orchestrator when a run aborts."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


def is_network_error(exc: BaseException) -> bool:
    """Check whether a transport exception suggests the remote service is down."""
    if isinstance(exc, (asyncio.TimeoutError, aiohttp.ClientConnectionError)):
        return True
    return bool(NETWORK_ERROR_PATTERN.search(str(exc)))


def load_json_body(body: str) -> Any:
    """
    Decode a JSON response body.

    Raises:
        ParseFailureError: If the body is not valid JSON
    """
    try:
        return json.loads(body)
    except ValueError as e:
        raise ParseFailureError(f"Malformed JSON body: {e}") from e


def parse_error_body(body: str, fallback: str) -> str:
    """
    Best-effort error message from a response body.

    Looks for ``error.message`` then ``message`` in a JSON body, otherwise
    returns the raw text (or the fallback when the body is empty).
    """
    if not body:
        return fallback
    try:
        data = load_json_body(body)
    except ParseFailureError:
        return body
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if data.get("message"):
            return str(data["message"])
    return body
