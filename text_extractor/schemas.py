"""
Schemas for Text Extraction Module

Supports: PDF, DOCX, PPTX, XLSX, DOC, PPT, XLS, TXT, CSV, RTF files.
Extraction itself happens on the remote OCR service; these types describe
the upload and the structured result returned to the pipeline.
"""

import json
import mimetypes
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, field, asdict

from core.errors import (
    DocumentAnalysisError,
    ServiceUnavailableError,
    QuotaLockedError,
    NetworkFailureError,
    RequestCancelledError,
    RemoteError,
    EmptyResultError,
)
from health.schemas import Dependency

# Remaining-quota figures reported when a 403 omits them
DEFAULT_REMAINING = {"dailyPremiumOcr": 0, "chatPremiumOcr": 0, "chatToolCalls": 0}


class ErrorKind(str, Enum):
    """Why an extraction failed."""
    SERVICE_UNAVAILABLE = "service_unavailable"
    QUOTA_LOCKED = "quota_locked"
    REMOTE = "remote"
    NETWORK = "network"
    CANCELLED = "cancelled"
    EMPTY_RESULT = "empty_result"


@dataclass
class DocumentFile:
    """An uploaded document held in memory."""
    filename: str
    content: bytes
    content_type: str = ""

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    @classmethod
    def from_path(cls, path: str, content_type: Optional[str] = None) -> "DocumentFile":
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        guessed, _ = mimetypes.guess_type(file_path.name)
        return cls(
            filename=file_path.name,
            content=file_path.read_bytes(),
            content_type=content_type or guessed or ""
        )


@dataclass
class ExtractionOptions:
    """Per-call identity and limits forwarded to the OCR service."""
    user_id: Optional[str] = None
    chat_id: Optional[str] = None
    max_length: Optional[int] = None


@dataclass
class UsageInfo:
    """Usage/quota figures reported by the OCR service."""
    chat_locked: bool = False
    locked_reason: Optional[str] = None
    remaining: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageInfo":
        return cls(
            chat_locked=bool(data.get("chatLocked", data.get("chat_locked", False))),
            locked_reason=data.get("lockedReason", data.get("locked_reason")),
            remaining=data.get("remaining") or {}
        )


@dataclass
class ExtractionResult:
    """Outcome of one extraction call. Failures are values, not exceptions."""
    text: str
    success: bool
    error: Optional[str] = None
    file_type: Optional[str] = None
    file_path: Optional[str] = None
    ocr_type: Optional[str] = None
    server_down: bool = False
    usage: Optional[UsageInfo] = None
    error_kind: Optional[ErrorKind] = None
    status: Optional[int] = None

    @classmethod
    def failure(
        cls,
        error: str,
        error_kind: ErrorKind,
        server_down: bool = False,
        usage: Optional[UsageInfo] = None,
        status: Optional[int] = None
    ) -> "ExtractionResult":
        return cls(
            text="",
            success=False,
            error=error,
            server_down=server_down,
            usage=usage,
            error_kind=error_kind,
            status=status
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["error_kind"] = self.error_kind.value if self.error_kind else None
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def to_exception(self) -> Optional[DocumentAnalysisError]:
        """
        Map a failed result onto the error taxonomy.

        Returns:
            None for a successful result
        """
        if self.success:
            return None

        message = self.error or "Extraction failed"
        if self.error_kind == ErrorKind.SERVICE_UNAVAILABLE:
            return ServiceUnavailableError(Dependency.OCR_SERVER.value, message)
        if self.error_kind == ErrorKind.QUOTA_LOCKED:
            return QuotaLockedError(message, self.usage.remaining if self.usage else None)
        if self.error_kind == ErrorKind.REMOTE:
            return RemoteError(self.status or 0, message)
        if self.error_kind == ErrorKind.CANCELLED:
            return RequestCancelledError(message)
        if self.error_kind == ErrorKind.NETWORK:
            return NetworkFailureError(message, server_down=self.server_down)
        if self.error_kind == ErrorKind.EMPTY_RESULT:
            return EmptyResultError(message)
        return DocumentAnalysisError(message)
