"""
Text Extractor

Extracts text from documents through the remote OCR service.
Supports: PDF, DOCX, PPTX, XLSX, DOC, PPT, XLS, TXT, CSV, RTF.

- Consults the health monitor first; no request is made when OCR is down
- 403 responses are usage-limit locks, not outages
- 5xx responses and network errors are flagged server_down for the caller
  only; the shared health state is left to the probe loop
"""

import json
import asyncio
import aiohttp
from typing import Callable, Optional

from core.cancellation import run_cancellable
from core.errors import ParseFailureError, RequestCancelledError, is_network_error, load_json_body
from core.validators import validate_file_size
from health.monitor import ServiceHealthMonitor
from health.schemas import Dependency
from logs.logging_config import get_llm_logger
from .config import (
    EXTRACTOR_OCR_URL,
    EXTRACTOR_OCR_PATH,
    EXTRACTOR_CONNECTION_TIMEOUT,
    EXTRACTOR_CONNECTION_POOL_LIMIT,
    EXTRACTOR_SUPPORTED_FILE_TYPES,
    EXTRACTOR_SUPPORTED_MIME_TYPES,
    EXTRACTOR_MAX_FILE_SIZE_MB,
    EXTRACTOR_UNAVAILABLE_MESSAGE,
    EXTRACTOR_LOCKED_MESSAGE,
    EXTRACTOR_EMPTY_MESSAGE,
)
from .schemas import (
    DEFAULT_REMAINING,
    DocumentFile,
    ErrorKind,
    ExtractionOptions,
    ExtractionResult,
    UsageInfo,
)

logger = get_llm_logger()


def validate_document_file(document: Optional[DocumentFile]) -> None:
    """
    Check that a document can be sent for extraction.

    The extension decides; a MIME type outside the supported set is
    tolerated when the extension is known, since clients often send
    generic types.

    Raises:
        ValueError: If the file is missing, empty, unsupported or too large
    """
    if document is None or not document.filename:
        raise ValueError("No file provided")

    if document.extension not in EXTRACTOR_SUPPORTED_FILE_TYPES:
        supported = ", ".join(sorted(EXTRACTOR_SUPPORTED_FILE_TYPES))
        if document.content_type and document.content_type not in EXTRACTOR_SUPPORTED_MIME_TYPES:
            raise ValueError(f"Unsupported file type: {document.content_type}. Supported: {supported}")
        raise ValueError(f"Unsupported file extension: {document.extension or '(none)'}. Supported: {supported}")

    if document.size == 0:
        raise ValueError("File is empty")

    validate_file_size(document.size, EXTRACTOR_MAX_FILE_SIZE_MB, "Extraction")


class DocumentExtractor:
    """
    Client for the OCR service's extraction endpoint, gated on OCR health.

    Failures are returned as ExtractionResult values with success=False;
    use ``ExtractionResult.to_exception()`` to raise them.
    """

    def __init__(
        self,
        monitor: ServiceHealthMonitor,
        base_url: str = EXTRACTOR_OCR_URL,
        ocr_path: str = EXTRACTOR_OCR_PATH,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: int = EXTRACTOR_CONNECTION_TIMEOUT
    ):
        self.monitor = monitor
        self.base_url = base_url
        self.ocr_path = ocr_path
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.ocr_path}"

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                connector=aiohttp.TCPConnector(limit=EXTRACTOR_CONNECTION_POOL_LIMIT)
            )
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def is_server_available(self) -> bool:
        """Cached OCR health, no I/O."""
        return self.monitor.is_healthy(Dependency.OCR_SERVER)

    async def extract(
        self,
        document: DocumentFile,
        options: Optional[ExtractionOptions] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ExtractionResult:
        """
        Extract text from a document.

        Args:
            document: The uploaded file
            options: user_id / chat_id headers and an optional max_length
            cancel_event: Set by the caller to abort the upload

        Returns:
            ExtractionResult; never raises for remote or network failures
        """
        options = options or ExtractionOptions()

        if not self.is_server_available():
            logger.warning(f"[EXTRACT] OCR server is down, skipping extraction | filename={document.filename}")
            return ExtractionResult.failure(
                EXTRACTOR_UNAVAILABLE_MESSAGE,
                ErrorKind.SERVICE_UNAVAILABLE,
                server_down=True
            )

        logger.info(
            f"[EXTRACT] START | filename={document.filename} | bytes={document.size} | "
            f"user_id={options.user_id} | chat_id={options.chat_id}"
        )

        try:
            result = await run_cancellable(self._post(document, options), cancel_event)
        except RequestCancelledError as e:
            logger.info(f"[EXTRACT] Cancelled | filename={document.filename}")
            return ExtractionResult.failure(str(e), ErrorKind.CANCELLED)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            message = str(e) or type(e).__name__
            server_down = is_network_error(e)
            logger.error(f"[EXTRACT] Request failed | filename={document.filename} | server_down={server_down} | error={message}")
            return ExtractionResult.failure(message, ErrorKind.NETWORK, server_down=server_down)

        if result.success:
            logger.info(
                f"[EXTRACT] END | filename={document.filename} | chars={len(result.text)} | "
                f"file_type={result.file_type} | ocr_type={result.ocr_type}"
            )
        else:
            logger.warning(f"[EXTRACT] Failed | filename={document.filename} | kind={result.error_kind.value} | error={result.error}")
        return result

    async def _post(self, document: DocumentFile, options: ExtractionOptions) -> ExtractionResult:
        form = aiohttp.FormData()
        form.add_field(
            "file",
            document.content,
            filename=document.filename,
            content_type=document.content_type or "application/octet-stream"
        )

        headers = {"Accept": "application/json"}
        if options.user_id:
            headers["X-User-Id"] = options.user_id
        if options.chat_id:
            headers["X-Chat-Id"] = options.chat_id

        session = await self.get_session()
        async with session.post(self.endpoint, data=form, headers=headers) as r:
            body = await r.text()

            if r.status == 403:
                return self._locked_result(body)

            if r.status < 200 or r.status >= 300:
                return ExtractionResult.failure(
                    f"HTTP {r.status}: {r.reason}",
                    ErrorKind.REMOTE,
                    server_down=r.status >= 500,
                    status=r.status
                )

            content_type = r.headers.get("Content-Type", "")
            return self._success_result(body, content_type, options.max_length)

    def _locked_result(self, body: str) -> ExtractionResult:
        data = {}
        try:
            parsed = load_json_body(body) if body else {}
            if isinstance(parsed, dict):
                data = parsed
        except ParseFailureError as e:
            logger.debug(f"[EXTRACT] 403 body ignored | error={e}")

        error = data.get("error")
        reason = error.get("message") if isinstance(error, dict) else None
        message = reason or EXTRACTOR_LOCKED_MESSAGE
        return ExtractionResult.failure(
            message,
            ErrorKind.QUOTA_LOCKED,
            server_down=False,
            usage=UsageInfo(
                chat_locked=True,
                locked_reason=reason,
                remaining=data.get("remaining") or dict(DEFAULT_REMAINING)
            ),
            status=403
        )

    def _success_result(self, body: str, content_type: str, max_length: Optional[int]) -> ExtractionResult:
        text = body
        file_type = None
        file_path = None
        ocr_type = None
        usage = None

        if "application/json" in content_type:
            try:
                data = load_json_body(body)
            except ParseFailureError as e:
                logger.warning(f"[EXTRACT] Using raw text | error={e}")
            else:
                if isinstance(data, dict):
                    text = data.get("text") or data.get("content") or data.get("result") or json.dumps(data)
                    file_type = data.get("fileType") or None
                    file_path = data.get("filePath")
                    ocr_type = data.get("ocrType")
                    if isinstance(data.get("usage"), dict):
                        usage = UsageInfo.from_dict(data["usage"])
                else:
                    text = json.dumps(data)

        text = str(text or "")
        if max_length:
            text = text[:max_length]
        text = text.strip()

        if not text:
            return ExtractionResult.failure(EXTRACTOR_EMPTY_MESSAGE, ErrorKind.EMPTY_RESULT)

        return ExtractionResult(
            text=text,
            success=True,
            file_type=file_type,
            file_path=file_path,
            ocr_type=ocr_type,
            usage=usage,
            server_down=False
        )

    async def extract_with_progress(
        self,
        document: DocumentFile,
        on_progress: Optional[Callable[[str], None]] = None,
        options: Optional[ExtractionOptions] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ExtractionResult:
        """Same as ``extract`` but reports each stage as a short message."""
        def report(message: str) -> None:
            if on_progress:
                on_progress(message)

        if not self.is_server_available():
            report("OCR server is currently unavailable")
            return ExtractionResult.failure(
                EXTRACTOR_UNAVAILABLE_MESSAGE,
                ErrorKind.SERVICE_UNAVAILABLE,
                server_down=True
            )

        report("Uploading document for text extraction...")
        result = await self.extract(document, options, cancel_event)

        if result.success:
            report("Text extraction completed successfully")
        elif result.usage and result.usage.chat_locked:
            report("Chat has reached its limits")
        elif result.server_down:
            report("OCR server is unavailable")
        else:
            report(f"Extraction failed: {result.error}")
        return result
