"""
FastAPI router for document analysis endpoints.

Pipeline Architecture:
File upload → Extraction (OCR service) → Chunking → Per-chunk analysis → Aggregation

The orchestrator lives on ``app.state.orchestrator`` (created in main.py's
lifespan) and is injected here through ``get_orchestrator``.
"""
import uuid
from fastapi import APIRouter, HTTPException, UploadFile, File, Form, Request, Depends
from typing import Optional

from core.errors import (
    AnalysisError,
    ServiceUnavailableError,
    QuotaLockedError,
    EmptyResultError,
    MissingCredentialsError,
    RemoteError,
    NetworkFailureError,
)
from logs.logging_config import get_llm_logger, RequestContext
from text_extractor.extractor import validate_document_file
from text_extractor.schemas import DocumentFile, ExtractionOptions
from .config import ANALYSIS_DEFAULT_TYPE
from .orchestrator import AnalysisOrchestrator
from .schemas import AnalysisOptions, AnalysisResponse, AnalysisType

logger = get_llm_logger()

router = APIRouter(prefix="/api/docAI/v1/analyze", tags=["Analysis"])


def get_orchestrator(request: Request) -> AnalysisOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Analysis service is not running")
    return orchestrator


def error_to_http(error: AnalysisError) -> HTTPException:
    """Map a failed run to an HTTP error using the stage error that caused it."""
    cause = error.cause
    if isinstance(cause, ServiceUnavailableError):
        return HTTPException(
            status_code=503,
            detail={"error": "service_unavailable", "dependency": cause.dependency, "message": str(cause)}
        )
    if isinstance(cause, QuotaLockedError):
        return HTTPException(
            status_code=403,
            detail={"error": "quota_locked", "message": str(cause), "remaining": cause.remaining}
        )
    if isinstance(cause, ValueError):
        return HTTPException(status_code=400, detail={"error": "invalid_request", "message": str(cause)})
    if isinstance(cause, EmptyResultError):
        return HTTPException(status_code=422, detail={"error": "empty_result", "message": str(cause)})
    if isinstance(cause, (RemoteError, NetworkFailureError)):
        return HTTPException(status_code=502, detail={"error": "upstream_failure", "message": str(cause)})
    if isinstance(cause, MissingCredentialsError):
        return HTTPException(status_code=500, detail={"error": "missing_credentials", "message": str(cause)})
    return HTTPException(status_code=500, detail={"error": "analysis_failed", "message": str(error)})


@router.post("/file", response_model=AnalysisResponse)
async def analyze_file_endpoint(
    file: UploadFile = File(..., description="Document to analyze (PDF, DOCX, PPTX, XLSX, DOC, PPT, XLS, TXT, CSV, RTF)"),
    request_id: Optional[str] = Form(None, description="Request ID (generated if not provided)"),
    analysis_type: AnalysisType = Form(ANALYSIS_DEFAULT_TYPE, description="Type of analysis"),
    custom_prompt: Optional[str] = Form(None, description="Additional instructions for the analysis"),
    sections: Optional[str] = Form(None, description="Comma-separated topics to focus on"),
    user_id: Optional[str] = Form(None, description="User identifier (forwarded to the OCR service)"),
    chat_id: Optional[str] = Form(None, description="Chat identifier (forwarded to the OCR service)"),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
):
    """
    Analyze a document using the full pipeline: File → Extraction → Chunking → Analysis → Aggregation

    **Analysis Types:**
    - `comprehensive`: Key concepts, section details and summary
    - `summary`: Emphasis on the overall message
    - `key-points`: Emphasis on distinct key points
    - `detailed-explanation`: Emphasis on processes and reasoning

    **Errors:**
    - 400: Unsupported or oversized file, invalid options
    - 403: Usage limit reached for this chat
    - 503: OCR or AI server is currently down
    - 502: Upstream request failed

    **Returns:**
    - `analysis`: Normalized markdown report
    - `sections`: Titled sections with short summaries
    - `key_insights`: Key insights
    - `metadata`: Token estimate, processing time, model, file type
    """
    request_id = request_id or str(uuid.uuid4())

    with RequestContext(request_id, user_id=user_id):
        content = await file.read()
        document = DocumentFile(
            filename=file.filename or "unknown",
            content=content,
            content_type=file.content_type or ""
        )

        try:
            validate_document_file(document)
        except ValueError as e:
            raise HTTPException(status_code=400, detail={"error": "invalid_file", "message": str(e)})

        logger.info(
            f"[ANALYZE_FILE] START | request_id={request_id} | filename={document.filename} | "
            f"bytes={document.size} | type={analysis_type} | user_id={user_id} | chat_id={chat_id}"
        )

        options = AnalysisOptions(
            analysis_type=analysis_type,
            custom_prompt=custom_prompt,
            sections=[s.strip() for s in sections.split(",") if s.strip()] if sections else None
        )

        try:
            result = await orchestrator.analyze(
                document,
                options=options,
                extraction_options=ExtractionOptions(user_id=user_id, chat_id=chat_id)
            )
        except AnalysisError as e:
            http_error = error_to_http(e)
            logger.error(
                f"[ANALYZE_FILE] ERROR | request_id={request_id} | user_id={user_id} | "
                f"status={http_error.status_code} | error={e}"
            )
            raise http_error

        logger.info(
            f"[ANALYZE_FILE] END | request_id={request_id} | sections={len(result.sections)} | "
            f"insights={len(result.key_insights)} | time_ms={result.metadata.processing_time_ms}"
        )

        return AnalysisResponse.from_result(request_id, result, user_id=user_id)
