"""
Analysis Orchestrator

Pipeline: Document → Extraction (OCR) → Chunking → Per-chunk LLM analysis → Aggregation

- Chunks are analyzed strictly in order, one at a time
- Progress is reported as (percent, message) and never decreases
- The first failure from any stage aborts the run; partial results are
  discarded and the caller receives a final failure message before the
  AnalysisError is raised
"""

import asyncio
import inspect
import math
import time
from typing import Callable, Optional, Union, Awaitable

from chunking.chunker import chunk_text
from chunking.config import CHUNKING_MAX_TOKENS, CHUNKING_OVERLAP_TOKENS
from config import estimate_tokens
from core.credentials import get_api_key
from core.errors import AnalysisError
from core.validators import validate_text_length
from health.monitor import ServiceHealthMonitor
from health.schemas import Dependency
from logs.logging_config import get_llm_logger
from text_extractor.extractor import DocumentExtractor
from text_extractor.schemas import DocumentFile, ExtractionOptions
from .aggregator import aggregate_analyses
from .config import (
    ANALYSIS_MAX_TOKENS,
    ANALYSIS_SUPPORTED_TYPES,
    ANALYSIS_MAX_CUSTOM_PROMPT_CHARS,
)
from .llm_client import AnalysisLLMClient
from .prompts import (
    CHUNK_ANALYSIS_PROMPT,
    ANALYSIS_TYPE_INSTRUCTIONS,
    SECTIONS_FOCUS_TEMPLATE,
    CUSTOM_INSTRUCTIONS_TEMPLATE,
)
from .schemas import AnalysisOptions, AnalysisMetadata, DocumentAnalysisResult

logger = get_llm_logger()

ProgressCallback = Callable[[float, str], None]
ApiKeyProvider = Callable[[Dependency], Union[str, Awaitable[str]]]

MIME_FILE_TYPES = {
    "application/pdf": "PDF",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "DOCX",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": "PPTX",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "XLSX",
    "application/msword": "DOC",
    "application/vnd.ms-powerpoint": "PPT",
    "application/vnd.ms-excel": "XLS",
    "text/plain": "TXT",
    "text/csv": "CSV",
    "application/rtf": "RTF",
}


def get_file_type_from_mime(mime_type: Optional[str]) -> str:
    return MIME_FILE_TYPES.get(mime_type or "", "Document")


def validate_analysis_options(options: AnalysisOptions) -> None:
    """
    Raises:
        ValueError: On an unknown analysis type or an oversized custom prompt
    """
    if options.analysis_type not in ANALYSIS_SUPPORTED_TYPES:
        raise ValueError(
            f"Unsupported analysis type: {options.analysis_type}. "
            f"Supported: {', '.join(ANALYSIS_SUPPORTED_TYPES)}"
        )
    if options.custom_prompt:
        validate_text_length(options.custom_prompt, ANALYSIS_MAX_CUSTOM_PROMPT_CHARS, "Analysis")


def build_analysis_prompt(
    chunk: str,
    options: AnalysisOptions,
    chunk_index: int,
    total_chunks: int
) -> str:
    """
    Build the user prompt for one chunk.

    Args:
        chunk: Chunk text
        options: Analysis type, focus sections and custom instructions
        chunk_index: 1-based position of the chunk
        total_chunks: Number of chunks in the document
    """
    focus = ANALYSIS_TYPE_INSTRUCTIONS.get(options.analysis_type, "")
    if options.sections:
        focus += SECTIONS_FOCUS_TEMPLATE.format(sections=", ".join(options.sections))

    additional = ""
    if options.custom_prompt and options.custom_prompt.strip():
        additional = CUSTOM_INSTRUCTIONS_TEMPLATE.format(custom_prompt=options.custom_prompt.strip())

    return CHUNK_ANALYSIS_PROMPT.format(
        chunk_index=chunk_index,
        total_chunks=total_chunks,
        content=chunk,
        focus=focus,
        additional=additional
    )


class ProgressReporter:
    """
    Forwards (percent, message) to a callback, clamped so it never decreases.

    Callback errors are logged and do not affect the run.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self.percent = 0.0
        self.message = ""

    def report(self, percent: float, message: str) -> None:
        self.percent = min(100.0, max(self.percent, float(percent)))
        self.message = message
        logger.debug(f"[ANALYZE] Progress | percent={self.percent:.0f} | message={message}")
        if self._callback is None:
            return
        try:
            self._callback(self.percent, message)
        except Exception as e:
            logger.warning(f"[ANALYZE] Progress callback failed | error={e}")

    def fail(self, message: str) -> None:
        """Report a failure at the last reached percent."""
        self.report(self.percent, message)


class AnalysisOrchestrator:
    """
    Drives extraction, chunking, per-chunk analysis and aggregation.

    Both remote stages are gated on the shared health monitor: the
    extractor checks OCR_SERVER, and the LLM client checks AI_SERVER
    before every chunk.
    """

    def __init__(
        self,
        monitor: ServiceHealthMonitor,
        extractor: Optional[DocumentExtractor] = None,
        llm_client: Optional[AnalysisLLMClient] = None,
        api_key_provider: ApiKeyProvider = get_api_key,
        max_tokens: int = CHUNKING_MAX_TOKENS,
        overlap_tokens: int = CHUNKING_OVERLAP_TOKENS,
        response_token_budget: int = ANALYSIS_MAX_TOKENS
    ):
        self.monitor = monitor
        self.extractor = extractor or DocumentExtractor(monitor)
        self.llm_client = llm_client or AnalysisLLMClient(monitor)
        self.api_key_provider = api_key_provider
        self.max_tokens = max_tokens
        self.overlap_tokens = overlap_tokens
        self.response_token_budget = response_token_budget

    async def close(self):
        await self.extractor.close()
        await self.llm_client.close()

    async def _get_api_key(self) -> str:
        key = self.api_key_provider(Dependency.AI_SERVER)
        if inspect.isawaitable(key):
            key = await key
        return key

    async def analyze(
        self,
        document: DocumentFile,
        options: Optional[AnalysisOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        extraction_options: Optional[ExtractionOptions] = None
    ) -> DocumentAnalysisResult:
        """
        Analyze a document end to end.

        Args:
            document: Uploaded file
            options: Analysis type, focus sections, custom instructions
            on_progress: Called with (percent, message)
            cancel_event: Set by the caller to abort the in-flight request
            extraction_options: user_id / chat_id forwarded to the OCR service

        Returns:
            DocumentAnalysisResult

        Raises:
            AnalysisError: Wrapping the first failure from any stage
        """
        options = options or AnalysisOptions()
        progress = ProgressReporter(on_progress)
        start_time = time.monotonic()

        logger.info(
            f"[ANALYZE] START | filename={document.filename} | bytes={document.size} | "
            f"type={options.analysis_type}"
        )

        try:
            validate_analysis_options(options)

            # Step 1: Extraction
            file_type = get_file_type_from_mime(document.content_type)
            progress.report(10, f"Extracting text from {file_type.upper()}...")

            extraction = await self.extractor.extract_with_progress(
                document,
                lambda message: progress.report(15, message),
                extraction_options,
                cancel_event
            )
            if not extraction.success:
                raise extraction.to_exception()

            # Step 2: Chunking
            progress.report(30, "Preparing content for analysis...")
            chunks = chunk_text(extraction.text, self.max_tokens, self.overlap_tokens)

            # Step 3: Per-chunk analysis
            progress.report(50, "Analyzing content with AI...")
            api_key = await self._get_api_key()
            outputs = []
            for i, chunk in enumerate(chunks):
                progress.report(50 + (i / len(chunks)) * 30, f"Analyzing section {i + 1} of {len(chunks)}...")
                prompt = build_analysis_prompt(chunk, options, i + 1, len(chunks))
                outputs.append(await self.llm_client.analyze_chunk(prompt, api_key, cancel_event))
                logger.info(f"[ANALYZE] Chunk done | chunk={i + 1}/{len(chunks)} | chars={len(outputs[-1])}")

            # Step 4: Aggregation
            progress.report(80, "Combining analysis results...")
            aggregated = aggregate_analyses(outputs)

            progress.report(90, "Finalizing analysis...")
            result = DocumentAnalysisResult(
                analysis=aggregated.analysis,
                sections=aggregated.sections,
                key_insights=aggregated.key_insights,
                metadata=AnalysisMetadata(
                    token_count=min(
                        self.response_token_budget * len(outputs),
                        estimate_tokens(aggregated.analysis)
                    ),
                    processing_time_ms=math.floor((time.monotonic() - start_time) * 1000),
                    model=self.llm_client.model,
                    file_type=extraction.file_type or file_type
                )
            )
            progress.report(100, "Analysis complete!")

        except Exception as e:
            message = f"Document analysis failed: {e}"
            logger.error(
                f"[ANALYZE] ERROR | filename={document.filename} | stage_percent={progress.percent:.0f} | "
                f"error_type={type(e).__name__} | error={e}"
            )
            progress.fail(message)
            raise AnalysisError(message, cause=e) from e

        logger.info(
            f"[ANALYZE] END | filename={document.filename} | chunks={len(chunks)} | "
            f"sections={len(result.sections)} | insights={len(result.key_insights)} | "
            f"token_count={result.metadata.token_count} | time_ms={result.metadata.processing_time_ms}"
        )
        return result
