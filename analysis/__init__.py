"""
Analysis Module

Chunked document analysis:
- Extracts text through the OCR service
- Splits it into token-budgeted chunks
- Analyzes each chunk in order with the chat-completion proxy
- Merges the chunk outputs into one normalized report

Supports multiple analysis types:
- comprehensive: Key concepts, section details and summary
- summary: Emphasis on the overall message
- key-points: Emphasis on distinct key points
- detailed-explanation: Emphasis on processes and reasoning
"""

from .service import router
from .orchestrator import (
    AnalysisOrchestrator,
    ProgressReporter,
    build_analysis_prompt,
    get_file_type_from_mime,
)
from .aggregator import (
    aggregate_analyses,
    combine_chunk_outputs,
    parse_structured_analysis,
    extract_sections,
    extract_key_insights,
    format_analysis_output,
)
from .llm_client import AnalysisLLMClient
from .schemas import (
    AnalysisOptions,
    AnalysisSection,
    AnalysisMetadata,
    DocumentAnalysisResult,
    AnalysisResponse,
    AnalysisType,
)

__all__ = [
    # Router
    "router",
    # Orchestrator
    "AnalysisOrchestrator",
    "ProgressReporter",
    "build_analysis_prompt",
    "get_file_type_from_mime",
    # Aggregator
    "aggregate_analyses",
    "combine_chunk_outputs",
    "parse_structured_analysis",
    "extract_sections",
    "extract_key_insights",
    "format_analysis_output",
    # Client
    "AnalysisLLMClient",
    # Schemas
    "AnalysisOptions",
    "AnalysisSection",
    "AnalysisMetadata",
    "DocumentAnalysisResult",
    "AnalysisResponse",
    "AnalysisType",
]
