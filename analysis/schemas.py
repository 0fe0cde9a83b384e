"""
Schemas for document analysis.

Dataclasses carry results through the pipeline; Pydantic models describe
the API response.
"""
from dataclasses import dataclass, field, asdict
from typing import List, Optional, Literal, Dict, Any, Tuple

from pydantic import BaseModel, Field

from .config import ANALYSIS_DEFAULT_TYPE

# Analysis types
AnalysisType = Literal["comprehensive", "summary", "key-points", "detailed-explanation"]


@dataclass
class AnalysisOptions:
    """How each chunk should be analyzed."""
    analysis_type: str = ANALYSIS_DEFAULT_TYPE
    custom_prompt: Optional[str] = None
    sections: Optional[List[str]] = None  # Topics to pay particular attention to


@dataclass(frozen=True)
class AnalysisSection:
    """One titled block of the merged report, in source order."""
    title: str
    content: str
    summary: str


@dataclass
class ParsedAnalysis:
    """Structured fields recovered from the combined chunk outputs."""
    key_concepts: List[str] = field(default_factory=list)
    section_details: List[str] = field(default_factory=list)
    summary: str = ""


@dataclass(frozen=True)
class AggregatedAnalysis:
    """Everything the aggregator derives from the chunk outputs."""
    analysis: str
    sections: Tuple[AnalysisSection, ...]
    key_insights: Tuple[str, ...]


@dataclass(frozen=True)
class AnalysisMetadata:
    token_count: int
    processing_time_ms: int
    model: str
    file_type: Optional[str] = None


@dataclass(frozen=True)
class DocumentAnalysisResult:
    """Terminal artifact of one analysis run. Immutable."""
    analysis: str
    sections: Tuple[AnalysisSection, ...]
    key_insights: Tuple[str, ...]
    metadata: AnalysisMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysis": self.analysis,
            "sections": [asdict(s) for s in self.sections],
            "key_insights": list(self.key_insights),
            "metadata": asdict(self.metadata),
        }


# =========================
# API Schemas
# =========================

class AnalysisSectionModel(BaseModel):
    title: str = Field(..., description="Section title")
    content: str = Field(..., description="Section content")
    summary: str = Field(..., description="First two sentences of the content")


class AnalysisMetadataModel(BaseModel):
    token_count: int = Field(..., description="Estimated tokens in the report")
    processing_time_ms: int = Field(..., description="Wall-clock time of the run")
    model: str = Field(..., description="Model used")
    file_type: Optional[str] = Field(None, description="Detected document type")


class AnalysisResponse(BaseModel):
    """Response from document analysis."""
    request_id: str = Field(..., description="Unique request identifier")
    analysis: str = Field(..., description="Normalized analysis report (markdown)")
    sections: List[AnalysisSectionModel] = Field(..., description="Sections in source order")
    key_insights: List[str] = Field(..., description="Key insights (at most 10 when derived heuristically)")
    metadata: AnalysisMetadataModel = Field(..., description="Run metadata")
    user_id: Optional[str] = Field(None, description="User identifier if provided")

    @classmethod
    def from_result(
        cls,
        request_id: str,
        result: DocumentAnalysisResult,
        user_id: Optional[str] = None
    ) -> "AnalysisResponse":
        return cls(request_id=request_id, user_id=user_id, **result.to_dict())
