"""
Result Aggregator

Turns N raw chunk analyses into one structured report.

The chunk outputs follow the markdown layout requested in
CHUNK_ANALYSIS_PROMPT, and this module parses that layout with a fixed
line grammar:

    header line   ^#{1,6}\\s*...          markdown header
    concepts      ^#{1,6}\\s*(KEY\\s*)?CONCEPTS?\\b    (case-insensitive)
    details       ^#{1,6}\\s*SECTION\\s*DETAILS?       (case-insensitive)
    summary       ^#{1,6}\\s*SUMMARY                  (case-insensitive)
    bullet        ^[-•*]\\s+
    rule          ^[-*_]{3,}$           horizontal rule, never content

Two independent passes run over the same combined text:
- parse_structured_analysis: key concepts, section details and summary,
  used to re-render the normalized report
- extract_sections: a flat, navigable list of titled sections

Nothing here raises on malformed input; unrecognized structure simply
yields empty lists.
"""

import re
from typing import List, Optional

from logs.logging_config import get_llm_logger
from .config import (
    ANALYSIS_CHUNK_SEPARATOR,
    ANALYSIS_MAX_KEY_INSIGHTS,
    ANALYSIS_SECTION_SUMMARY_CHARS,
)
from .schemas import AggregatedAnalysis, AnalysisSection, ParsedAnalysis

logger = get_llm_logger()

# Structured-field headers
CONCEPTS_HEADER = re.compile(r"^#{1,6}\s*(?:KEY\s*)?CONCEPTS?\b", re.IGNORECASE)
DETAILS_HEADER = re.compile(r"^#{1,6}\s*SECTION\s*DETAILS?", re.IGNORECASE)
SUMMARY_HEADER = re.compile(r"^#{1,6}\s*SUMMARY", re.IGNORECASE)

# Section-list headers
MARKDOWN_HEADER = re.compile(r"^#{1,6}\s+")
NUMBERED_LINE = re.compile(r"^\d+\.\s+")

BULLET = re.compile(r"^[-•*]\s+")
HORIZONTAL_RULE = re.compile(r"^[-*_]{3,}$")
SENTENCE_SPLIT = re.compile(r"[.!?]+")

# Minimum lengths that filter out noise lines
MIN_ITEM_CHARS = 10
MIN_INSIGHT_CHARS = 20

INSIGHT_SIGNAL = re.compile(r"key insight|important|significant|critical")
NUMBERED_SIGNAL = re.compile(r"^\d+\.\s+.*(?:important|key|significant|critical)")


def combine_chunk_outputs(outputs: List[str]) -> str:
    """Join chunk outputs in order with a visible separator."""
    return ANALYSIS_CHUNK_SEPARATOR.join(outputs)


def _bullet_item(line: str) -> Optional[str]:
    if not BULLET.match(line):
        return None
    item = BULLET.sub("", line, count=1).strip()
    return item if len(item) > MIN_ITEM_CHARS else None


def parse_structured_analysis(analysis: str) -> ParsedAnalysis:
    """
    Collect key concepts, section details and summary text.

    Bullets under KEY CONCEPTS / SECTION DETAILS are kept with the marker
    removed when longer than 10 characters. Under SUMMARY, plain lines
    (neither bullets, headers nor horizontal rules) are joined with spaces.
    Only the three field headers change the current field. Duplicates are kept.
    """
    result = ParsedAnalysis()
    kind = None

    for raw in analysis.split("\n"):
        line = raw.strip()

        if CONCEPTS_HEADER.match(line):
            kind = "concepts"
            continue
        if DETAILS_HEADER.match(line):
            kind = "details"
            continue
        if SUMMARY_HEADER.match(line):
            kind = "summary"
            continue
        if not line or kind is None or HORIZONTAL_RULE.match(line):
            continue

        if kind == "concepts":
            item = _bullet_item(line)
            if item:
                result.key_concepts.append(item)
        elif kind == "details":
            item = _bullet_item(line)
            if item:
                result.section_details.append(item)
        elif kind == "summary" and not line.startswith("#") and not BULLET.match(line):
            result.summary = f"{result.summary} {line}" if result.summary else line

    return result


def _is_section_header(line: str) -> bool:
    if MARKDOWN_HEADER.match(line) or NUMBERED_LINE.match(line):
        return True
    return len(line) > 10 and line == line.upper() and " " in line


def generate_section_summary(content: str) -> str:
    """First two sentences, truncated to 150 characters with '...'."""
    sentences = [s.strip() for s in SENTENCE_SPLIT.split(content) if s.strip()]
    summary = ". ".join(sentences[:2])
    if len(summary) > ANALYSIS_SECTION_SUMMARY_CHARS:
        return summary[:ANALYSIS_SECTION_SUMMARY_CHARS] + "..."
    return summary


def extract_sections(analysis: str) -> List[AnalysisSection]:
    """
    Split the combined text into titled sections.

    A header is a markdown header, a numbered line, or an all-caps line
    longer than 10 characters containing a space. Sections with no content
    lines are dropped.
    """
    sections: List[AnalysisSection] = []
    title = None
    content = ""

    def close() -> None:
        if title is not None and content.strip():
            sections.append(AnalysisSection(
                title=title,
                content=content,
                summary=generate_section_summary(content)
            ))

    for raw in analysis.split("\n"):
        line = raw.strip()
        if _is_section_header(line):
            close()
            title = NUMBERED_LINE.sub("", MARKDOWN_HEADER.sub("", line, count=1), count=1)
            content = ""
        elif title is not None and line:
            content += raw + "\n"

    close()
    return sections


def extract_key_insights(analysis: str) -> List[str]:
    """
    Heuristic fallback when no key concepts were parsed.

    Picks lines with a lowercase insight signal word, bullet lines, and
    numbered lines mentioning a signal word. Markers are stripped; entries
    must be longer than 20 characters. Deduplicated, at most 10.
    """
    insights: List[str] = []

    for raw in analysis.split("\n"):
        line = raw.strip()
        if not (INSIGHT_SIGNAL.search(line) or BULLET.match(line) or NUMBERED_SIGNAL.match(line)):
            continue

        insight = NUMBERED_LINE.sub("", BULLET.sub("", line, count=1), count=1).strip()
        if len(insight) > MIN_INSIGHT_CHARS and insight not in insights:
            insights.append(insight)

    return insights[:ANALYSIS_MAX_KEY_INSIGHTS]


def format_analysis_output(parsed: ParsedAnalysis) -> str:
    """Re-render the parsed fields as the normalized report."""
    formatted = ""

    if parsed.key_concepts:
        formatted += "# Key Concepts\n\n"
        formatted += "".join(f"- {concept}\n" for concept in parsed.key_concepts)
        formatted += "\n"

    if parsed.section_details:
        formatted += "## Section Details\n\n"
        formatted += "".join(f"- {detail}\n" for detail in parsed.section_details)
        formatted += "\n"

    if parsed.summary:
        formatted += "## Summary\n\n"
        formatted += parsed.summary + "\n"

    return formatted


def aggregate_analyses(outputs: List[str]) -> AggregatedAnalysis:
    """
    Merge chunk outputs into one report.

    key_insights are the parsed key concepts, or the heuristic fallback
    when the outputs had none.
    """
    combined = combine_chunk_outputs(outputs)
    parsed = parse_structured_analysis(combined)
    sections = extract_sections(combined)
    key_insights = parsed.key_concepts or extract_key_insights(combined)

    if not parsed.key_concepts and not parsed.section_details and not parsed.summary:
        logger.warning(f"[AGGREGATE] No structured fields found | chunks={len(outputs)} | chars={len(combined)}")

    logger.info(
        f"[AGGREGATE] Complete | chunks={len(outputs)} | concepts={len(parsed.key_concepts)} | "
        f"details={len(parsed.section_details)} | sections={len(sections)} | insights={len(key_insights)}"
    )

    return AggregatedAnalysis(
        analysis=format_analysis_output(parsed),
        sections=tuple(sections),
        key_insights=tuple(key_insights)
    )
