"""
Prompt templates for chunked document analysis.
"""

# =========================
# System prompt
# =========================
ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert document analyzer. Provide CONCISE, well-structured analysis. "
    "Focus on key concepts and essential details only. Keep responses under 6000 tokens total. "
    "FORMATTING RULES: Use ONLY basic markdown - headers (#, ##, ###), **bold**, *italic*, "
    "bullet points (-), and plain paragraphs. NEVER use tables, code blocks, math formulas, "
    "LaTeX, or complex formatting."
)


# =========================
# Per-chunk analysis prompt
# =========================
CHUNK_ANALYSIS_PROMPT = """
Analyze this document section (Part {chunk_index} of {total_chunks}) concisely. Keep your response under 4000 tokens.
{focus}
Document Content:
\"\"\"
{content}
\"\"\"

Structure your response EXACTLY as follows:

# Key Concepts
- List the 3-5 main topics/themes (1-2 sentences each)
- Focus on the most important ideas only
- Use **bold** for key terms and *italic* for emphasis

## Section Details
- Break down key points into digestible pieces
- Use bullet points and brief explanations
- Include any important processes, methods, or frameworks
- Keep each point to 1-2 sentences maximum
- Use **bold** for important concepts and *italic* for clarification

## Summary
- Provide a concise 2-3 sentence overview
- Highlight the most critical takeaways
- Focus on practical implications

FORMATTING RESTRICTIONS:
- ONLY use: headers (#, ##, ###), **bold**, *italic*, bullet points (-), paragraphs
- NEVER use: tables, code blocks, math formulas, LaTeX, complex formatting
- Keep everything CONCISE and ACTIONABLE.
{additional}"""


# ==================================
# Analysis type instructions
# ==================================
ANALYSIS_TYPE_INSTRUCTIONS = {
    "comprehensive": "",

    "summary": """
FOCUS: Prioritize the overall message. Keep Key Concepts and Section Details short and make the Summary the most complete part.
""",

    "key-points": """
FOCUS: Prioritize distinct, self-contained key points. Prefer more Key Concepts bullets over narrative text.
""",

    "detailed-explanation": """
FOCUS: Explain processes, methods and reasoning step by step in Section Details, defining any technical terms.
""",
}


SECTIONS_FOCUS_TEMPLATE = """
Pay particular attention to these topics if present: {sections}
"""

CUSTOM_INSTRUCTIONS_TEMPLATE = """
ADDITIONAL INSTRUCTIONS:
{custom_prompt}
"""
