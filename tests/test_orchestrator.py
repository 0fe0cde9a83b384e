import asyncio

import pytest

from analysis.llm_client import AnalysisLLMClient
from analysis.orchestrator import (
    AnalysisOrchestrator,
    ProgressReporter,
    build_analysis_prompt,
    get_file_type_from_mime,
)
from analysis.schemas import AnalysisOptions
from chunking.chunker import chunk_text
from config import estimate_tokens
from core import LLMConfig
from core.credentials import get_api_key
from core.errors import (
    AnalysisError,
    MissingCredentialsError,
    QuotaLockedError,
    RemoteError,
    RequestCancelledError,
    ServiceUnavailableError,
)
from health.schemas import Dependency
from text_extractor.extractor import DocumentExtractor
from text_extractor.schemas import DocumentFile, ExtractionOptions

from fakes import FakeResponse, FakeSession, chat_response, slow_response

DOCUMENT_TEXT = " ".join(f"Sentence {i:02d} ends here." for i in range(20))
CHUNK_OUTPUT = "# Key Concepts\n- A concept found in this chunk\n\n## Summary\nThis chunk was analyzed."


def _document():
    return DocumentFile("notes.pdf", b"%PDF-1.4 fake", "application/pdf")


def _static_key(dependency):
    return "test-key"


def _build(monitor, ocr_responses, ai_responses, **kwargs):
    ocr_session = FakeSession(*ocr_responses)
    ai_session = FakeSession(*ai_responses)
    extractor = DocumentExtractor(monitor, base_url="http://ocr.test", session=ocr_session)
    llm_client = AnalysisLLMClient(
        monitor,
        config=LLMConfig(base_url="http://ai.test", chat_path="/chat", model="test-model", task_name="analyze"),
        session=ai_session
    )
    kwargs.setdefault("api_key_provider", _static_key)
    orchestrator = AnalysisOrchestrator(monitor, extractor=extractor, llm_client=llm_client, **kwargs)
    return orchestrator, ocr_session, ai_session


# =========================
# Helpers
# =========================

def test_file_type_from_mime():
    assert get_file_type_from_mime("application/pdf") == "PDF"
    assert get_file_type_from_mime("text/csv") == "CSV"
    assert get_file_type_from_mime("application/zip") == "Document"
    assert get_file_type_from_mime(None) == "Document"


def test_build_prompt_includes_position_focus_and_instructions():
    options = AnalysisOptions(analysis_type="summary", custom_prompt="  Mention dates.  ", sections=["Methods", "Results"])
    prompt = build_analysis_prompt("CHUNK BODY", options, 2, 3)

    assert "(Part 2 of 3)" in prompt
    assert "CHUNK BODY" in prompt
    assert "FOCUS: Prioritize the overall message." in prompt
    assert "Pay particular attention to these topics if present: Methods, Results" in prompt
    assert "ADDITIONAL INSTRUCTIONS:\nMention dates." in prompt


def test_build_prompt_without_extras():
    prompt = build_analysis_prompt("BODY", AnalysisOptions(), 1, 1)
    assert "ADDITIONAL INSTRUCTIONS" not in prompt
    assert "Pay particular attention" not in prompt


def test_progress_reporter_is_monotonic_and_survives_callback_errors():
    seen = []

    def callback(percent, message):
        seen.append((percent, message))
        if message == "boom":
            raise RuntimeError("callback bug")

    progress = ProgressReporter(callback)
    progress.report(40, "forward")
    progress.report(20, "backward")
    progress.report(150, "boom")
    progress.fail("failed")

    assert seen == [(40.0, "forward"), (40.0, "backward"), (100.0, "boom"), (100.0, "failed")]


# =========================
# Successful runs
# =========================

@pytest.mark.asyncio
async def test_single_chunk_run(monitor):
    orchestrator, ocr_session, ai_session = _build(
        monitor,
        [FakeResponse.with_json({"text": "A short document. It has two sentences.", "fileType": "pdf"})],
        [chat_response(CHUNK_OUTPUT)]
    )
    events = []

    result = await orchestrator.analyze(
        _document(),
        on_progress=lambda percent, message: events.append((percent, message)),
        extraction_options=ExtractionOptions(user_id="u-1")
    )

    assert result.key_insights == ("A concept found in this chunk",)
    assert result.analysis == (
        "# Key Concepts\n\n- A concept found in this chunk\n\n## Summary\n\nThis chunk was analyzed.\n"
    )
    assert [s.title for s in result.sections] == ["Key Concepts", "Summary"]
    assert result.metadata.model == "test-model"
    assert result.metadata.file_type == "pdf"
    assert result.metadata.token_count == estimate_tokens(result.analysis)
    assert result.metadata.processing_time_ms >= 0

    assert events == [
        (10.0, "Extracting text from PDF..."),
        (15.0, "Uploading document for text extraction..."),
        (15.0, "Text extraction completed successfully"),
        (30.0, "Preparing content for analysis..."),
        (50.0, "Analyzing content with AI..."),
        (50.0, "Analyzing section 1 of 1..."),
        (80.0, "Combining analysis results..."),
        (90.0, "Finalizing analysis..."),
        (100.0, "Analysis complete!"),
    ]

    assert ocr_session.requests[0][2]["headers"]["X-User-Id"] == "u-1"
    payload = ai_session.requests[0][2]["json"]
    assert payload["apiKey"] == "test-key"
    assert "(Part 1 of 1)" in payload["messages"][1]["content"]


@pytest.mark.asyncio
async def test_multi_chunk_run_analyzes_in_order(monitor):
    expected_chunks = chunk_text(DOCUMENT_TEXT, 30, 0)
    total = len(expected_chunks)
    assert total > 2

    orchestrator, _, ai_session = _build(
        monitor,
        [FakeResponse(200, DOCUMENT_TEXT)],
        [chat_response(f"# Key Concepts\n- Concept from chunk number {i}\n") for i in range(total)],
        max_tokens=30,
        overlap_tokens=0
    )
    events = []

    result = await orchestrator.analyze(_document(), on_progress=lambda p, m: events.append((p, m)))

    assert result.key_insights == tuple(f"Concept from chunk number {i}" for i in range(total))
    assert len(ai_session.requests) == total
    for i, (_, _, kwargs) in enumerate(ai_session.requests):
        prompt = kwargs["json"]["messages"][1]["content"]
        assert f"(Part {i + 1} of {total})" in prompt
        assert expected_chunks[i] in prompt

    percents = [p for p, _ in events]
    assert percents == sorted(percents)
    chunk_events = [(p, m) for p, m in events if m.startswith("Analyzing section")]
    assert chunk_events == [
        (50 + (i / total) * 30, f"Analyzing section {i + 1} of {total}...") for i in range(total)
    ]
    assert result.metadata.file_type == "PDF"


@pytest.mark.asyncio
async def test_token_count_is_capped_by_response_budget(monitor):
    orchestrator, _, _ = _build(
        monitor,
        [FakeResponse(200, "Some document text.")],
        [chat_response(CHUNK_OUTPUT)],
        response_token_budget=3
    )
    result = await orchestrator.analyze(_document())
    assert result.metadata.token_count == 3


@pytest.mark.asyncio
async def test_async_api_key_provider(monitor):
    async def provider(dependency):
        assert dependency == Dependency.AI_SERVER
        return "async-key"

    orchestrator, _, ai_session = _build(
        monitor,
        [FakeResponse(200, "Some document text.")],
        [chat_response(CHUNK_OUTPUT)],
        api_key_provider=provider
    )
    await orchestrator.analyze(_document())
    assert ai_session.requests[0][2]["json"]["apiKey"] == "async-key"


# =========================
# Failures
# =========================

@pytest.mark.asyncio
async def test_chunk_failure_aborts_run(monitor):
    total = len(chunk_text(DOCUMENT_TEXT, 30, 0))
    orchestrator, _, ai_session = _build(
        monitor,
        [FakeResponse(200, DOCUMENT_TEXT)],
        [chat_response(CHUNK_OUTPUT), FakeResponse(500, "model crashed")],
        max_tokens=30,
        overlap_tokens=0
    )
    events = []

    with pytest.raises(AnalysisError) as exc_info:
        await orchestrator.analyze(_document(), on_progress=lambda p, m: events.append((p, m)))

    error = exc_info.value
    assert isinstance(error.__cause__, RemoteError)
    assert error.cause is error.__cause__
    assert str(error) == "Document analysis failed: Analysis request failed: model crashed"
    assert len(ai_session.requests) == 2

    last_percent, last_message = events[-1]
    assert last_message == str(error)
    assert last_percent == 50 + (1 / total) * 30
    assert all(m != "Combining analysis results..." for _, m in events)


@pytest.mark.asyncio
async def test_extraction_lock_stops_before_analysis(monitor):
    orchestrator, _, ai_session = _build(
        monitor,
        [FakeResponse.with_json({"error": {"message": "Daily OCR limit reached"}}, status=403)],
        [chat_response(CHUNK_OUTPUT)]
    )
    events = []

    with pytest.raises(AnalysisError) as exc_info:
        await orchestrator.analyze(_document(), on_progress=lambda p, m: events.append((p, m)))

    assert isinstance(exc_info.value.__cause__, QuotaLockedError)
    assert ai_session.requests == []
    assert (15.0, "Chat has reached its limits") in events
    assert events[-1] == (15.0, "Document analysis failed: Daily OCR limit reached")


@pytest.mark.asyncio
async def test_ocr_down_fails_fast(make_monitor):
    monitor = make_monitor(FakeResponse(500))
    await monitor.force_check(Dependency.OCR_SERVER)
    await monitor.force_check(Dependency.OCR_SERVER)
    orchestrator, ocr_session, ai_session = _build(monitor, [FakeResponse(200, "text")], [chat_response(CHUNK_OUTPUT)])

    with pytest.raises(AnalysisError) as exc_info:
        await orchestrator.analyze(_document())

    assert isinstance(exc_info.value.__cause__, ServiceUnavailableError)
    assert ocr_session.requests == []
    assert ai_session.requests == []


@pytest.mark.asyncio
async def test_ai_down_fails_without_chat_request(make_monitor):
    monitor = make_monitor(FakeResponse(500))
    await monitor.force_check(Dependency.AI_SERVER)
    await monitor.force_check(Dependency.AI_SERVER)
    orchestrator, ocr_session, ai_session = _build(monitor, [FakeResponse(200, "text")], [chat_response(CHUNK_OUTPUT)])

    with pytest.raises(AnalysisError) as exc_info:
        await orchestrator.analyze(_document())

    assert isinstance(exc_info.value.__cause__, ServiceUnavailableError)
    assert len(ocr_session.requests) == 1
    assert ai_session.requests == []


@pytest.mark.asyncio
async def test_missing_api_key(monitor, monkeypatch):
    monkeypatch.delenv("AI_SERVER_API_KEY", raising=False)
    monkeypatch.delenv("AI_API_KEY", raising=False)
    orchestrator, _, ai_session = _build(
        monitor,
        [FakeResponse(200, "Some document text.")],
        [chat_response(CHUNK_OUTPUT)]
    )
    orchestrator.api_key_provider = get_api_key

    with pytest.raises(AnalysisError) as exc_info:
        await orchestrator.analyze(_document())

    assert isinstance(exc_info.value.__cause__, MissingCredentialsError)
    assert ai_session.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("options", [
    AnalysisOptions(analysis_type="poetry"),
    AnalysisOptions(custom_prompt="x" * 2001),
])
async def test_invalid_options_fail_before_any_request(monitor, options):
    orchestrator, ocr_session, ai_session = _build(monitor, [FakeResponse(200, "text")], [chat_response(CHUNK_OUTPUT)])
    events = []

    with pytest.raises(AnalysisError) as exc_info:
        await orchestrator.analyze(_document(), options, on_progress=lambda p, m: events.append((p, m)))

    assert isinstance(exc_info.value.__cause__, ValueError)
    assert ocr_session.requests == []
    assert ai_session.requests == []
    assert events == [(0.0, str(exc_info.value))]


@pytest.mark.asyncio
async def test_cancellation_during_chunk_analysis(monitor):
    orchestrator, _, _ = _build(
        monitor,
        [FakeResponse(200, "Some document text.")],
        [slow_response(5.0, chat_response(CHUNK_OUTPUT))]
    )
    cancel = asyncio.Event()
    asyncio.get_running_loop().call_later(0.05, cancel.set)

    with pytest.raises(AnalysisError) as exc_info:
        await orchestrator.analyze(_document(), cancel_event=cancel)

    assert isinstance(exc_info.value.__cause__, RequestCancelledError)
