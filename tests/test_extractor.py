import asyncio

import aiohttp
import pytest

from core.errors import (
    EmptyResultError,
    NetworkFailureError,
    QuotaLockedError,
    RemoteError,
    RequestCancelledError,
    ServiceUnavailableError,
)
from health.schemas import Dependency
from text_extractor.extractor import DocumentExtractor, validate_document_file
from text_extractor.schemas import DocumentFile, ErrorKind, ExtractionOptions

from fakes import FakeResponse, FakeSession, slow_response

OCR = Dependency.OCR_SERVER


def _doc(name="report.pdf", content=b"%PDF-1.4 fake", content_type="application/pdf"):
    return DocumentFile(filename=name, content=content, content_type=content_type)


def _extractor(monitor, *responses):
    session = FakeSession(*responses)
    return DocumentExtractor(monitor, base_url="http://ocr.test", session=session), session


async def _mark_down(make_monitor):
    monitor = make_monitor(FakeResponse(500))
    await monitor.force_check(OCR)
    await monitor.force_check(OCR)
    assert monitor.is_healthy(OCR) is False
    return monitor


# =========================
# Health gate
# =========================

@pytest.mark.asyncio
async def test_ocr_down_returns_without_network_call(make_monitor):
    monitor = await _mark_down(make_monitor)
    extractor, session = _extractor(monitor)

    result = await extractor.extract(_doc())

    assert result.success is False
    assert result.server_down is True
    assert result.error == "OCR server is currently unavailable. Please try again later."
    assert result.error_kind == ErrorKind.SERVICE_UNAVAILABLE
    assert session.requests == []


# =========================
# Successful extraction
# =========================

@pytest.mark.asyncio
async def test_json_response_is_parsed(monitor):
    extractor, session = _extractor(monitor, FakeResponse.with_json({
        "text": "  Extracted body text  ",
        "fileType": "pdf",
        "filePath": "/ocr/abc.md",
        "ocrType": "mistral",
        "usage": {"chatLocked": False, "remaining": {"dailyPremiumOcr": 4}},
    }))

    result = await extractor.extract(_doc(), ExtractionOptions(user_id="u-1", chat_id="c-9"))

    assert result.success is True
    assert result.text == "Extracted body text"
    assert result.file_type == "pdf"
    assert result.file_path == "/ocr/abc.md"
    assert result.ocr_type == "mistral"
    assert result.usage.remaining == {"dailyPremiumOcr": 4}
    assert result.server_down is False

    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", "http://ocr.test/api/ocr")
    assert kwargs["headers"] == {"Accept": "application/json", "X-User-Id": "u-1", "X-Chat-Id": "c-9"}
    assert isinstance(kwargs["data"], aiohttp.FormData)


@pytest.mark.asyncio
async def test_identity_headers_are_optional(monitor):
    extractor, session = _extractor(monitor, FakeResponse(200, "plain text"))
    await extractor.extract(_doc())
    assert session.requests[0][2]["headers"] == {"Accept": "application/json"}


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["text", "content", "result"])
async def test_text_fields_are_tried_in_order(monitor, field):
    extractor, _ = _extractor(monitor, FakeResponse.with_json({field: "found it"}))
    result = await extractor.extract(_doc())
    assert result.text == "found it"


@pytest.mark.asyncio
async def test_json_without_text_falls_back_to_dump(monitor):
    extractor, _ = _extractor(monitor, FakeResponse.with_json({"pages": 3}))
    result = await extractor.extract(_doc())
    assert result.success is True
    assert result.text == '{"pages": 3}'


@pytest.mark.asyncio
async def test_non_json_body_is_raw_text(monitor):
    extractor, _ = _extractor(monitor, FakeResponse(200, "\n raw text body \n", headers={"Content-Type": "text/plain"}))
    result = await extractor.extract(_doc())
    assert result.text == "raw text body"


@pytest.mark.asyncio
async def test_invalid_json_falls_back_to_raw_text(monitor):
    extractor, _ = _extractor(monitor, FakeResponse(200, "{not json", headers={"Content-Type": "application/json"}))
    result = await extractor.extract(_doc())
    assert result.success is True
    assert result.text == "{not json"


@pytest.mark.asyncio
async def test_max_length_truncates_before_trim(monitor):
    extractor, _ = _extractor(monitor, FakeResponse(200, "abcdef   ghij"))
    result = await extractor.extract(_doc(), ExtractionOptions(max_length=9))
    assert result.text == "abcdef"


@pytest.mark.asyncio
async def test_blank_text_is_a_failure(monitor):
    extractor, _ = _extractor(monitor, FakeResponse.with_json({"text": "   \n  "}))
    result = await extractor.extract(_doc())
    assert result.success is False
    assert result.error == "No text content found in document"
    assert result.server_down is False
    assert isinstance(result.to_exception(), EmptyResultError)


# =========================
# Remote failures
# =========================

@pytest.mark.asyncio
async def test_403_is_a_quota_lock(monitor):
    remaining = {"dailyPremiumOcr": 1, "chatPremiumOcr": 0, "chatToolCalls": 7}
    extractor, _ = _extractor(monitor, FakeResponse.with_json(
        {"error": {"message": "Daily OCR limit reached"}, "remaining": remaining}, status=403
    ))

    result = await extractor.extract(_doc())

    assert result.success is False
    assert result.server_down is False
    assert result.error == "Daily OCR limit reached"
    assert result.usage.chat_locked is True
    assert result.usage.locked_reason == "Daily OCR limit reached"
    assert result.usage.remaining == remaining

    error = result.to_exception()
    assert isinstance(error, QuotaLockedError)
    assert error.remaining == remaining


@pytest.mark.asyncio
async def test_403_without_body_uses_defaults(monitor):
    extractor, _ = _extractor(monitor, FakeResponse(403, ""))
    result = await extractor.extract(_doc())
    assert result.error == "This chat has reached its limits."
    assert result.usage.remaining == {"dailyPremiumOcr": 0, "chatPremiumOcr": 0, "chatToolCalls": 0}


@pytest.mark.asyncio
async def test_5xx_flags_server_down_without_touching_monitor(monitor):
    extractor, _ = _extractor(monitor, FakeResponse(503, "down"))

    result = await extractor.extract(_doc())

    assert result.success is False
    assert result.server_down is True
    assert result.error == "HTTP 503: Service Unavailable"
    assert monitor.is_healthy(OCR) is True
    assert monitor.get_health(OCR).consecutive_failures == 0

    error = result.to_exception()
    assert isinstance(error, RemoteError)
    assert error.status == 503


@pytest.mark.asyncio
async def test_4xx_is_not_server_down(monitor):
    extractor, _ = _extractor(monitor, FakeResponse(404, "missing"))
    result = await extractor.extract(_doc())
    assert result.server_down is False
    assert result.error == "HTTP 404: Not Found"


@pytest.mark.asyncio
async def test_connection_error_is_server_down(monitor):
    extractor, _ = _extractor(monitor, aiohttp.ClientConnectionError("Cannot connect to host ocr.test"))
    result = await extractor.extract(_doc())
    assert result.success is False
    assert result.server_down is True
    assert result.error_kind == ErrorKind.NETWORK
    assert isinstance(result.to_exception(), NetworkFailureError)


@pytest.mark.asyncio
async def test_other_client_error_is_generic_failure(monitor):
    extractor, _ = _extractor(monitor, aiohttp.ClientPayloadError("bad payload"))
    result = await extractor.extract(_doc())
    assert result.success is False
    assert result.server_down is False
    assert result.error == "bad payload"


@pytest.mark.asyncio
async def test_caller_cancellation(monitor):
    extractor, _ = _extractor(monitor, slow_response(5.0))
    cancel = asyncio.Event()

    async def cancel_soon():
        await asyncio.sleep(0.05)
        cancel.set()

    canceller = asyncio.create_task(cancel_soon())
    result = await extractor.extract(_doc(), cancel_event=cancel)
    await canceller

    assert result.success is False
    assert result.error == "Request was cancelled"
    assert result.error_kind == ErrorKind.CANCELLED
    assert isinstance(result.to_exception(), RequestCancelledError)


# =========================
# Progress and validation
# =========================

@pytest.mark.asyncio
async def test_extract_with_progress_messages(monitor):
    extractor, _ = _extractor(monitor, FakeResponse(200, "hello"), FakeResponse(403, ""))
    messages = []

    await extractor.extract_with_progress(_doc(), messages.append)
    await extractor.extract_with_progress(_doc(), messages.append)

    assert messages == [
        "Uploading document for text extraction...",
        "Text extraction completed successfully",
        "Uploading document for text extraction...",
        "Chat has reached its limits",
    ]


@pytest.mark.asyncio
async def test_extract_with_progress_when_down(make_monitor):
    monitor = await _mark_down(make_monitor)
    extractor, session = _extractor(monitor)
    messages = []

    result = await extractor.extract_with_progress(_doc(), messages.append)

    assert messages == ["OCR server is currently unavailable"]
    assert isinstance(result.to_exception(), ServiceUnavailableError)
    assert session.requests == []


def test_validate_document_file_accepts_supported_types():
    validate_document_file(_doc("slides.PPTX", content_type="application/octet-stream"))
    validate_document_file(_doc("notes.txt", content_type=""))


@pytest.mark.parametrize("document,message", [
    (None, "No file provided"),
    (DocumentFile("", b"x"), "No file provided"),
    (DocumentFile("image.exe", b"x", "application/x-msdownload"), "Unsupported file type"),
    (DocumentFile("archive.zip", b"x", "application/pdf"), "Unsupported file extension"),
    (DocumentFile("empty.pdf", b"", "application/pdf"), "File is empty"),
])
def test_validate_document_file_rejects(document, message):
    with pytest.raises(ValueError, match=message):
        validate_document_file(document)
