import pytest

from chunking.chunker import chunk_text, split_sentences
from config import estimate_tokens


def _sentences(n):
    return [f"Sentence {i:02d} ends here." for i in range(n)]


def test_estimate_tokens_is_ceil_of_quarter_length():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abc") == 1
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2
    assert estimate_tokens("x" * 2000) == 500


def test_text_within_budget_is_returned_unchanged():
    text = "Short text. With two sentences!"
    assert chunk_text(text, max_tokens=100) == [text]


def test_two_thousand_char_document_is_a_single_chunk():
    text = ("Alpha beta gamma delta. " * 84)[:2000]
    assert len(text) == 2000
    assert chunk_text(text) == [text]


def test_split_sentences_keeps_terminators():
    assert split_sentences("Hi! How are you? Fine.") == ["Hi!", " How are you?", " Fine."]


def test_split_sentences_keeps_unterminated_tail_and_drops_blank_pieces():
    assert split_sentences("One. Two   ") == ["One.", " Two   "]
    assert split_sentences("   ") == []


def test_chunks_cover_every_sentence_in_order():
    sentences = _sentences(20)
    text = " ".join(sentences)
    chunks = chunk_text(text, max_tokens=30, overlap_tokens=5)

    assert len(chunks) > 1
    joined = " ".join(chunks)
    positions = [joined.find(s) for s in sentences]
    assert all(p >= 0 for p in positions)
    assert positions == sorted(positions)


def test_chunks_stay_within_budget_for_short_sentences():
    text = " ".join(_sentences(20))
    for chunk in chunk_text(text, max_tokens=30, overlap_tokens=5):
        assert estimate_tokens(chunk) <= 30


def test_each_chunk_starts_with_tail_of_previous():
    text = " ".join(_sentences(20))
    chunks = chunk_text(text, max_tokens=30, overlap_tokens=5)

    for previous, current in zip(chunks, chunks[1:]):
        overlap = previous[-20:].lstrip()
        assert len(overlap) <= 20
        assert current.startswith(overlap)


def test_zero_overlap_starts_next_chunk_at_next_sentence():
    sentences = _sentences(10)
    chunks = chunk_text(" ".join(sentences), max_tokens=15, overlap_tokens=0)

    assert len(chunks) > 1
    for chunk in chunks:
        assert chunk.startswith("Sentence")
        assert chunk.count("Sentence") == 2 or chunk == chunks[-1]


def test_oversize_sentence_is_kept_whole():
    long_sentence = "A" * 1000 + "."
    text = "Intro sentence here. " + long_sentence + " Short one."
    chunks = chunk_text(text, max_tokens=10, overlap_tokens=0)

    assert any(long_sentence in chunk for chunk in chunks)
    assert chunks[0] == "Intro sentence here."


def test_chunking_is_deterministic():
    text = " ".join(_sentences(30))
    assert chunk_text(text, 40, 5) == chunk_text(text, 40, 5)


@pytest.mark.parametrize("max_tokens,overlap", [(0, 0), (-1, 0), (10, -1)])
def test_invalid_budgets_are_rejected(max_tokens, overlap):
    with pytest.raises(ValueError):
        chunk_text("anything. at all.", max_tokens=max_tokens, overlap_tokens=overlap)
