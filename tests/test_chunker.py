"""Tests for the overlap chunker."""

import pytest

from tests.conftest import paragraph
from vecdb.chunkers import OverlapChunker


def test_empty_text_has_no_chunks():
    assert OverlapChunker().chunk("   \n\n ", "empty.txt") == []


def test_short_text_is_one_chunk():
    chunks = OverlapChunker().chunk("  just a line  ", "a.txt")

    assert len(chunks) == 1
    assert chunks[0].text == "just a line"
    assert chunks[0].start_char == 2
    assert chunks[0].file_path == "a.txt"


def test_breaks_on_paragraphs():
    text = "\n\n".join(paragraph(w) for w in ("alpha", "bravo", "charlie"))

    chunks = OverlapChunker(1000, 200).chunk(text, "notes.txt")

    assert len(chunks) == 3
    assert chunks[0].text == paragraph("alpha")
    assert chunks[2].text.endswith(paragraph("charlie"))
    assert [c.chunk_index for c in chunks] == [0, 1, 2]


def test_chunks_respect_size_and_overlap():
    text = "word " * 1000

    chunks = OverlapChunker(100, 20).chunk(text, "long.txt")

    assert all(len(c.text) <= 100 for c in chunks)
    for previous, current in zip(chunks, chunks[1:]):
        assert current.start_char < previous.end_char


def test_zero_overlap_chunks_do_not_overlap():
    text = "x" * 250

    chunks = OverlapChunker(100, 0).chunk(text, "x.txt")

    assert [len(c.text) for c in chunks] == [100, 100, 50]


@pytest.mark.parametrize("size,overlap", [(0, 0), (100, 100), (100, -1)])
def test_invalid_arguments(size, overlap):
    with pytest.raises(ValueError):
        OverlapChunker(size, overlap)
