# tests/test_chunker.py
import pytest

from resume_assistant.config import CHUNK_SIZE
from resume_assistant.memory.chunker import chunk_text


class TestChunkDeterminism:

    @pytest.mark.parametrize("length,size", [(1, 1), (10, 3), (799, 800), (2401, 800), (57, 7)])
    def test_chunks_concatenate_back_to_input(self, length, size):
        text = "".join(chr(ord("a") + i % 26) for i in range(length))

        chunks = chunk_text(text, size)

        assert "".join(chunks) == text
        assert all(len(chunk) <= size for chunk in chunks)
        assert all(len(chunk) == size for chunk in chunks[:-1])

    def test_whitespace_is_preserved(self):
        """No stripping: leading/trailing whitespace stays in the chunks."""
        text = "  hello   world \n\n"

        assert "".join(chunk_text(text, 4)) == text

    def test_same_input_same_output(self):
        text = "x" * 1234

        assert chunk_text(text, 100) == chunk_text(text, 100)


class TestChunkBoundaries:

    def test_empty_text_yields_no_chunks(self):
        assert chunk_text("", 800) == []

    def test_text_shorter_than_size_is_one_chunk(self):
        assert chunk_text("short resume", 800) == ["short resume"]

    def test_text_exactly_size_is_one_chunk(self):
        text = "a" * 800

        assert chunk_text(text, 800) == [text]

    def test_2000_characters_split_800_800_400(self):
        chunks = chunk_text("r" * 2000, 800)

        assert [len(chunk) for chunk in chunks] == [800, 800, 400]

    def test_default_size_is_config_chunk_size(self):
        chunks = chunk_text("z" * (CHUNK_SIZE + 1))

        assert [len(chunk) for chunk in chunks] == [CHUNK_SIZE, 1]

    @pytest.mark.parametrize("size", [0, -5])
    def test_non_positive_size_is_rejected(self, size):
        with pytest.raises(ValueError):
            chunk_text("anything", size)
