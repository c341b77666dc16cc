"""
Tests for chunking and photo-request parsing
"""

import pytest

from saber.src.utils.text_utils import extract_image_query, is_image_request, is_knowledge_file, split_into_chunks


class TestSplitIntoChunks:
    def test_blank_line_boundaries(self):
        assert split_into_chunks("A\n\nB\n\n\nC") == ["A", "B", "C"]

    def test_whitespace_only(self):
        assert split_into_chunks("  \n\n  ") == []

    def test_empty_string(self):
        assert split_into_chunks("") == []

    def test_single_newline_keeps_chunk_together(self):
        text = "Pergunta: o que é X?\nResposta: um protocolo.\n\nPergunta: e Y?\nResposta: outro."
        assert split_into_chunks(text) == [
            "Pergunta: o que é X?\nResposta: um protocolo.",
            "Pergunta: e Y?\nResposta: outro.",
        ]

    def test_pieces_are_trimmed(self):
        assert split_into_chunks("\n\n   primeiro  \n\n\tsegundo\t\n") == ["primeiro", "segundo"]

    def test_no_size_cap(self):
        long_text = "x" * 10_000
        assert split_into_chunks(long_text) == [long_text]


class TestIsKnowledgeFile:
    @pytest.mark.parametrize("name", ["faq.txt", "NOTES.MD", "guide.Md"])
    def test_accepts_text_and_markdown(self, tmp_path, name):
        path = tmp_path / name
        path.write_text("conteúdo", encoding="utf-8")
        assert is_knowledge_file(path)

    @pytest.mark.parametrize("name", ["photo.jpg", "data.json", "README"])
    def test_rejects_other_extensions(self, tmp_path, name):
        path = tmp_path / name
        path.write_text("x", encoding="utf-8")
        assert not is_knowledge_file(path)

    def test_rejects_directories(self, tmp_path):
        directory = tmp_path / "dir.md"
        directory.mkdir()
        assert not is_knowledge_file(directory)


class TestImageRequests:
    @pytest.mark.parametrize("text", ["me manda uma foto de um gato", "Foto de praia", "Quero uma FOTO DE cachorro"])
    def test_detects_photo_requests(self, text):
        assert is_image_request(text)

    @pytest.mark.parametrize("text", ["Explique o protocolo X", "fotografia", ""])
    def test_ignores_other_text(self, text):
        assert not is_image_request(text)

    def test_extracts_description(self):
        assert extract_image_query("Me manda uma foto de um gato") == "um gato"

    def test_extracts_from_short_form(self):
        assert extract_image_query("foto de praia ao pôr do sol") == "praia ao pôr do sol"
