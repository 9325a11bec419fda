"""Tests for text extraction."""

import base64
from unittest.mock import MagicMock

import pytest

from coursegen.core.text_extractor import (
    EXTRACTION_PATH,
    MAX_FILES,
    TextExtractionClient,
    TextExtractionError,
    check_file,
    guess_mime_type,
)
from coursegen.llm.errors import ApiResponseError


@pytest.fixture
def mock_api():
    api = MagicMock()
    api.post.return_value = {"success": True, "text": "Extracted text"}
    return api


@pytest.fixture
def material(tmp_path):
    """Two small documents."""
    first = tmp_path / "intro.txt"
    first.write_text("intro", encoding="utf-8")
    second = tmp_path / "slides.pdf"
    second.write_bytes(b"%PDF-1.4 fake")
    return [first, second]


class TestExtract:
    """Single document extraction."""

    def test_sends_base64_content(self, mock_api):
        client = TextExtractionClient(mock_api)

        text = client.extract(b"hello", "text/plain", "a.txt")

        assert text == "Extracted text"
        mock_api.post.assert_called_once_with(
            EXTRACTION_PATH,
            {
                "content": base64.b64encode(b"hello").decode("ascii"),
                "content_type": "text/plain",
                "filename": "a.txt",
            },
        )

    def test_success_false_raises_with_service_error(self, mock_api):
        mock_api.post.return_value = {"success": False, "error": "Unsupported format"}

        with pytest.raises(TextExtractionError, match="Unsupported format"):
            TextExtractionClient(mock_api).extract(b"x", "text/plain", "a.txt")

    def test_empty_text_raises_unknown_error(self, mock_api):
        mock_api.post.return_value = {"success": True, "text": ""}

        with pytest.raises(TextExtractionError, match="Unknown error"):
            TextExtractionClient(mock_api).extract(b"x", "text/plain", "a.txt")

    def test_api_errors_propagate(self, mock_api):
        mock_api.post.side_effect = ApiResponseError("HTTP 500", status_code=500)

        with pytest.raises(ApiResponseError):
            TextExtractionClient(mock_api).extract(b"x", "text/plain", "a.txt")


class TestFileChecks:
    """Upload constraints."""

    def test_guess_mime_type(self):
        assert guess_mime_type("a.pdf") == "application/pdf"
        assert guess_mime_type("B.DOCX").endswith("wordprocessingml.document")
        assert guess_mime_type("notes.txt") == "text/plain"

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "image.png"
        path.write_bytes(b"png")

        with pytest.raises(TextExtractionError, match="Unsupported file type"):
            check_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(TextExtractionError, match="File not found"):
            check_file(tmp_path / "gone.pdf")

    def test_too_large(self, tmp_path, monkeypatch):
        path = tmp_path / "big.pdf"
        path.write_bytes(b"0123456789")
        monkeypatch.setattr("coursegen.core.text_extractor.MAX_FILE_BYTES", 5)

        with pytest.raises(TextExtractionError, match="too large"):
            check_file(path)


class TestExtractFiles:
    """Batch extraction over several files."""

    def test_texts_concatenated_with_separators(self, mock_api, material):
        mock_api.post.side_effect = [
            {"success": True, "text": "First text"},
            {"success": True, "text": "Second text"},
        ]

        batch = TextExtractionClient(mock_api).extract_files(material)

        assert batch.ok
        assert batch.errors == []
        assert batch.files == ["intro.txt", "slides.pdf"]
        assert batch.text == (
            "\n\n--- intro.txt ---\n\nFirst text"
            "\n\n--- slides.pdf ---\n\nSecond text"
        )

    def test_mime_type_guessed_per_file(self, mock_api, material):
        TextExtractionClient(mock_api).extract_files(material)

        content_types = [c.args[1]["content_type"] for c in mock_api.post.call_args_list]
        assert content_types == ["text/plain", "application/pdf"]

    def test_failures_collected_not_raised(self, mock_api, material):
        mock_api.post.side_effect = [
            {"success": False, "error": "Corrupt file"},
            {"success": True, "text": "Second text"},
        ]

        batch = TextExtractionClient(mock_api).extract_files(material)

        assert batch.ok
        assert batch.files == ["slides.pdf"]
        assert len(batch.errors) == 1
        assert batch.errors[0].startswith("intro.txt:")

    def test_unsupported_file_collected(self, mock_api, material, tmp_path):
        bad = tmp_path / "photo.jpg"
        bad.write_bytes(b"jpg")

        batch = TextExtractionClient(mock_api).extract_files([bad] + material)

        assert mock_api.post.call_count == 2
        assert "photo.jpg" in batch.errors[0]

    def test_nothing_extracted(self, mock_api, material):
        mock_api.post.side_effect = ApiResponseError("HTTP 503", status_code=503)

        batch = TextExtractionClient(mock_api).extract_files(material)

        assert not batch.ok
        assert len(batch.errors) == 2

    def test_too_many_files(self, mock_api, tmp_path):
        paths = [tmp_path / f"f{i}.txt" for i in range(MAX_FILES + 1)]

        with pytest.raises(TextExtractionError, match="Too many files"):
            TextExtractionClient(mock_api).extract_files(paths)
        mock_api.post.assert_not_called()
