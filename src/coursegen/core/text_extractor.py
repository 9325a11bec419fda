"""Text extraction from uploaded course material.

Documents are sent to the AI API's material-to-text endpoint one at a time.
A batch run collects per-file failures instead of raising, so one broken
file does not lose the others.
"""

from __future__ import annotations

import base64
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from coursegen.llm.api_client import ApiClient
from coursegen.llm.errors import ApiError

logger = structlog.get_logger(__name__)

EXTRACTION_PATH = "/api/material-to-text"

ALLOWED_EXTENSIONS = {".pdf", ".doc", ".docx", ".txt", ".pptx", ".ppt"}
MAX_FILES = 10
MAX_FILE_BYTES = 50 * 1024 * 1024

# Mime types the mimetypes table may not know on every platform
_FALLBACK_MIME_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
}


class TextExtractionError(Exception):
    """A document could not be turned into text."""

    pass


@dataclass
class ExtractionBatch:
    """Combined result of extracting several files."""

    text: str = ""
    files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.text)


def guess_mime_type(filename: str) -> str:
    suffix = Path(filename).suffix.lower()
    if suffix in _FALLBACK_MIME_TYPES:
        return _FALLBACK_MIME_TYPES[suffix]
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or "application/octet-stream"


def check_file(path: Path) -> None:
    """Reject files the upload form would not accept.

    Raises:
        TextExtractionError: If the file is missing, of the wrong type or too large
    """
    if not path.exists():
        raise TextExtractionError(f"File not found: {path}")
    if path.suffix.lower() not in ALLOWED_EXTENSIONS:
        raise TextExtractionError(
            f"Unsupported file type: {path.suffix or '(none)'}. "
            f"Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )
    if path.stat().st_size > MAX_FILE_BYTES:
        raise TextExtractionError(f"File too large: {path.name} (max 50 MB)")


class TextExtractionClient:
    """Client for the material-to-text endpoint."""

    def __init__(self, api: ApiClient):
        self.api = api

    def extract(self, file_bytes: bytes, mime_type: str, filename: str) -> str:
        """Extract plain text from one document.

        Args:
            file_bytes: Raw file content
            mime_type: Content type of the file
            filename: Original file name

        Returns:
            Extracted text

        Raises:
            ApiError: On transport or HTTP failure
            TextExtractionError: If the service reports failure or no text
        """
        result = self.api.post(
            EXTRACTION_PATH,
            {
                "content": base64.b64encode(file_bytes).decode("ascii"),
                "content_type": mime_type,
                "filename": filename,
            },
        )

        text = result.get("text")
        if not result.get("success") or not text:
            raise TextExtractionError(
                "Text extraction failed: " + str(result.get("error") or "Unknown error")
            )

        logger.info("text_extracted", filename=filename, chars=len(text))
        return str(text)

    def extract_file(self, path: Path) -> str:
        """Check and extract one file from disk."""
        check_file(path)
        return self.extract(path.read_bytes(), guess_mime_type(path.name), path.name)

    def extract_files(self, paths: list[Path]) -> ExtractionBatch:
        """Extract several files, concatenating whatever succeeded.

        Each text is preceded by a "--- <filename> ---" separator. Failures
        are collected in ``errors``.

        Raises:
            TextExtractionError: If more than MAX_FILES files are given
        """
        if len(paths) > MAX_FILES:
            raise TextExtractionError(f"Too many files: {len(paths)} (max {MAX_FILES})")

        batch = ExtractionBatch()
        for path in paths:
            try:
                text = self.extract_file(path)
            except (TextExtractionError, ApiError, OSError) as e:
                logger.warning("file_extraction_failed", filename=path.name, error=str(e))
                batch.errors.append(f"{path.name}: {e}")
                continue

            batch.text += f"\n\n--- {path.name} ---\n\n{text}"
            batch.files.append(path.name)

        logger.info(
            "extraction_batch_done",
            files=len(batch.files),
            failed=len(batch.errors),
            chars=len(batch.text),
        )
        return batch
