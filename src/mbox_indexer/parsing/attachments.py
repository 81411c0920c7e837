"""Bounded plain-text extraction from mail attachments."""

from __future__ import annotations

import functools
import io
import logging
import mimetypes
from collections.abc import Callable, Iterator

import chardet
import docx
import openpyxl
from bs4 import BeautifulSoup
from pypdf import PdfReader

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 100_000
# Worst case UTF-8 width; longer plain payloads are cut before sniffing.
_MAX_BYTES_PER_CHAR = 4

_GENERIC_TYPES = frozenset({"application/octet-stream", "application/unknown"})
_PDF_TYPES = frozenset({"application/pdf", "application/x-pdf"})
_DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
_XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
_HTML_TYPES = frozenset({"text/html", "application/xhtml+xml"})
_TEXTUAL_APPLICATION_TYPES = frozenset(
    {
        "application/json",
        "application/xml",
        "application/javascript",
        "application/x-javascript",
        "application/x-sh",
        "application/x-shellscript",
        "application/x-patch",
        "application/x-diff",
        "application/sql",
        "application/x-yaml",
        "application/yaml",
    }
)


class AttachmentExtractionError(RuntimeError):
    """Raised when an attachment payload cannot be parsed."""


class AttachmentTextExtractor:
    """Extract at most ``max_chars`` characters of text from an attachment.

    Formats without a parser produce an empty string so that the attachment
    is still indexed by name and type.
    """

    def __init__(self, max_chars: int = DEFAULT_MAX_CHARS) -> None:
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        self._max_chars = max_chars

    @property
    def max_chars(self) -> int:
        return self._max_chars

    def extract(self, payload: bytes, *, content_type: str, file_name: str) -> str:
        """Return the text content of ``payload`` truncated to ``max_chars``."""
        effective_type = _effective_type(content_type, file_name)
        handler = self._select_handler(effective_type)
        if handler is None:
            LOGGER.debug(
                "No text extractor for %s (%s); indexing metadata only",
                file_name,
                effective_type,
            )
            return ""
        try:
            return _take(handler(payload), self._max_chars)
        except Exception as exc:  # pylint: disable=broad-except
            raise AttachmentExtractionError(
                f"Failed to extract text from {file_name!r} ({effective_type})"
            ) from exc

    def _select_handler(self, content_type: str) -> Callable[[bytes], Iterator[str]] | None:
        if content_type in _PDF_TYPES:
            return _pdf_chunks
        if content_type == _DOCX_TYPE:
            return _docx_chunks
        if content_type == _XLSX_TYPE:
            return _xlsx_chunks
        if content_type in _HTML_TYPES:
            return _html_chunks
        if content_type.startswith("text/") or content_type in _TEXTUAL_APPLICATION_TYPES:
            return functools.partial(_plain_chunks, limit=self._max_chars)
        return None


def _effective_type(content_type: str, file_name: str) -> str:
    declared = (content_type or "").split(";", 1)[0].strip().lower()
    if declared and declared not in _GENERIC_TYPES:
        return declared
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or declared or "application/octet-stream"


def _take(chunks: Iterator[str], limit: int) -> str:
    """Join ``chunks`` until ``limit`` characters have been collected."""
    collected: list[str] = []
    size = 0
    for chunk in chunks:
        if not chunk:
            continue
        collected.append(chunk)
        size += len(chunk) + 1
        if size >= limit:
            break
    return "\n".join(collected)[:limit]


def _pdf_chunks(payload: bytes) -> Iterator[str]:
    reader = PdfReader(io.BytesIO(payload))
    for page in reader.pages:
        yield page.extract_text() or ""


def _docx_chunks(payload: bytes) -> Iterator[str]:
    document = docx.Document(io.BytesIO(payload))
    for paragraph in document.paragraphs:
        yield paragraph.text
    for table in document.tables:
        for row in table.rows:
            yield " ".join(cell.text for cell in row.cells)


def _xlsx_chunks(payload: bytes) -> Iterator[str]:
    workbook = openpyxl.load_workbook(io.BytesIO(payload), read_only=True, data_only=True)
    try:
        for sheet in workbook.worksheets:
            yield sheet.title
            for row in sheet.iter_rows(values_only=True):
                yield " ".join(str(value) for value in row if value is not None)
    finally:
        workbook.close()


def _html_chunks(payload: bytes) -> Iterator[str]:
    soup = BeautifulSoup(payload, "html.parser")
    yield soup.get_text(separator="\n", strip=True)


def _plain_chunks(payload: bytes, limit: int = DEFAULT_MAX_CHARS) -> Iterator[str]:
    payload = payload[: limit * _MAX_BYTES_PER_CHAR]
    encoding = chardet.detect(payload).get("encoding") or "utf-8"
    try:
        yield payload.decode(encoding, errors="replace")
    except LookupError:
        yield payload.decode("utf-8", errors="replace")


__all__ = [
    "AttachmentExtractionError",
    "AttachmentTextExtractor",
    "DEFAULT_MAX_CHARS",
]
