"""Tests for bounded attachment text extraction."""

from __future__ import annotations

import io

import docx
import openpyxl
import pytest
from pypdf import PdfWriter

from mbox_indexer.parsing import attachments
from mbox_indexer.parsing.attachments import (
    AttachmentExtractionError,
    AttachmentTextExtractor,
)


def _docx_bytes(*paragraphs: str) -> bytes:
    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _xlsx_bytes() -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Results"
    sheet.append(["test", "status"])
    sheet.append(["SmokeIT", "passed"])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_plain_text_attachment() -> None:
    extractor = AttachmentTextExtractor()

    text = extractor.extract(
        b"Exception in thread main", content_type="text/plain", file_name="trace.txt"
    )

    assert text == "Exception in thread main"


def test_html_attachment_is_stripped_of_markup() -> None:
    extractor = AttachmentTextExtractor()

    text = extractor.extract(
        b"<html><body><h1>Title</h1><p>Some <b>bold</b> text</p></body></html>",
        content_type="text/html",
        file_name="page.html",
    )

    assert "Title" in text
    assert "<" not in text


def test_docx_attachment() -> None:
    extractor = AttachmentTextExtractor()

    text = extractor.extract(
        _docx_bytes("Release notes", "Fixed the build"),
        content_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        file_name="notes.docx",
    )

    assert "Release notes" in text
    assert "Fixed the build" in text


def test_xlsx_attachment() -> None:
    extractor = AttachmentTextExtractor()

    text = extractor.extract(
        _xlsx_bytes(),
        content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        file_name="results.xlsx",
    )

    assert "Results" in text
    assert "SmokeIT passed" in text


def test_blank_pdf_has_no_text() -> None:
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)

    text = AttachmentTextExtractor().extract(
        buffer.getvalue(), content_type="application/pdf", file_name="blank.pdf"
    )

    assert text.strip() == ""


def test_corrupted_pdf_raises() -> None:
    with pytest.raises(AttachmentExtractionError):
        AttachmentTextExtractor().extract(
            b"definitely not a pdf", content_type="application/pdf", file_name="x.pdf"
        )


def test_octet_stream_type_is_guessed_from_file_name() -> None:
    text = AttachmentTextExtractor().extract(
        b"patch content", content_type="application/octet-stream", file_name="fix.txt"
    )

    assert text == "patch content"


def test_unsupported_format_yields_empty_text() -> None:
    text = AttachmentTextExtractor().extract(
        b"PK\x03\x04", content_type="application/zip", file_name="sources.zip"
    )

    assert text == ""


def test_output_is_capped() -> None:
    extractor = AttachmentTextExtractor(max_chars=100)

    text = extractor.extract(b"x" * 500, content_type="text/plain", file_name="big.log")

    assert len(text) == 100


def test_plain_text_is_sniffed_on_a_bounded_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[int] = []
    real_detect = attachments.chardet.detect

    def recording_detect(payload: bytes) -> dict:
        seen.append(len(payload))
        return real_detect(payload)

    monkeypatch.setattr(attachments.chardet, "detect", recording_detect)
    extractor = AttachmentTextExtractor(max_chars=100)

    text = extractor.extract(b"y" * 1_000_000, content_type="text/plain", file_name="huge.log")

    assert text == "y" * 100
    assert seen == [400]


def test_max_chars_must_be_positive() -> None:
    with pytest.raises(ValueError):
        AttachmentTextExtractor(max_chars=0)
