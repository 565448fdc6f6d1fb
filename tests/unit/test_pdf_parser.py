"""Unit tests for PDF attachment parsing."""

import io

import pytest
import pytest_check as check
from pypdf import PdfWriter

from localchat.parsing.pdf_parser import MAX_FILE_SIZE, AttachmentError, parse_pdf


def blank_pdf(pages: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestParsePdfValid:
    """Tests for successful PDF parsing."""

    def test_counts_pages_of_blank_pdf(self) -> None:
        """Pages without text parse to empty text."""
        result = parse_pdf(blank_pdf(pages=2))

        check.equal(result.pages, 2)
        check.equal(result.text, "")


class TestParsePdfRejection:
    """Tests for PDF validation and rejection."""

    def test_rejects_empty_bytes(self) -> None:
        with pytest.raises(AttachmentError, match="Empty file"):
            parse_pdf(b"")

    def test_rejects_non_pdf_file(self) -> None:
        """Files without the PDF header are refused before parsing."""
        with pytest.raises(AttachmentError, match="Invalid PDF"):
            parse_pdf(b"plain text pretending to be a document")

    def test_rejects_oversized_file(self) -> None:
        oversized = b"%PDF-1.4" + b"\x00" * (MAX_FILE_SIZE + 1)

        with pytest.raises(AttachmentError, match="exceeds maximum"):
            parse_pdf(oversized)

    def test_rejects_truncated_pdf(self) -> None:
        with pytest.raises(AttachmentError, match="Corrupt|Failed"):
            parse_pdf(b"%PDF-1.4\n1 0 obj\n<<")
