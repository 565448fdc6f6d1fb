"""Unit tests for inlining attachments into messages."""

import pytest
import pytest_check as check

from localchat.parsing.attachments import (
    compose_message,
    extract_attachment_text,
    format_attachment,
    is_pdf,
)
from localchat.parsing.pdf_parser import AttachmentError


class TestFormatting:
    """Tests for the attachment block format."""

    def test_format_attachment(self) -> None:
        check.equal(
            format_attachment("notes.txt", "hello"),
            '<file name="notes.txt">\nhello\n</file name="notes.txt">',
        )

    def test_compose_puts_attachments_first(self) -> None:
        message = compose_message("Summarize", [("a.txt", "A"), ("b.txt", "B")])

        check.equal(
            message,
            '<file name="a.txt">\nA\n</file name="a.txt">\n'
            '<file name="b.txt">\nB\n</file name="b.txt">\n'
            "Summarize",
        )

    def test_compose_without_attachments(self) -> None:
        check.equal(compose_message("Hi"), "Hi")

    def test_compose_without_text(self) -> None:
        """Only the attachment block is sent when no text was typed."""
        check.equal(compose_message("", [("a.txt", "A")]), '<file name="a.txt">\nA\n</file name="a.txt">')


class TestExtraction:
    """Tests for reading attachment bytes as text."""

    def test_detects_pdf(self) -> None:
        check.is_true(is_pdf("Report.PDF"))
        check.is_true(is_pdf("blob", "application/pdf"))
        check.is_false(is_pdf("notes.md", "text/markdown"))

    def test_text_file(self) -> None:
        check.equal(extract_attachment_text("notes.txt", "naïve".encode()), "naïve")

    def test_invalid_utf8_is_replaced(self) -> None:
        check.equal(extract_attachment_text("bin.txt", b"a\xffb"), "a�b")

    def test_broken_pdf_raises(self) -> None:
        with pytest.raises(AttachmentError):
            extract_attachment_text("broken.pdf", b"not a pdf")
