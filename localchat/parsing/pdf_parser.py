"""PDF text extraction for chat attachments using pypdf."""

import io
import logging

from pydantic import BaseModel, Field
from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
PDF_MAGIC_BYTES = b"%PDF"


class AttachmentError(Exception):
    """Raised when an attachment cannot be turned into text."""


class PDFContent(BaseModel):
    """Extracted text of a PDF attachment.

    Attributes:
        text: Page texts separated by blank lines.
        pages: Total number of pages in the document.
    """

    text: str
    pages: int = Field(ge=0)


def _validate_pdf_bytes(file_content: bytes) -> None:
    if not file_content:
        raise AttachmentError("Empty file provided")

    if len(file_content) > MAX_FILE_SIZE:
        size_mb = len(file_content) / (1024 * 1024)
        raise AttachmentError(f"File size ({size_mb:.1f}MB) exceeds maximum allowed (10MB)")

    if not file_content.lstrip()[:10].startswith(PDF_MAGIC_BYTES):
        raise AttachmentError("Invalid PDF: file does not start with PDF header")


def parse_pdf(file_content: bytes) -> PDFContent:
    """Extract the text of every page.

    Pages without extractable text (scanned images) are skipped with a
    warning rather than failing the whole attachment.

    Raises:
        AttachmentError: If the file is empty, too large, or not a readable PDF.
    """
    _validate_pdf_bytes(file_content)

    try:
        reader = PdfReader(io.BytesIO(file_content))
        pages = len(reader.pages)
    except PdfReadError as e:
        raise AttachmentError(f"Corrupt or invalid PDF: {e}") from e
    except Exception as e:
        raise AttachmentError(f"Failed to read PDF: {e}") from e

    text_parts: list[str] = []
    for i, page in enumerate(reader.pages):
        try:
            page_text = page.extract_text()
        except Exception as e:
            logger.warning(f"Failed to extract text from page {i + 1}: {e}")
            continue
        if page_text:
            text_parts.append(page_text)

    text = "\n\n".join(text_parts).strip()
    if pages and not text:
        logger.warning("PDF contains no extractable text (may be scanned/image-based)")

    return PDFContent(text=text, pages=pages)
