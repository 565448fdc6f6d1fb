"""Attachment parsing for chat messages.

Responsibilities:
    - PDF text extraction with pypdf
    - Plain text decoding for other files
    - Inlining attachments into the outgoing user message
"""

from localchat.parsing.attachments import (
    compose_message,
    extract_attachment_text,
    format_attachment,
)
from localchat.parsing.pdf_parser import AttachmentError, PDFContent, parse_pdf

__all__ = [
    "AttachmentError",
    "PDFContent",
    "compose_message",
    "extract_attachment_text",
    "format_attachment",
    "parse_pdf",
]
