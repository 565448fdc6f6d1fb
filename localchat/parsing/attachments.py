"""File attachments inlined into user messages.

Attachments are sent as plain text in the message body, each wrapped in a
``<file name="...">`` block ahead of the user's own text.
"""

import logging
from collections.abc import Sequence

from localchat.parsing.pdf_parser import parse_pdf

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def format_attachment(name: str, content: str) -> str:
    return f'<file name="{name}">\n{content}\n</file name="{name}">'


def is_pdf(name: str, content_type: str | None = None) -> bool:
    return content_type == PDF_CONTENT_TYPE or name.lower().endswith(".pdf")


def extract_attachment_text(name: str, data: bytes, content_type: str | None = None) -> str:
    """Read an attachment as text.

    PDFs go through pypdf; anything else is decoded as UTF-8 with invalid
    bytes replaced.

    Raises:
        AttachmentError: If a PDF cannot be parsed.
    """
    if is_pdf(name, content_type):
        pdf = parse_pdf(data)
        logger.info(f"Extracted {len(pdf.text)} characters from {name} ({pdf.pages} pages)")
        return pdf.text
    return data.decode("utf-8", errors="replace")


def compose_message(content: str, attachments: Sequence[tuple[str, str]] = ()) -> str:
    """Join formatted attachments and the user text into one message.

    Args:
        content: The text typed by the user.
        attachments: ``(name, text)`` pairs, in attachment order.
    """
    parts = [format_attachment(name, text) for name, text in attachments]
    parts.append(content)
    return "\n".join(part for part in parts if part)
