# src/document/decoder.py
"""Decode an uploaded base64 payload into plain document text.

PDF payloads (``%PDF`` magic) are extracted with PyMuPDF; anything else must
be UTF-8 text. Other binary formats are rejected.
"""

from __future__ import annotations

import base64
import binascii
import logging

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


class DocumentDecodeError(ValueError):
    """The payload cannot be turned into non-empty document text."""


def decode_document(file_content: str, file_name: str = "") -> str:
    """Decode ``file_content`` (base64) to text.

    Raises:
        DocumentDecodeError: Invalid base64, unreadable PDF, non-UTF-8
            payload or empty text.
    """
    # Wrapped base64 is accepted; other stray characters are not.
    compact = "".join(file_content.split())
    try:
        data = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DocumentDecodeError(f"File content is not valid base64: {e}") from e

    if data.startswith(PDF_MAGIC):
        text = extract_pdf_text(data)
    else:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DocumentDecodeError(
                f"Document is neither a PDF nor UTF-8 text: {file_name or 'upload'}"
            ) from e

    if not text.strip():
        raise DocumentDecodeError("Document contains no text")
    logger.info("Document decoded: file=%s, bytes=%d, chars=%d", file_name, len(data), len(text))
    return text


def extract_pdf_text(data: bytes) -> str:
    """Concatenated page text of a PDF document."""
    try:
        import fitz  # PyMuPDF
    except ImportError as e:
        raise ImportError(
            "pymupdf package required for PDF extraction: pip install pymupdf"
        ) from e

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise DocumentDecodeError(f"PDF parsing failed: {e}") from e
    try:
        return "\n".join(page.get_text("text") for page in doc)
    finally:
        doc.close()
