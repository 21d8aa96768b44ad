# tests/unit/document/test_unit_decoder.py
"""Tests for document/decoder.py."""

from __future__ import annotations

import base64

import pytest

from docreview.document.decoder import DocumentDecodeError, decode_document, extract_pdf_text


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class TestDecodeText:
    def test_utf8(self):
        assert decode_document(_b64("Spécification produit\nv2".encode("utf-8"))) == (
            "Spécification produit\nv2"
        )

    def test_invalid_utf8_rejected(self):
        with pytest.raises(DocumentDecodeError, match="neither a PDF nor UTF-8"):
            decode_document(_b64(b"abc\xff def"))

    def test_binary_upload_rejected(self):
        with pytest.raises(DocumentDecodeError, match="x.docx"):
            decode_document(_b64(bytes(range(256)) * 4), "x.docx")

    def test_empty_rejected(self):
        with pytest.raises(DocumentDecodeError):
            decode_document(_b64(b"   \n  "))

    def test_invalid_base64(self):
        with pytest.raises(DocumentDecodeError):
            decode_document("abc")

    def test_stray_characters_rejected(self):
        encoded = _b64(b"plain text document")
        with pytest.raises(DocumentDecodeError, match="base64"):
            decode_document(encoded[:8] + "*" + encoded[8:])

    def test_wrapped_base64_accepted(self):
        encoded = _b64(b"a plain text document spread over lines")
        wrapped = "\n".join(encoded[i:i + 16] for i in range(0, len(encoded), 16))
        assert decode_document(wrapped) == "a plain text document spread over lines"


class TestDecodePdf:
    @pytest.fixture
    def pdf_bytes(self) -> bytes:
        fitz = pytest.importorskip("fitz")
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "Booking rules for meeting rooms")
        data = doc.tobytes()
        doc.close()
        return data

    def test_pdf_text(self, pdf_bytes):
        assert "Booking rules for meeting rooms" in decode_document(_b64(pdf_bytes), "spec.pdf")

    def test_extract_pdf_text(self, pdf_bytes):
        assert "meeting rooms" in extract_pdf_text(pdf_bytes)

    def test_corrupt_pdf(self):
        pytest.importorskip("fitz")
        with pytest.raises(DocumentDecodeError):
            decode_document(_b64(b"%PDF-1.4 not really a pdf"))
